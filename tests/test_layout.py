import unittest

from support import image_element, simple_design, text_element

from idcard_studio.engine.layout import (
    absolute_mm, document_units, percentage_of_container, resolve_layout, to_renderer_space,
)
from idcard_studio.errors import ConfigurationError
from idcard_studio.models.template_design import Size, TemplateDesign


class PercentageLayoutTests(unittest.TestCase):
    def test_credit_card_example(self):
        design = simple_design(text_element())
        (box,) = to_renderer_space(design, percentage_of_container())
        self.assertAlmostEqual(box.left, 29.2, places=1)
        self.assertAlmostEqual(box.top, 37.0, places=1)
        self.assertAlmostEqual(box.width, 64.25, places=2)
        self.assertAlmostEqual(box.height, 9.26, places=2)
        self.assertEqual(box.unit, "%")

    def test_frame_keeps_aspect_ratio(self):
        layout = resolve_layout(simple_design(), percentage_of_container())
        self.assertEqual(layout.width, 100.0)
        self.assertAlmostEqual(layout.aspect_ratio, 85.6 / 54)
        self.assertAlmostEqual(layout.font_scale, 100.0 / 85.6)

    def test_scaling_the_design_keeps_percentages(self):
        small = simple_design(text_element(x=10, y=10, w=20, h=5))
        large = TemplateDesign(
            background=small.background,
            dimensions=Size(171.2, 108),
            elements=(text_element(x=20, y=20, w=40, h=10),),
        )
        a = to_renderer_space(small, percentage_of_container())[0]
        b = to_renderer_space(large, percentage_of_container())[0]
        for x, y in zip(a.box, b.box):
            self.assertAlmostEqual(x, y)


class AbsoluteLayoutTests(unittest.TestCase):
    def test_scale_multiplies_everything(self):
        layout = resolve_layout(simple_design(text_element()), absolute_mm(3.0))
        self.assertAlmostEqual(layout.width, 256.8)
        self.assertAlmostEqual(layout.height, 162.0)
        box = layout.elements[0]
        self.assertEqual(box.box, (75.0, 60.0, 165.0, 15.0))
        self.assertEqual(layout.font_scale, 3.0)

    def test_aspect_ratio_is_preserved_at_any_scale(self):
        design = simple_design()
        for scale in (0.5, 1.0, 3.0, 11.811):
            layout = resolve_layout(design, absolute_mm(scale))
            self.assertAlmostEqual(layout.aspect_ratio, design.aspect_ratio)

    def test_non_positive_scale_rejected(self):
        with self.assertRaises(ConfigurationError):
            resolve_layout(simple_design(), absolute_mm(0))


class DocumentLayoutTests(unittest.TestCase):
    def test_identity_mapping(self):
        layout = resolve_layout(simple_design(text_element()), document_units())
        self.assertEqual((layout.width, layout.height), (85.6, 54))
        self.assertEqual(layout.elements[0].box, (25, 20, 55, 5))
        self.assertEqual(layout.elements[0].unit, "mm")


class EdgeCaseTests(unittest.TestCase):
    def test_infinite_dimensions_rejected(self):
        design = TemplateDesign(dimensions=Size(float("inf"), 54))
        with self.assertRaises(ConfigurationError):
            resolve_layout(design, document_units())

    def test_zero_dimensions_rejected(self):
        design = TemplateDesign(dimensions=Size(0, 54))
        with self.assertRaises(ConfigurationError):
            resolve_layout(design, percentage_of_container())

    def test_negative_dimensions_rejected(self):
        design = TemplateDesign(dimensions=Size(85.6, -1))
        with self.assertRaises(ConfigurationError):
            resolve_layout(design, absolute_mm(1))

    def test_paint_order_matches_element_order(self):
        design = simple_design(
            image_element("a"), text_element("b"), image_element("c"), text_element("d"))
        ids = [box.element.id for box in to_renderer_space(design, absolute_mm(2))]
        self.assertEqual(ids, ["a", "b", "c", "d"])
        again = [box.element.id for box in to_renderer_space(design, absolute_mm(2))]
        self.assertEqual(ids, again)

    def test_elements_may_extend_past_the_card(self):
        design = simple_design(text_element(x=80, y=50, w=20, h=10))
        box = to_renderer_space(design, document_units())[0]
        self.assertGreater(box.right, 85.6)
        self.assertGreater(box.bottom, 54)


if __name__ == "__main__":
    unittest.main()
