import json
import os
import tempfile
import unittest

from support import image_element, simple_design, text_element

from idcard_studio.errors import ConfigurationError
from idcard_studio.library.store import load_seed_templates
from idcard_studio.models.history import DesignHistory
from idcard_studio.models.template_design import (
    Background, ElementStyle, Point, Size, TemplateDesign, TemplateElement,
)
from idcard_studio.utils.colors import parse_color, parse_gradient

STORED_TEMPLATE = {
    "background": {"type": "gradient", "value": "linear-gradient(135deg, #2563eb 0%, #1e40af 100%)"},
    "dimensions": {"width": 85.6, "height": 54},
    "elements": [
        {"id": "logo", "type": "image", "position": {"x": 5, "y": 5},
         "size": {"width": 8, "height": 8}, "content": "{{schoolLogo}}", "style": {}},
        {"id": "name", "type": "text", "position": {"x": 25, "y": 16},
         "size": {"width": 55, "height": 6}, "content": "{{studentName}}",
         "style": {"fontSize": 2.8, "color": "#ffffff", "fontWeight": "bold"}},
    ],
}


class ParseTests(unittest.TestCase):
    def test_from_dict_accepts_type_alias(self):
        design = TemplateDesign.from_dict(STORED_TEMPLATE)
        self.assertEqual(design.background.kind, "gradient")
        self.assertEqual([el.kind for el in design.elements], ["image", "text"])
        self.assertEqual(design.elements[1].style.font_size, 2.8)
        self.assertTrue(design.elements[1].style.is_bold)

    def test_to_dict_uses_kind_and_drops_unset_style(self):
        d = TemplateDesign.from_dict(STORED_TEMPLATE).to_dict()
        self.assertEqual(d["elements"][0]["kind"], "image")
        self.assertEqual(d["elements"][0]["style"], {})
        self.assertNotIn("units", d)
        self.assertEqual(TemplateDesign.from_dict(d), TemplateDesign.from_dict(STORED_TEMPLATE))

    def test_json_file_round_trip(self):
        design = TemplateDesign.from_dict(STORED_TEMPLATE)
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "card.json")
            design.save_json(path)
            self.assertEqual(TemplateDesign.load_json(path), design)

    def test_style_defaults(self):
        style = ElementStyle()
        self.assertEqual(style.effective_font_size, 10.0)
        self.assertEqual(style.effective_color, "#000000")
        self.assertEqual(style.effective_text_align, "left")
        self.assertFalse(style.is_bold)
        self.assertTrue(ElementStyle(font_weight="700").is_bold)
        self.assertEqual(ElementStyle(text_align="justify").effective_text_align, "left")


class ValidateTests(unittest.TestCase):
    def test_valid_design(self):
        design = simple_design()
        self.assertIs(design.validate(), design)

    def test_unsupported_units(self):
        design = TemplateDesign(dimensions=Size(3.37, 2.125), units="in")
        with self.assertRaises(ConfigurationError):
            design.validate()

    def test_bad_text_colour(self):
        design = simple_design(text_element(color="not-a-colour"))
        with self.assertRaises(ConfigurationError):
            design.validate()

    def test_bad_gradient(self):
        design = simple_design(background=Background("gradient", "radial-gradient(#fff, #000)"))
        with self.assertRaises(ConfigurationError):
            design.validate()

    def test_unknown_background_kind(self):
        design = simple_design(background=Background("pattern", "dots"))
        with self.assertRaises(ConfigurationError):
            design.validate()

    def test_non_numeric_position(self):
        el = TemplateElement("x", "text", Point("10", 5), Size(10, 5), "hi")
        with self.assertRaises(ConfigurationError):
            simple_design(el).validate()

    def test_duplicate_element_ids(self):
        design = simple_design(text_element(content="first", x=1), text_element(content="second", x=30))
        with self.assertRaisesRegex(ConfigurationError, "Duplicate element id"):
            design.validate()

    def test_non_finite_geometry(self):
        for bad in (float("nan"), float("inf"), float("-inf")):
            with self.subTest(value=bad):
                with self.assertRaises(ConfigurationError):
                    TemplateDesign(dimensions=Size(bad, 54)).validate()
                with self.assertRaises(ConfigurationError):
                    simple_design(text_element(x=bad)).validate()

    def test_nan_from_json_is_rejected(self):
        data = dict(STORED_TEMPLATE, dimensions={"width": float("nan"), "height": 54})
        design = TemplateDesign.from_dict(json.loads(json.dumps(data)))
        with self.assertRaises(ConfigurationError):
            design.validate()

    def test_unsupported_kinds_are_allowed(self):
        qr = TemplateElement("qr", "qr", Point(60, 30), Size(14, 14), "{{idNumber}}")
        simple_design(qr).validate()

    def test_seed_templates_are_valid(self):
        records = load_seed_templates()
        self.assertEqual(len(records), 8)
        for record in records:
            record.design.validate()


class ColorTests(unittest.TestCase):
    def test_parse_gradient(self):
        g = parse_gradient("linear-gradient(135deg, #2563eb 0%, #1e40af 100%)")
        self.assertEqual(g.angle, 135.0)
        self.assertEqual(g.first_color, (0x25, 0x63, 0xeb))
        self.assertEqual([s.offset for s in g.stops], [0.0, 1.0])

    def test_gradient_defaults_and_keywords(self):
        g = parse_gradient("linear-gradient(red, lime, blue)")
        self.assertEqual(g.angle, 180.0)
        self.assertEqual([s.offset for s in g.stops], [0.0, 0.5, 1.0])
        self.assertEqual(parse_gradient("linear-gradient(to right, red, blue)").angle, 90.0)
        self.assertEqual(g.color_at(0.5), (0, 255, 0))

    def test_rgb_function_colours(self):
        g = parse_gradient("linear-gradient(45deg, rgb(0, 106, 78) 0%, #f42a41 100%)")
        self.assertEqual(g.first_color, (0, 106, 78))
        self.assertEqual(parse_color("white"), (255, 255, 255))


class EditingTests(unittest.TestCase):
    def setUp(self):
        self.design = simple_design(image_element(), text_element())

    def test_move_returns_new_design(self):
        moved = self.design.move_element("name", 30, 22)
        self.assertEqual(moved.element("name").position, Point(30, 22))
        self.assertEqual(self.design.element("name").position, Point(25, 20))

    def test_resize(self):
        resized = self.design.resize_element("photo", 18, 24)
        self.assertEqual(resized.element("photo").size, Size(18, 24))

    def test_add_rejects_duplicate_id(self):
        with self.assertRaises(ValueError):
            self.design.add_element(text_element("name"))

    def test_remove(self):
        self.assertEqual([el.id for el in self.design.remove_element("photo").elements], ["name"])
        with self.assertRaises(KeyError):
            self.design.remove_element("missing")


class HistoryTests(unittest.TestCase):
    def setUp(self):
        self.base = simple_design(text_element())
        self.history = DesignHistory(self.base)

    def test_undo_redo(self):
        moved = self.base.move_element("name", 1, 1)
        self.history.push(moved)
        self.assertTrue(self.history.can_undo)
        self.assertEqual(self.history.undo(), self.base)
        self.assertTrue(self.history.can_redo)
        self.assertEqual(self.history.redo(), moved)

    def test_push_after_undo_truncates_redo(self):
        first = self.base.move_element("name", 1, 1)
        second = self.base.move_element("name", 2, 2)
        self.history.push(first)
        self.history.undo()
        self.history.push(second)
        self.assertFalse(self.history.can_redo)
        self.assertEqual(len(self.history), 2)

    def test_equal_snapshot_not_recorded(self):
        self.history.push(simple_design(text_element()))
        self.assertEqual(len(self.history), 1)

    def test_limit_drops_oldest(self):
        history = DesignHistory(self.base, limit=3)
        for i in range(5):
            history.push(self.base.move_element("name", i + 1, 0))
        self.assertEqual(len(history), 3)
        self.assertEqual(history.current.element("name").position, Point(5, 0))


if __name__ == "__main__":
    unittest.main()
