import unittest

from support import (
    BROKEN_URL, PHOTO_URL, FakeFetcher, image_element, make_student, simple_design, text_element,
)

from idcard_studio.errors import ConfigurationError
from idcard_studio.export.base import CardSpec
from idcard_studio.export.canvas_renderer import InteractiveRenderer, diff_scenes
from idcard_studio.export.image_renderer import ImageRenderer
from idcard_studio.export.images import PLACEHOLDER_FILL
from idcard_studio.export.pdf_renderer import DocumentRenderer
from idcard_studio.export.preview_renderer import PreviewRenderer
from idcard_studio.models.student import normalize_settings
from idcard_studio.models.template_design import Background, Point, Size, TemplateElement
from idcard_studio.utils.colors import parse_color

SETTINGS = normalize_settings({"schoolNameEnglish": "Dhaka Model School"})


class InteractiveRendererTests(unittest.TestCase):
    def setUp(self):
        self.design = simple_design()
        self.renderer = InteractiveRenderer(scale=3.0)

    def test_scene_structure(self):
        scene = self.renderer.render(self.design, make_student(), SETTINGS)
        self.assertAlmostEqual(scene.root.props["width"], 256.8)
        self.assertTrue(scene.root.props["clip"])
        self.assertEqual(scene.keys, ["photo", "name"])
        photo, name = scene.children
        self.assertEqual(photo.kind, "image")
        self.assertEqual(photo.props["source"], PHOTO_URL)
        self.assertEqual(name.props["text"], "Arif Rahman")
        self.assertAlmostEqual(name.props["font_size"], 7.5)

    def test_missing_photo_becomes_placeholder(self):
        scene = self.renderer.render(self.design, make_student(photo_url=None), SETTINGS)
        photo = scene.node("photo")
        self.assertEqual(photo.kind, "placeholder")
        self.assertEqual(photo.props["label"], "Photo")

    def test_no_student_shows_raw_tokens(self):
        scene = self.renderer.render(self.design, None, SETTINGS)
        self.assertEqual(scene.node("name").props["text"], "{{studentName}}")

    def test_hit_test_and_design_point(self):
        scene = self.renderer.render(self.design, make_student(), SETTINGS)
        self.assertEqual(scene.hit_test(30, 50), "photo")
        self.assertEqual(scene.hit_test(80, 62), "name")
        self.assertIsNone(scene.hit_test(1, 1))
        self.assertEqual(scene.to_design_point(75, 60), (25.0, 20.0))

    def test_duplicate_ids_get_unique_keys(self):
        design = simple_design(text_element("dup"), text_element("dup", y=30))
        scene = self.renderer.render(design, make_student(), SETTINGS)
        self.assertEqual(scene.keys, ["dup", "dup#1"])

    def test_unsupported_kinds_are_skipped(self):
        qr = TemplateElement("qr", "qr", Point(60, 30), Size(14, 14), "{{idNumber}}")
        scene = self.renderer.render(simple_design(text_element(), qr), make_student(), SETTINGS)
        self.assertEqual(scene.keys, ["name"])

    def test_diff_initial_render_adds_everything(self):
        scene = self.renderer.render(self.design, make_student(), SETTINGS)
        changes = diff_scenes(None, scene)
        self.assertEqual([c.op for c in changes], ["add", "add", "add"])

    def test_diff_identical_is_empty(self):
        a = self.renderer.render(self.design, make_student(), SETTINGS)
        b = self.renderer.render(self.design, make_student(), SETTINGS)
        self.assertEqual(diff_scenes(a, b), [])

    def test_diff_after_move_updates_one_node(self):
        old = self.renderer.render(self.design, make_student(), SETTINGS)
        new = self.renderer.render(self.design.move_element("name", 30, 25), make_student(), SETTINGS)
        changes = diff_scenes(old, new)
        self.assertEqual([(c.op, c.key) for c in changes], [("update", "name")])

    def test_diff_remove_and_reorder(self):
        old = self.renderer.render(self.design, make_student(), SETTINGS)
        removed = self.renderer.render(self.design.remove_element("photo"), make_student(), SETTINGS)
        self.assertEqual([(c.op, c.key) for c in diff_scenes(old, removed)], [("remove", "photo")])

        swapped = simple_design(*reversed(self.design.elements))
        reordered = self.renderer.render(swapped, make_student(), SETTINGS)
        changes = diff_scenes(old, reordered)
        self.assertEqual([c.op for c in changes], ["reorder"])
        self.assertEqual(changes[0].order, ("name", "photo"))


class PreviewRendererTests(unittest.TestCase):
    def test_percentage_boxes(self):
        card = PreviewRenderer().render(simple_design(text_element()), make_student(), SETTINGS)
        (node,) = card.nodes
        self.assertTrue(node.style["left"].startswith("29.2"))
        self.assertTrue(node.style["top"].startswith("37.03"))
        self.assertEqual(node.style["width"], "64.2523%")
        self.assertTrue(node.style["font-size"].endswith("cqw"))
        self.assertAlmostEqual(card.aspect_ratio, 85.6 / 54)

    def test_html_output(self):
        html = PreviewRenderer().render(simple_design(), make_student(photo_url=None), SETTINGS).to_html()
        self.assertIn("aspect-ratio: 1.5852", html)
        self.assertIn("Arif Rahman", html)
        self.assertIn('data-element="photo"', html)
        self.assertIn("card-placeholder", html)
        self.assertIn(">Photo</div>", html)

    def test_text_is_escaped(self):
        student = make_student(name_english="<b>Arif</b>")
        html = PreviewRenderer().render(simple_design(), student, SETTINGS).to_html()
        self.assertIn("&lt;b&gt;Arif&lt;/b&gt;", html)
        self.assertNotIn("<b>Arif", html)

    def test_gradient_background(self):
        design = simple_design(background=Background(
            "gradient", "linear-gradient(135deg, #059669 0%, #047857 100%)"))
        card = PreviewRenderer().render(design, None, SETTINGS)
        self.assertEqual(card.background, "linear-gradient(135deg, #059669 0%, #047857 100%)")


class ImageRendererTests(unittest.TestCase):
    def test_card_size_at_300_dpi(self):
        img = ImageRenderer(dpi=300, fetcher=FakeFetcher()).render(
            simple_design(), make_student(), SETTINGS)
        self.assertEqual(img.size, (1011, 638))
        self.assertEqual(img.mode, "RGB")
        self.assertEqual(img.getpixel((2, 2)), (0x1e, 0x40, 0xaf))

    def test_photo_is_painted(self):
        img = ImageRenderer(dpi=300, fetcher=FakeFetcher()).render(
            simple_design(), make_student(), SETTINGS)
        # Center of the 15 x 20 mm photo box at (8, 16) mm
        r, g, b = img.getpixel((183, 307))
        self.assertLessEqual(abs(r - 200) + abs(g - 30) + abs(b - 30), 6)

    def test_unreachable_photo_uses_placeholder(self):
        fetcher = FakeFetcher()
        student = make_student(photo_url=BROKEN_URL)
        with self.assertLogs("idcard_studio.export.images", level="WARNING"):
            img = ImageRenderer(dpi=300, fetcher=fetcher).render(simple_design(), student, SETTINGS)
        self.assertEqual(img.getpixel((110, 205)), parse_color(PLACEHOLDER_FILL))
        self.assertIn(BROKEN_URL, fetcher.requested)


class DocumentRendererTests(unittest.TestCase):
    def setUp(self):
        self.fetcher = FakeFetcher()
        self.renderer = DocumentRenderer(fetcher_factory=lambda: self.fetcher)
        self.design = simple_design()

    def test_single_card(self):
        doc = self.renderer.render(self.design, make_student(), SETTINGS)
        self.assertTrue(doc.pdf.startswith(b"%PDF"))
        self.assertEqual(doc.page_count, 1)
        self.assertEqual((doc.pages[0].width_mm, doc.pages[0].height_mm), (85.6, 54))
        self.assertEqual(doc.pages[0].placeholders, [])

    def test_partial_failure_is_isolated(self):
        specs = [
            CardSpec(self.design, make_student(), SETTINGS),
            CardSpec(self.design, make_student(id_number="S-002", photo_url=BROKEN_URL), SETTINGS),
            CardSpec(self.design, make_student(id_number="S-003"), SETTINGS),
        ]
        doc = self.renderer.render_batch(specs)
        self.assertEqual(doc.page_count, 3)
        self.assertEqual([p.placeholders for p in doc.pages], [[], ["photo"], []])
        self.assertEqual(len(doc.pages[1].warnings), 1)
        self.assertTrue(doc.warnings[0].startswith("page 2:"))

    def test_shared_photo_fetched_once(self):
        specs = [CardSpec(self.design, make_student(), SETTINGS) for _ in range(4)]
        self.renderer.render_batch(specs)
        self.assertEqual(self.fetcher.requested.count(PHOTO_URL), 1)

    def test_missing_photo_without_source_has_no_warning(self):
        doc = self.renderer.render(self.design, make_student(photo_url=None), SETTINGS)
        self.assertEqual(doc.pages[0].placeholders, ["photo"])
        self.assertEqual(doc.pages[0].warnings, [])

    def test_empty_batch(self):
        doc = self.renderer.render_batch([])
        self.assertEqual(doc.page_count, 0)
        self.assertTrue(doc.pdf.startswith(b"%PDF"))

    def test_invalid_card_fails_whole_batch(self):
        bad = simple_design(text_element(color="nope"))
        specs = [CardSpec(self.design, make_student()), CardSpec(bad, make_student())]
        with self.assertRaises(ConfigurationError) as ctx:
            self.renderer.render_batch(specs)
        self.assertIn("card 2", str(ctx.exception))
        self.assertEqual(self.fetcher.requested, [])

    def test_gradient_background_is_approximated(self):
        design = simple_design(
            image_element(), background=Background(
                "gradient", "linear-gradient(135deg, #7c3aed 0%, #5b21b6 100%)"))
        doc = self.renderer.render(design, make_student(), SETTINGS)
        self.assertIn("#7c3aed", doc.pages[0].warnings[0])

    def test_concurrent_use_is_rejected(self):
        renderer = DocumentRenderer()

        def nested_factory():
            return renderer.render(self.design, make_student(), SETTINGS)

        renderer.fetcher_factory = nested_factory
        with self.assertRaises(RuntimeError):
            renderer.render(self.design, make_student(), SETTINGS)

        renderer.fetcher_factory = lambda: self.fetcher
        self.assertEqual(renderer.render(self.design, make_student(), SETTINGS).page_count, 1)


if __name__ == "__main__":
    unittest.main()
