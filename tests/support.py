"""Shared fixtures: offline image fetcher and small designs."""

import sys
from io import BytesIO
from pathlib import Path

from PIL import Image

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from idcard_studio.errors import ResourceUnavailable
from idcard_studio.export.images import ImageFetcher
from idcard_studio.models.student import StudentRecord
from idcard_studio.models.template_design import (
    Background, ElementStyle, Point, Size, TemplateDesign, TemplateElement,
)

PHOTO_URL = "https://example.test/photo.png"
BROKEN_URL = "https://example.test/missing.png"


def png_bytes(color=(200, 30, 30), size=(40, 60)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


class FakeFetcher(ImageFetcher):
    """Serves images from memory; every other source is unavailable."""

    def __init__(self, images=None):
        super().__init__(timeout=1, max_workers=2)
        self.images = {PHOTO_URL: png_bytes()} if images is None else images
        self.requested = []

    def _read_bytes(self, source):
        self.requested.append(source)
        if source not in self.images:
            raise ResourceUnavailable(source, "404 Not Found")
        return self.images[source]


def make_student(**overrides) -> StudentRecord:
    fields = dict(
        name_english="Arif Rahman",
        name_bengali="আরিফ রহমান",
        id_number="S-001",
        class_name="8",
        section="A",
        roll_number="12",
        photo_url=PHOTO_URL,
    )
    fields.update(overrides)
    return StudentRecord(**fields)


def text_element(element_id="name", content="{{studentName}}", x=25, y=20, w=55, h=5, **style):
    return TemplateElement(element_id, "text", Point(x, y), Size(w, h), content,
                           ElementStyle(**style))


def image_element(element_id="photo", content="{{studentPhoto}}", x=8, y=16, w=15, h=20):
    return TemplateElement(element_id, "image", Point(x, y), Size(w, h), content)


def simple_design(*elements, background=None) -> TemplateDesign:
    if not elements:
        elements = (image_element(), text_element(font_size=2.5, color="#ffffff"))
    return TemplateDesign(
        background=background or Background("solid", "#1e40af"),
        dimensions=Size(85.6, 54),
        elements=elements,
    )
