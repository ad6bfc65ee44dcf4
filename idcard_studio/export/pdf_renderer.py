"""Printable PDF output: one page per card, each page sized to the card.

Pages are drawn 1:1 in millimetres, so the output matches card-printer stock
exactly. Photos and logos for a whole batch are fetched concurrently before
painting; a missing image degrades to a placeholder on its own page only.
"""

import logging
import threading
from dataclasses import dataclass, field
from io import BytesIO
from typing import Callable, List, Mapping, Optional, Sequence

from reportlab.lib.colors import HexColor
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas as rl_canvas

from idcard_studio import config
from idcard_studio.engine.layout import document_units
from idcard_studio.errors import ConfigurationError
from idcard_studio.export.base import FIRST_BASELINE, LINE_HEIGHT, CardItem, CardRenderer, CardSpec, PreparedCard
from idcard_studio.export.images import (
    PLACEHOLDER_BORDER, PLACEHOLDER_FILL, PLACEHOLDER_FONT_SIZE, PLACEHOLDER_TEXT,
    ImageFetcher, cover_fit,
)
from idcard_studio.models.student import StudentRecord
from idcard_studio.models.template_design import TemplateDesign
from idcard_studio.utils.colors import parse_color, parse_gradient, to_hex
from idcard_studio.utils.fonts import pdf_font_name
from idcard_studio.utils.image_utils import mm_to_px

logger = logging.getLogger(__name__)


@dataclass
class PageInfo:
    index: int
    width_mm: float
    height_mm: float
    placeholders: List[str] = field(default_factory=list)  # element ids
    warnings: List[str] = field(default_factory=list)


@dataclass
class RenderedDocument:
    pdf: bytes
    pages: List[PageInfo]

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def warnings(self) -> List[str]:
        return [f"page {p.index + 1}: {w}" for p in self.pages for w in p.warnings]

    def save(self, path: str) -> None:
        with open(path, "wb") as f:
            f.write(self.pdf)


def _hex(value: str) -> HexColor:
    return HexColor(to_hex(parse_color(value)))


class DocumentRenderer(CardRenderer):
    """Builds multi-page PDFs with ReportLab.

    An instance holds the document being built, so it renders one document
    at a time; a concurrent call raises RuntimeError.
    """

    def __init__(self, fetcher_factory: Callable[[], ImageFetcher] = ImageFetcher,
                 dpi: int = None):
        self.target = document_units()
        self.fetcher_factory = fetcher_factory
        self.dpi = dpi or config.RENDER_DPI
        self._busy = threading.Lock()
        self._canvas: Optional[rl_canvas.Canvas] = None
        self._images = {}

    def render(self, design: TemplateDesign, student: Optional[StudentRecord],
               settings: Optional[Mapping] = None) -> RenderedDocument:
        return self.render_batch([CardSpec(design, student, settings)])

    def render_batch(self, cards: Sequence[CardSpec]) -> RenderedDocument:
        if not self._busy.acquire(blocking=False):
            raise RuntimeError("DocumentRenderer is already building a document; "
                               "use one renderer per document")
        try:
            prepared = []
            for i, spec in enumerate(cards):
                try:
                    prepared.append(self.prepare(spec.design, spec.student, spec.settings))
                except ConfigurationError as e:
                    raise ConfigurationError(f"card {i + 1}: {e}") from e

            sources = [item.image_source for card in prepared for item in card.items]
            sources += [card.background_source for card in prepared]
            self._images = self.fetcher_factory().fetch_many(s for s in sources if s)

            buf = BytesIO()
            self._canvas = rl_canvas.Canvas(buf, pageCompression=1)
            self._canvas.setCreator("idcard-studio")
            self._canvas.setTitle("ID cards")
            pages = [self._draw_page(i, card) for i, card in enumerate(prepared)]
            self._canvas.save()
            logger.info("Rendered %d card page(s)", len(pages))
            return RenderedDocument(buf.getvalue(), pages)
        finally:
            self._canvas = None
            self._images = {}
            self._busy.release()

    # ------------------------------------------------------------------
    # Page painting
    # ------------------------------------------------------------------

    def _draw_page(self, index: int, card: PreparedCard) -> PageInfo:
        dims = card.design.dimensions
        page = PageInfo(index, dims.width, dims.height)
        c = self._canvas
        c.setPageSize((dims.width * mm, dims.height * mm))

        self._draw_background(card, page)
        for item in card.items:
            if item.kind == "text":
                self._draw_text(item, dims.height)
            else:
                self._draw_image(item, dims.height, page)

        for warning in page.warnings:
            logger.warning("Card %d: %s", index + 1, warning)
        c.showPage()
        return page

    def _fill_page(self, color: HexColor, page: PageInfo) -> None:
        c = self._canvas
        c.setFillColor(color)
        c.rect(0, 0, page.width_mm * mm, page.height_mm * mm, stroke=0, fill=1)

    def _draw_background(self, card: PreparedCard, page: PageInfo) -> None:
        bg = card.design.background
        if bg.kind == "solid":
            self._fill_page(_hex(bg.value), page)
        elif bg.kind == "gradient":
            color = to_hex(parse_gradient(bg.value).first_color)
            page.warnings.append(f"gradient background approximated by solid {color}")
            self._fill_page(HexColor(color), page)
        else:
            img = self._images.get(card.background_source) if card.background_source else None
            if img is None:
                page.warnings.append("background image unavailable, filled white")
                self._fill_page(HexColor("#ffffff"), page)
                return
            self._fill_page(HexColor("#ffffff"), page)
            self._place_image(img, 0, 0, page.width_mm, page.height_mm, page.height_mm)

    def _place_image(self, img, left, top, width, height, page_h) -> None:
        fitted = cover_fit(img, mm_to_px(width, self.dpi), mm_to_px(height, self.dpi))
        self._canvas.drawImage(ImageReader(fitted), left * mm, (page_h - top - height) * mm,
                               width * mm, height * mm, mask="auto")

    def _draw_text(self, item: CardItem, page_h: float) -> None:
        if not item.text:
            return
        style = item.element.style
        left, top, width, _ = item.box.box
        size_mm = style.effective_font_size
        size_pt = size_mm * mm
        font = pdf_font_name(style.effective_font_family, style.is_bold)

        lines = []
        for paragraph in item.text.split("\n"):
            lines.extend(simpleSplit(paragraph, font, size_pt, width * mm) or [""])

        c = self._canvas
        c.setFillColor(_hex(style.effective_color))
        c.setFont(font, size_pt)
        align = style.effective_text_align
        for i, line in enumerate(lines):
            baseline = top + size_mm * (FIRST_BASELINE + i * LINE_HEIGHT)
            y = (page_h - baseline) * mm
            if align == "center":
                c.drawCentredString((left + width / 2) * mm, y, line)
            elif align == "right":
                c.drawRightString((left + width) * mm, y, line)
            else:
                c.drawString(left * mm, y, line)

    def _draw_image(self, item: CardItem, page_h: float, page: PageInfo) -> None:
        left, top, width, height = item.box.box
        if width <= 0 or height <= 0:
            return
        img = self._images.get(item.image_source) if item.image_source else None
        if img is not None:
            self._place_image(img, left, top, width, height, page_h)
            return

        page.placeholders.append(item.element.id)
        if item.image_source:
            page.warnings.append(f"image {item.element.id!r} unavailable: {item.image_source}")
        c = self._canvas
        c.saveState()
        c.setFillColor(HexColor(PLACEHOLDER_FILL))
        c.setStrokeColor(HexColor(PLACEHOLDER_BORDER))
        c.setLineWidth(0.2 * mm)
        c.setDash(0.8 * mm, 0.5 * mm)
        c.rect(left * mm, (page_h - top - height) * mm, width * mm, height * mm, stroke=1, fill=1)
        size_mm = min(PLACEHOLDER_FONT_SIZE, height / 3)
        c.setFillColor(HexColor(PLACEHOLDER_TEXT))
        c.setFont("Helvetica", size_mm * mm)
        # Cap height is about 0.7em; shift the baseline to center it
        c.drawCentredString((left + width / 2) * mm,
                            (page_h - top - height / 2 - size_mm * 0.35) * mm,
                            item.placeholder)
        c.restoreState()
