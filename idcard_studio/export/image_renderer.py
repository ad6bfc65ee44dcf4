"""Renders a single card image using Pillow."""

import math
from typing import List, Mapping, Optional

from PIL import Image, ImageDraw

from idcard_studio import config
from idcard_studio.engine.layout import absolute_mm
from idcard_studio.export.base import FIRST_BASELINE, LINE_HEIGHT, CardItem, CardRenderer, PreparedCard
from idcard_studio.export.images import (
    PLACEHOLDER_BORDER, PLACEHOLDER_FILL, PLACEHOLDER_FONT_SIZE, PLACEHOLDER_TEXT,
    ImageFetcher, cover_fit,
)
from idcard_studio.models.student import StudentRecord
from idcard_studio.models.template_design import TemplateDesign
from idcard_studio.utils.colors import LinearGradient, parse_color, parse_gradient
from idcard_studio.utils.fonts import load_pil_font
from idcard_studio.utils.image_utils import MM_PER_INCH


def gradient_image(gradient: LinearGradient, width: int, height: int) -> Image.Image:
    """Paint a CSS-style linear gradient.

    A square strip with the colour ramp running top to bottom (CSS 180deg)
    is rotated to the requested angle and the card is cut from its center.
    """
    rad = math.radians(gradient.angle)
    line = abs(width * math.sin(rad)) + abs(height * math.cos(rad))
    side = int(math.ceil(math.hypot(width, height))) + 2
    start = (side - line) / 2

    column = Image.new("RGB", (1, side))
    column.putdata([
        gradient.color_at(min(max((i - start) / line, 0.0), 1.0))
        for i in range(side)
    ])
    square = column.resize((side, side), Image.NEAREST)
    rotated = square.rotate(180 - gradient.angle, resample=Image.BICUBIC)
    left, top = (side - width) // 2, (side - height) // 2
    return rotated.crop((left, top, left + width, top + height))


def _wrap(draw: ImageDraw.ImageDraw, text: str, font, max_width: float) -> List[str]:
    """Greedy word wrap; a single over-long word stays on its own line."""
    lines = []
    for paragraph in text.split("\n"):
        current = ""
        for word in paragraph.split(" "):
            candidate = f"{current} {word}" if current else word
            if current and draw.textlength(candidate, font=font) > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate
        lines.append(current)
    return lines


class ImageRenderer(CardRenderer):
    """Raster card at a fixed DPI; the output size is the card size exactly."""

    def __init__(self, dpi: int = None, fetcher: Optional[ImageFetcher] = None):
        self.dpi = dpi or config.RENDER_DPI
        self.px_per_mm = self.dpi / MM_PER_INCH
        self.target = absolute_mm(self.px_per_mm)
        self.fetcher = fetcher

    def render(self, design: TemplateDesign, student: Optional[StudentRecord],
               settings: Optional[Mapping] = None) -> Image.Image:
        """Render a complete card for one student.

        Returns:
            RGB PIL Image of the card at ``self.dpi``.
        """
        card = self.prepare(design, student, settings)
        fetcher = self.fetcher or ImageFetcher()
        fetcher.fetch_many([i.image_source for i in card.items if i.image_source]
                           + [card.background_source or ""])

        size = (max(1, round(card.layout.width)), max(1, round(card.layout.height)))
        image = self._background(card, size, fetcher)
        draw = ImageDraw.Draw(image)

        for item in card.items:
            if item.kind == "text":
                self._draw_text(draw, item, card.layout.font_scale)
            else:
                self._draw_image(image, draw, item, card.layout.font_scale, fetcher)
        return image.convert("RGB")

    def _background(self, card: PreparedCard, size, fetcher: ImageFetcher) -> Image.Image:
        bg = card.design.background
        if bg.kind == "gradient":
            return gradient_image(parse_gradient(bg.value), *size).convert("RGBA")
        if bg.kind == "solid":
            return Image.new("RGBA", size, parse_color(bg.value))
        base = Image.new("RGBA", size, "white")
        img = fetcher.get(card.background_source) if card.background_source else None
        if img is not None:
            base.alpha_composite(cover_fit(img, *size))
        return base

    def _draw_text(self, draw: ImageDraw.ImageDraw, item: CardItem, font_scale: float) -> None:
        if not item.text:
            return
        style = item.element.style
        size_px = style.effective_font_size * font_scale
        font = load_pil_font(style.effective_font_family, style.is_bold, size_px)
        left, top, width, _ = item.box.box
        align = style.effective_text_align
        color = parse_color(style.effective_color)

        for i, line in enumerate(_wrap(draw, item.text, font, width)):
            y = top + size_px * (FIRST_BASELINE + i * LINE_HEIGHT)
            if align == "center":
                xy, anchor = (left + width / 2, y), "ms"
            elif align == "right":
                xy, anchor = (left + width, y), "rs"
            else:
                xy, anchor = (left, y), "ls"
            draw.text(xy, line, fill=color, font=font, anchor=anchor)

    def _draw_image(self, image: Image.Image, draw: ImageDraw.ImageDraw, item: CardItem,
                    font_scale: float, fetcher: ImageFetcher) -> None:
        left, top, width, height = (round(v) for v in item.box.box)
        if width <= 0 or height <= 0:
            return
        img = fetcher.get(item.image_source) if item.image_source else None
        if img is not None:
            fitted = cover_fit(img, width, height)
            image.paste(fitted, (left, top), fitted)
            return

        draw.rectangle((left, top, left + width - 1, top + height - 1), fill=PLACEHOLDER_FILL)
        dash = max(2, int(font_scale * 0.8))
        for x in range(left, left + width, dash * 2):
            end = min(x + dash, left + width - 1)
            draw.line((x, top, end, top), fill=PLACEHOLDER_BORDER)
            draw.line((x, top + height - 1, end, top + height - 1), fill=PLACEHOLDER_BORDER)
        for y in range(top, top + height, dash * 2):
            end = min(y + dash, top + height - 1)
            draw.line((left, y, left, end), fill=PLACEHOLDER_BORDER)
            draw.line((left + width - 1, y, left + width - 1, end), fill=PLACEHOLDER_BORDER)
        size_px = min(PLACEHOLDER_FONT_SIZE, item.box.height / font_scale / 3) * font_scale
        font = load_pil_font("DejaVu Sans", False, size_px)
        draw.text((left + width / 2, top + height / 2), item.placeholder,
                  fill=PLACEHOLDER_TEXT, font=font, anchor="mm")
