"""Read-only card preview as a percentage-positioned HTML fragment."""

import os
import re
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape

from idcard_studio.engine.layout import percentage_of_container
from idcard_studio.export.base import LINE_HEIGHT, CardRenderer, PreparedCard
from idcard_studio.export.images import (
    PLACEHOLDER_BORDER, PLACEHOLDER_FILL, PLACEHOLDER_FONT_SIZE, PLACEHOLDER_TEXT,
)
from idcard_studio.models.student import StudentRecord
from idcard_studio.models.template_design import TemplateDesign
from idcard_studio.utils.colors import LinearGradient, parse_color, parse_gradient, to_hex

_env = Environment(
    loader=FileSystemLoader(os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)

_FONT_FAMILY_RE = re.compile(r"[^\w\s-]")


def _pct(value: float) -> str:
    return f"{value:.4f}".rstrip("0").rstrip(".") + "%"


def gradient_css(gradient: LinearGradient) -> str:
    stops = ", ".join(f"{to_hex(s.color)} {s.offset * 100:g}%" for s in gradient.stops)
    return f"linear-gradient({gradient.angle:g}deg, {stops})"


@dataclass(frozen=True)
class PreviewNode:
    kind: str  # "text", "image" or "placeholder"
    element_id: str
    style: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    source: Optional[str] = None

    @property
    def css(self) -> str:
        return "; ".join(f"{k}: {v}" for k, v in self.style.items())


@dataclass(frozen=True)
class PreviewCard:
    aspect_ratio: float
    background: str
    nodes: Tuple[PreviewNode, ...]

    def to_html(self) -> str:
        return _env.get_template("card_preview.html").render(card=self)


def _text_style(item, font_scale: float) -> Dict[str, str]:
    style = item.element.style
    family = _FONT_FAMILY_RE.sub("", style.effective_font_family).strip() or "sans-serif"
    return {
        "font-size": f"{style.effective_font_size * font_scale:.4f}cqw",
        "font-family": f"'{family}', sans-serif",
        "font-weight": "bold" if style.is_bold else "normal",
        "text-align": style.effective_text_align,
        "color": to_hex(parse_color(style.effective_color)),
        "line-height": f"{LINE_HEIGHT}",
    }


def build_preview(card: PreparedCard) -> PreviewCard:
    design = card.design
    bg = design.background
    if bg.kind == "gradient":
        background = gradient_css(parse_gradient(bg.value))
    elif bg.kind == "image" and card.background_source:
        background = "#ffffff center / cover no-repeat url('{}')".format(
            card.background_source.replace("'", "%27"))
    elif bg.kind == "image":
        background = "#ffffff"
    else:
        background = to_hex(parse_color(bg.value))

    font_scale = card.layout.font_scale
    nodes = []
    for item in card.items:
        box = {
            "left": _pct(item.box.left),
            "top": _pct(item.box.top),
            "width": _pct(item.box.width),
            "height": _pct(item.box.height),
        }
        el_id = item.element.id
        if item.kind == "text":
            nodes.append(PreviewNode("text", el_id, dict(box, **_text_style(item, font_scale)),
                                     text=item.text))
        elif item.image_source:
            nodes.append(PreviewNode("image", el_id, box, source=item.image_source))
        else:
            nodes.append(PreviewNode("placeholder", el_id, dict(
                box, **{
                    "background": PLACEHOLDER_FILL,
                    "border": f"1px dashed {PLACEHOLDER_BORDER}",
                    "color": PLACEHOLDER_TEXT,
                    "font-size": f"{PLACEHOLDER_FONT_SIZE * font_scale:.4f}cqw",
                }), text=item.placeholder))
    return PreviewCard(design.aspect_ratio, background, tuple(nodes))


class PreviewRenderer(CardRenderer):
    """Static thumbnail that scales to whatever container embeds it."""

    def __init__(self):
        self.target = percentage_of_container()

    def render(self, design: TemplateDesign, student: Optional[StudentRecord],
               settings: Optional[Mapping] = None) -> PreviewCard:
        return build_preview(self.prepare(design, student, settings))
