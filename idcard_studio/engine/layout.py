"""Maps a design's millimetre geometry into a renderer's coordinate space."""

import math
from dataclasses import dataclass
from typing import List, Tuple

from idcard_studio.errors import ConfigurationError
from idcard_studio.models.template_design import TemplateDesign, TemplateElement

ABSOLUTE_MM = "absolute_mm"
PERCENTAGE = "percentage_of_container"
DOCUMENT_UNITS = "document_units"
TARGET_KINDS = (ABSOLUTE_MM, PERCENTAGE, DOCUMENT_UNITS)


@dataclass(frozen=True)
class RenderTarget:
    kind: str
    scale: float = 1.0

    @property
    def unit(self) -> str:
        return "%" if self.kind == PERCENTAGE else "mm"


def absolute_mm(scale: float) -> RenderTarget:
    return RenderTarget(ABSOLUTE_MM, scale)


def percentage_of_container() -> RenderTarget:
    return RenderTarget(PERCENTAGE)


def document_units() -> RenderTarget:
    return RenderTarget(DOCUMENT_UNITS)


@dataclass(frozen=True)
class ResolvedElement:
    element: TemplateElement
    left: float
    top: float
    width: float
    height: float
    unit: str

    @property
    def box(self) -> Tuple[float, float, float, float]:
        return (self.left, self.top, self.width, self.height)

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass(frozen=True)
class ResolvedLayout:
    """Card frame plus element boxes, all in the target's units.

    For percentage targets each element box is a percentage of the card's
    own width (x, width) or height (y, height). The frame is
    ``100 x 100*H/W`` in units of container width, which keeps the aspect
    ratio, and ``font_scale`` converts millimetres into those same units.
    """
    target: RenderTarget
    width: float
    height: float
    font_scale: float
    elements: Tuple[ResolvedElement, ...]

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


def _check_design(design: TemplateDesign) -> None:
    w, h = design.dimensions.width, design.dimensions.height
    if not (w and h and math.isfinite(w) and math.isfinite(h)) or w <= 0 or h <= 0:
        raise ConfigurationError(f"Card dimensions must be positive, got {w} x {h}")


def _mapper(design: TemplateDesign, target: RenderTarget):
    """Return (sx, sy, frame_w, frame_h, font_scale) for a target."""
    w, h = design.dimensions.width, design.dimensions.height
    if target.kind == PERCENTAGE:
        return 100.0 / w, 100.0 / h, 100.0, 100.0 * h / w, 100.0 / w
    if target.kind == ABSOLUTE_MM:
        if target.scale <= 0:
            raise ConfigurationError(f"Render scale must be > 0, got {target.scale}")
        s = target.scale
        return s, s, w * s, h * s, s
    if target.kind == DOCUMENT_UNITS:
        return 1.0, 1.0, w, h, 1.0
    raise ConfigurationError(f"Unknown render target: {target.kind!r}")


def to_renderer_space(design: TemplateDesign, target: RenderTarget) -> List[ResolvedElement]:
    """Element boxes in target units, in paint order."""
    return list(resolve_layout(design, target).elements)


def resolve_layout(design: TemplateDesign, target: RenderTarget) -> ResolvedLayout:
    _check_design(design)
    sx, sy, frame_w, frame_h, font_scale = _mapper(design, target)
    elements = tuple(
        ResolvedElement(
            element=el,
            left=el.position.x * sx,
            top=el.position.y * sy,
            width=el.size.width * sx,
            height=el.size.height * sy,
            unit=target.unit,
        )
        for el in design.elements
    )
    return ResolvedLayout(target, frame_w, frame_h, font_scale, elements)
