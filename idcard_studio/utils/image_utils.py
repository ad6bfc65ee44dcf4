"""Scale factor and coordinate conversion helpers."""

from typing import Tuple

MM_PER_INCH = 25.4


def mm_to_px(value_mm: float, dpi: float) -> float:
    return value_mm * dpi / MM_PER_INCH


def compute_scale_factor(
    content_width: float,
    content_height: float,
    view_width: float,
    view_height: float,
) -> float:
    """Uniform scale that fits content inside a view."""
    if content_width <= 0 or content_height <= 0:
        return 1.0
    return min(view_width / content_width, view_height / content_height)


def design_to_view(
    x: float, y: float, scale: float, offset_x: float = 0, offset_y: float = 0
) -> Tuple[float, float]:
    """Millimetres on the card -> view coordinates."""
    return (x * scale + offset_x, y * scale + offset_y)


def view_to_design(
    vx: float, vy: float, scale: float, offset_x: float = 0, offset_y: float = 0
) -> Tuple[float, float]:
    """View coordinates -> millimetres on the card."""
    if scale == 0:
        return (0.0, 0.0)
    return ((vx - offset_x) / scale, (vy - offset_y) / scale)


def cover_crop_box(
    src_width: int, src_height: int, box_width: float, box_height: float
) -> Tuple[int, int, int, int]:
    """Centered crop of the source that has the box's aspect ratio."""
    if box_width <= 0 or box_height <= 0:
        return (0, 0, src_width, src_height)
    box_ratio = box_width / box_height
    if src_width / src_height > box_ratio:
        w = int(round(src_height * box_ratio))
        left = (src_width - w) // 2
        return (left, 0, left + w, src_height)
    h = int(round(src_width / box_ratio))
    top = (src_height - h) // 2
    return (0, top, src_width, top + h)
