"""Card template data model with JSON serialization.

A design is immutable once built; the editing helpers return new designs so
that the designer can keep whole snapshots in its undo history.
"""

from dataclasses import dataclass, field, replace
from numbers import Real
import math
from typing import Optional, Tuple
import json

from idcard_studio.errors import ConfigurationError
from idcard_studio.utils.colors import parse_color, parse_gradient

ELEMENT_KINDS = ("text", "image", "logo", "qr", "barcode")
RENDERABLE_KINDS = ("text", "image")
BACKGROUND_KINDS = ("gradient", "solid", "image")
SUPPORTED_UNITS = ("mm",)

DEFAULT_FONT_SIZE = 10.0  # mm
DEFAULT_FONT_FAMILY = "Inter"
DEFAULT_COLOR = "#000000"
DEFAULT_FONT_WEIGHT = "normal"
DEFAULT_TEXT_ALIGN = "left"
TEXT_ALIGNMENTS = ("left", "center", "right")


@dataclass(frozen=True)
class Point:
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Size:
    width: float = 0.0
    height: float = 0.0

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class ElementStyle:
    """Text styling; ``None`` means "use the documented default"."""
    font_size: Optional[float] = None
    font_family: Optional[str] = None
    color: Optional[str] = None
    font_weight: Optional[str] = None
    text_align: Optional[str] = None

    @property
    def effective_font_size(self) -> float:
        return float(self.font_size) if self.font_size else DEFAULT_FONT_SIZE

    @property
    def effective_font_family(self) -> str:
        return self.font_family or DEFAULT_FONT_FAMILY

    @property
    def effective_color(self) -> str:
        return self.color or DEFAULT_COLOR

    @property
    def effective_font_weight(self) -> str:
        return self.font_weight or DEFAULT_FONT_WEIGHT

    @property
    def effective_text_align(self) -> str:
        align = (self.text_align or DEFAULT_TEXT_ALIGN).lower()
        return align if align in TEXT_ALIGNMENTS else DEFAULT_TEXT_ALIGN

    @property
    def is_bold(self) -> bool:
        weight = self.effective_font_weight.lower()
        if weight in ("bold", "bolder"):
            return True
        return weight.isdigit() and int(weight) >= 600

    def to_dict(self) -> dict:
        d = {
            "fontSize": self.font_size,
            "fontFamily": self.font_family,
            "color": self.color,
            "fontWeight": self.font_weight,
            "textAlign": self.text_align,
        }
        return {k: v for k, v in d.items() if v is not None}

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> "ElementStyle":
        d = d or {}
        return cls(
            font_size=d.get("fontSize"),
            font_family=d.get("fontFamily"),
            color=d.get("color"),
            font_weight=None if d.get("fontWeight") is None else str(d["fontWeight"]),
            text_align=d.get("textAlign"),
        )


@dataclass(frozen=True)
class TemplateElement:
    """One positioned visual unit on the card."""
    id: str
    kind: str = "text"
    position: Point = field(default_factory=Point)
    size: Size = field(default_factory=Size)
    content: str = ""
    style: ElementStyle = field(default_factory=ElementStyle)

    @property
    def is_renderable(self) -> bool:
        return self.kind in RENDERABLE_KINDS

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "position": self.position.to_dict(),
            "size": self.size.to_dict(),
            "content": self.content,
            "style": self.style.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "TemplateElement":
        position = d.get("position") or {}
        size = d.get("size") or {}
        return cls(
            id=str(d.get("id", "")),
            # Stored templates from the web designer use "type"
            kind=str(d.get("kind") or d.get("type") or "text"),
            position=Point(position.get("x", 0.0), position.get("y", 0.0)),
            size=Size(size.get("width", 0.0), size.get("height", 0.0)),
            content=d.get("content") or "",
            style=ElementStyle.from_dict(d.get("style")),
        )


@dataclass(frozen=True)
class Background:
    kind: str = "solid"
    value: str = "#ffffff"

    def to_dict(self) -> dict:
        return {"kind": self.kind, "value": self.value}

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> "Background":
        d = d or {}
        return cls(kind=str(d.get("kind") or d.get("type") or "solid"),
                   value=d.get("value") or "")


def _check_number(value, name: str, positive: bool = False) -> None:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ConfigurationError(f"{name} must be finite, got {value!r}")
    if positive and value <= 0:
        raise ConfigurationError(f"{name} must be > 0, got {value!r}")


@dataclass(frozen=True)
class TemplateDesign:
    """Complete card layout: background, physical dimensions and elements."""
    background: Background = field(default_factory=Background)
    dimensions: Size = field(default_factory=lambda: Size(85.6, 54.0))
    elements: Tuple[TemplateElement, ...] = ()
    units: str = "mm"

    def __post_init__(self):
        # Accept any sequence but always store a tuple
        if not isinstance(self.elements, tuple):
            object.__setattr__(self, "elements", tuple(self.elements))

    @property
    def aspect_ratio(self) -> float:
        return self.dimensions.width / self.dimensions.height

    def validate(self) -> "TemplateDesign":
        """Raise ConfigurationError if the design cannot be rendered."""
        if self.units not in SUPPORTED_UNITS:
            raise ConfigurationError(f"Unsupported unit: {self.units!r}")
        _check_number(self.dimensions.width, "dimensions.width", positive=True)
        _check_number(self.dimensions.height, "dimensions.height", positive=True)

        bg = self.background
        if bg.kind not in BACKGROUND_KINDS:
            raise ConfigurationError(f"Unknown background kind: {bg.kind!r}")
        if bg.kind == "solid":
            parse_color(bg.value)
        elif bg.kind == "gradient":
            parse_gradient(bg.value)

        seen = set()
        for el in self.elements:
            label = f"element {el.id!r}"
            if el.id in seen:
                raise ConfigurationError(f"Duplicate element id: {el.id!r}")
            seen.add(el.id)
            _check_number(el.position.x, f"{label} position.x")
            _check_number(el.position.y, f"{label} position.y")
            _check_number(el.size.width, f"{label} size.width")
            _check_number(el.size.height, f"{label} size.height")
            if el.kind == "text":
                if el.style.font_size is not None:
                    _check_number(el.style.font_size, f"{label} fontSize")
                parse_color(el.style.effective_color)
        return self

    # ------------------------------------------------------------------
    # Editing (each returns a new design)
    # ------------------------------------------------------------------

    def element(self, element_id: str) -> TemplateElement:
        for el in self.elements:
            if el.id == element_id:
                return el
        raise KeyError(element_id)

    def replace_element(self, new: TemplateElement) -> "TemplateDesign":
        self.element(new.id)
        elements = tuple(new if el.id == new.id else el for el in self.elements)
        return replace(self, elements=elements)

    def move_element(self, element_id: str, x: float, y: float) -> "TemplateDesign":
        el = self.element(element_id)
        return self.replace_element(replace(el, position=Point(x, y)))

    def resize_element(self, element_id: str, width: float, height: float) -> "TemplateDesign":
        el = self.element(element_id)
        return self.replace_element(replace(el, size=Size(width, height)))

    def add_element(self, new: TemplateElement) -> "TemplateDesign":
        if any(el.id == new.id for el in self.elements):
            raise ValueError(f"Duplicate element id: {new.id!r}")
        return replace(self, elements=self.elements + (new,))

    def remove_element(self, element_id: str) -> "TemplateDesign":
        self.element(element_id)
        return replace(self, elements=tuple(el for el in self.elements if el.id != element_id))

    def with_background(self, background: Background) -> "TemplateDesign":
        return replace(self, background=background)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        d = {
            "background": self.background.to_dict(),
            "dimensions": self.dimensions.to_dict(),
            "elements": [el.to_dict() for el in self.elements],
        }
        if self.units != "mm":
            d["units"] = self.units
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "TemplateDesign":
        dims = d.get("dimensions") or {}
        return cls(
            background=Background.from_dict(d.get("background")),
            dimensions=Size(dims.get("width", 0.0), dims.get("height", 0.0)),
            elements=tuple(TemplateElement.from_dict(e) for e in d.get("elements") or []),
            units=d.get("units", "mm"),
        )

    def save_json(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

    @classmethod
    def load_json(cls, path: str) -> "TemplateDesign":
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))
