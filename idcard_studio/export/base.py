"""Shared render pipeline: validate, substitute, lay out, then paint.

Every renderer walks the same ``PreparedCard`` so text, image sources and
placeholders come out identical whatever the output medium.
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from idcard_studio.engine import substitution
from idcard_studio.engine.layout import RenderTarget, ResolvedElement, ResolvedLayout, resolve_layout
from idcard_studio.models.student import StudentRecord
from idcard_studio.models.template_design import TemplateDesign

logger = logging.getLogger(__name__)

# Text metrics in em, used by every renderer for visual parity
LINE_HEIGHT = 1.2
ASCENT = 0.8
FIRST_BASELINE = (LINE_HEIGHT - 1.0) / 2 + ASCENT


@dataclass(frozen=True)
class CardItem:
    """One paintable element after substitution and layout."""
    box: ResolvedElement
    text: str = ""
    image_source: Optional[str] = None
    placeholder: str = ""

    @property
    def element(self):
        return self.box.element

    @property
    def kind(self) -> str:
        return self.box.element.kind


@dataclass(frozen=True)
class PreparedCard:
    design: TemplateDesign
    layout: ResolvedLayout
    items: Tuple[CardItem, ...]
    background_source: Optional[str] = None


@dataclass(frozen=True)
class CardSpec:
    """One (design, student, settings) tuple of a batch."""
    design: TemplateDesign
    student: Optional[StudentRecord] = None
    settings: Optional[Mapping] = None


def prepare_card(design: TemplateDesign, student: Optional[StudentRecord],
                 settings: Optional[Mapping], target: RenderTarget) -> PreparedCard:
    """Raises ConfigurationError before anything is painted."""
    design.validate()
    settings = settings or {}
    layout = resolve_layout(design, target)

    items = []
    for box in layout.elements:
        el = box.element
        if el.kind == "text":
            items.append(CardItem(box, text=substitution.resolve(el.content, student, settings)))
        elif el.kind == "image":
            items.append(CardItem(
                box,
                image_source=substitution.resolve_image_source(el.content, student, settings),
                placeholder=substitution.placeholder_label(el.content),
            ))
        else:
            logger.debug("Skipping element %r of unsupported kind %r", el.id, el.kind)

    background_source = None
    if design.background.kind == "image":
        background_source = substitution.resolve_image_source(
            design.background.value, student, settings)
    return PreparedCard(design, layout, tuple(items), background_source)


class CardRenderer:
    """Base class: subclasses set ``target`` and implement ``render``."""

    target: RenderTarget

    def prepare(self, design: TemplateDesign, student: Optional[StudentRecord],
                settings: Optional[Mapping] = None) -> PreparedCard:
        return prepare_card(design, student, settings, self.target)

    def render(self, design: TemplateDesign, student: Optional[StudentRecord],
               settings: Optional[Mapping] = None):
        raise NotImplementedError
