"""Interactive designer renderer.

Produces a retained-mode scene graph instead of drawing directly; the UI
layer (see ``gui/canvas_editor.py``) applies the changes reported by
``diff_scenes`` to its own widgets. Scene units are millimetres times the
editor magnification.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from idcard_studio import config
from idcard_studio.engine.layout import absolute_mm
from idcard_studio.export.base import FIRST_BASELINE, LINE_HEIGHT, CardRenderer, PreparedCard
from idcard_studio.export.images import (
    PLACEHOLDER_BORDER, PLACEHOLDER_FILL, PLACEHOLDER_FONT_SIZE, PLACEHOLDER_TEXT,
)
from idcard_studio.models.student import StudentRecord
from idcard_studio.models.template_design import TemplateDesign
from idcard_studio.utils.colors import parse_gradient, to_hex

ROOT_KEY = "card"


@dataclass(frozen=True)
class SceneNode:
    key: str
    kind: str  # "card", "text", "image" or "placeholder"
    props: Dict[str, Any] = field(default_factory=dict)
    element_id: Optional[str] = None

    def contains(self, x: float, y: float) -> bool:
        p = self.props
        return p["x"] <= x <= p["x"] + p["width"] and p["y"] <= y <= p["y"] + p["height"]

    def to_dict(self) -> dict:
        return {"key": self.key, "kind": self.kind, "elementId": self.element_id,
                "props": dict(self.props)}


@dataclass(frozen=True)
class SceneGraph:
    root: SceneNode
    children: Tuple[SceneNode, ...]
    scale: float

    @property
    def keys(self) -> List[str]:
        return [n.key for n in self.children]

    def node(self, key: str) -> SceneNode:
        if key == ROOT_KEY:
            return self.root
        for n in self.children:
            if n.key == key:
                return n
        raise KeyError(key)

    def hit_test(self, x: float, y: float) -> Optional[str]:
        """Element id of the topmost node under a scene point."""
        for n in reversed(self.children):
            if n.contains(x, y):
                return n.element_id
        return None

    def to_design_point(self, x: float, y: float) -> Tuple[float, float]:
        return (x / self.scale, y / self.scale)

    def to_dict(self) -> dict:
        return {"scale": self.scale, "root": self.root.to_dict(),
                "children": [n.to_dict() for n in self.children]}


@dataclass(frozen=True)
class SceneChange:
    op: str  # "add", "remove", "update" or "reorder"
    key: str
    node: Optional[SceneNode] = None
    index: Optional[int] = None
    order: Optional[Tuple[str, ...]] = None


def _background_props(design: TemplateDesign, background_source: Optional[str]) -> dict:
    bg = design.background
    if bg.kind == "gradient":
        return {"background": "gradient", "css": bg.value,
                "fallback": to_hex(parse_gradient(bg.value).first_color)}
    if bg.kind == "image":
        return {"background": "image", "source": background_source, "fallback": "#ffffff"}
    return {"background": "solid", "color": bg.value}


def build_scene(card: PreparedCard, scale: float) -> SceneGraph:
    layout = card.layout
    root = SceneNode(ROOT_KEY, "card", dict(
        width=layout.width, height=layout.height, clip=True,
        **_background_props(card.design, card.background_source)))

    seen: Dict[str, int] = {}
    nodes = []
    for item in card.items:
        el = item.element
        count = seen.get(el.id, 0)
        seen[el.id] = count + 1
        key = el.id if count == 0 else f"{el.id}#{count}"
        box = dict(x=item.box.left, y=item.box.top,
                   width=item.box.width, height=item.box.height)

        if item.kind == "text":
            size = el.style.effective_font_size * layout.font_scale
            nodes.append(SceneNode(key, "text", dict(
                box,
                text=item.text,
                font_family=el.style.effective_font_family,
                font_size=size,
                bold=el.style.is_bold,
                color=el.style.effective_color,
                align=el.style.effective_text_align,
                line_height=size * LINE_HEIGHT,
                baseline=size * FIRST_BASELINE,
                wrap_width=item.box.width,
            ), el.id))
        elif item.image_source:
            nodes.append(SceneNode(key, "image", dict(box, source=item.image_source, fit="cover"), el.id))
        else:
            nodes.append(SceneNode(key, "placeholder", dict(
                box,
                label=item.placeholder,
                fill=PLACEHOLDER_FILL,
                border=PLACEHOLDER_BORDER,
                border_style="dashed",
                text_color=PLACEHOLDER_TEXT,
                font_size=PLACEHOLDER_FONT_SIZE * layout.font_scale,
            ), el.id))
    return SceneGraph(root, tuple(nodes), scale)


def diff_scenes(old: Optional[SceneGraph], new: SceneGraph) -> List[SceneChange]:
    """Minimal set of changes turning ``old`` into ``new``."""
    if old is None:
        changes = [SceneChange("add", ROOT_KEY, new.root)]
        changes += [SceneChange("add", n.key, n, i) for i, n in enumerate(new.children)]
        return changes

    changes = []
    if old.root != new.root:
        changes.append(SceneChange("update", ROOT_KEY, new.root))

    old_nodes = {n.key: n for n in old.children}
    new_keys = set(new.keys)
    for key in old.keys:
        if key not in new_keys:
            changes.append(SceneChange("remove", key))
    for i, n in enumerate(new.children):
        previous = old_nodes.get(n.key)
        if previous is None:
            changes.append(SceneChange("add", n.key, n, i))
        elif previous != n:
            changes.append(SceneChange("update", n.key, n, i))

    surviving = [k for k in old.keys if k in new_keys]
    if surviving != [k for k in new.keys if k in old_nodes]:
        changes.append(SceneChange("reorder", ROOT_KEY, order=tuple(new.keys)))
    return changes


class InteractiveRenderer(CardRenderer):
    """Renders a design into a ``SceneGraph`` at a fixed magnification."""

    def __init__(self, scale: float = None):
        self.scale = config.EDITOR_SCALE if scale is None else scale
        self.target = absolute_mm(self.scale)

    def render(self, design: TemplateDesign, student: Optional[StudentRecord],
               settings: Optional[Mapping] = None) -> SceneGraph:
        return build_scene(self.prepare(design, student, settings), self.scale)
