"""Card design canvas with drag-to-move element positioning."""

import logging
import tkinter as tk
from tkinter import ttk
from typing import Callable, Dict, Mapping, Optional

from PIL import ImageTk

from idcard_studio.export.canvas_renderer import ROOT_KEY, InteractiveRenderer, SceneGraph, SceneNode, diff_scenes
from idcard_studio.export.image_renderer import gradient_image
from idcard_studio.export.images import PLACEHOLDER_BORDER, PLACEHOLDER_FILL, PLACEHOLDER_TEXT, ImageFetcher, cover_fit
from idcard_studio.models.student import StudentRecord
from idcard_studio.models.template_design import TemplateDesign
from idcard_studio.utils.colors import parse_color, parse_gradient, to_hex
from idcard_studio.utils.image_utils import compute_scale_factor

logger = logging.getLogger(__name__)

ANCHORS = {"left": tk.NW, "center": tk.N, "right": tk.NE}


class CanvasEditor(ttk.Frame):
    """Canvas that draws the card's scene graph and lets elements be dragged.

    Redraws are incremental: only the nodes reported by ``diff_scenes`` are
    touched, unless the zoom changed.
    """

    CANVAS_MAX_W = 700
    CANVAS_MAX_H = 500
    MARGIN = 20

    def __init__(self, parent, **kwargs):
        super().__init__(parent, **kwargs)
        self.design: Optional[TemplateDesign] = None
        self.student: Optional[StudentRecord] = None
        self.settings: Mapping = {}
        self.fetcher = ImageFetcher()

        # Callbacks
        self.on_element_selected: Optional[Callable[[Optional[str]], None]] = None
        self.on_element_moved: Optional[Callable[[str, float, float], None]] = None

        # Display state
        self._scene: Optional[SceneGraph] = None
        self._offset_x = 0.0
        self._offset_y = 0.0
        self._photos: Dict[str, ImageTk.PhotoImage] = {}
        self.selected: Optional[str] = None

        # Drag state
        self._drag_key: Optional[str] = None
        self._drag_start_x = 0
        self._drag_start_y = 0
        self._drag_dx = 0
        self._drag_dy = 0

        self._build_ui()

    def _build_ui(self):
        self.canvas = tk.Canvas(
            self,
            width=self.CANVAS_MAX_W,
            height=self.CANVAS_MAX_H,
            bg="#d6d6d6",
            highlightthickness=0,
        )
        self.canvas.pack(fill=tk.BOTH, expand=True)

        self.canvas.bind("<ButtonPress-1>", self._on_press)
        self.canvas.bind("<B1-Motion>", self._on_drag)
        self.canvas.bind("<ButtonRelease-1>", self._on_release)
        self.canvas.bind("<Configure>", self._on_canvas_resize)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set_design(self, design: Optional[TemplateDesign]):
        self.design = design
        self.refresh()

    def set_student(self, student: Optional[StudentRecord], settings: Mapping = None):
        self.student = student
        if settings is not None:
            self.settings = settings
        self.fetcher = ImageFetcher()
        self.refresh(full=True)

    def refresh(self, full: bool = False):
        """Re-render the design and apply the changes to the canvas."""
        if self.design is None:
            self.canvas.delete("all")
            self._scene = None
            return

        cw = self.canvas.winfo_width() or self.CANVAS_MAX_W
        ch = self.canvas.winfo_height() or self.CANVAS_MAX_H
        dims = self.design.dimensions
        scale = compute_scale_factor(dims.width, dims.height,
                                     cw - self.MARGIN, ch - self.MARGIN)
        offset = ((cw - dims.width * scale) / 2, (ch - dims.height * scale) / 2)

        scene = InteractiveRenderer(scale).render(self.design, self.student, self.settings)
        old = self._scene
        if full or old is None or old.scale != scene.scale or offset != (self._offset_x, self._offset_y):
            self.canvas.delete("all")
            self._photos.clear()
            old = None
        self._offset_x, self._offset_y = offset

        self.fetcher.fetch_many(
            n.props["source"] for n in scene.children if n.kind == "image"
        )
        for change in diff_scenes(old, scene):
            if change.op == "remove":
                self._delete(change.key)
            elif change.op == "reorder":
                for key in change.order:
                    self.canvas.tag_raise(self._tag(key))
            else:
                self._delete(change.key)
                self._draw(change.node)
                if change.key == ROOT_KEY:
                    self.canvas.tag_lower(self._tag(ROOT_KEY))
        self._scene = scene
        self.select_element(self.selected)

    def select_element(self, element_id: Optional[str]):
        """Highlight an element on the canvas."""
        self.canvas.delete("highlight")
        self.selected = element_id
        if element_id is None or self._scene is None:
            return
        for node in self._scene.children:
            if node.element_id == element_id:
                x1, y1 = self._view(node.props["x"], node.props["y"])
                x2 = x1 + node.props["width"]
                y2 = y1 + node.props["height"]
                self.canvas.create_rectangle(x1 - 2, y1 - 2, x2 + 2, y2 + 2,
                                             outline="#0078D7", width=2, tags="highlight")
                return

    # ------------------------------------------------------------------
    # Scene node drawing
    # ------------------------------------------------------------------

    @staticmethod
    def _tag(key: str) -> str:
        # Tk treats all-digit tags as item ids
        return f"node:{key}"

    def _view(self, x: float, y: float):
        return (x + self._offset_x, y + self._offset_y)

    def _delete(self, key: str):
        self.canvas.delete(self._tag(key))
        self._photos.pop(key, None)

    def _draw(self, node: SceneNode):
        tags = (self._tag(node.key), "element" if node.element_id else "card")
        if node.kind == "card":
            self._draw_card(node, tags)
        elif node.kind == "text":
            self._draw_text(node, tags)
        elif node.kind == "image":
            self._draw_image(node, tags)
        else:
            self._draw_placeholder(node, tags)

    def _draw_card(self, node: SceneNode, tags):
        p = node.props
        x1, y1 = self._view(0, 0)
        w, h = max(1, round(p["width"])), max(1, round(p["height"]))
        if p["background"] == "gradient":
            img = gradient_image(parse_gradient(p["css"]), w, h)
            self._photos[node.key] = ImageTk.PhotoImage(img)
            self.canvas.create_image(x1, y1, image=self._photos[node.key], anchor=tk.NW, tags=tags)
        elif p["background"] == "image":
            self.canvas.create_rectangle(x1, y1, x1 + w, y1 + h, fill=p["fallback"], outline="", tags=tags)
            img = self.fetcher.get(p["source"]) if p.get("source") else None
            if img is not None:
                self._photos[node.key] = ImageTk.PhotoImage(cover_fit(img, w, h))
                self.canvas.create_image(x1, y1, image=self._photos[node.key], anchor=tk.NW, tags=tags)
        else:
            self.canvas.create_rectangle(x1, y1, x1 + w, y1 + h, fill=to_hex(parse_color(p["color"])),
                                         outline="", tags=tags)
        self.canvas.create_rectangle(x1, y1, x1 + w, y1 + h, outline="#666666", width=1, tags=tags)

    def _draw_text(self, node: SceneNode, tags):
        p = node.props
        x, y = self._view(p["x"], p["y"])
        anchor = ANCHORS[p["align"]]
        if anchor == tk.N:
            x += p["width"] / 2
        elif anchor == tk.NE:
            x += p["width"]
        # Negative Tk font sizes are in pixels
        size = -max(1, round(p["font_size"]))
        self.canvas.create_text(
            x, y,
            text=p["text"],
            fill=to_hex(parse_color(p["color"])),
            font=(p["font_family"], size, "bold" if p["bold"] else "normal"),
            anchor=anchor,
            justify=p["align"],
            width=max(1, p["wrap_width"]),
            tags=tags,
        )

    def _draw_image(self, node: SceneNode, tags):
        p = node.props
        img = self.fetcher.get(p["source"])
        if img is None:
            self._draw_placeholder(node, tags)
            return
        w, h = max(1, round(p["width"])), max(1, round(p["height"]))
        self._photos[node.key] = ImageTk.PhotoImage(cover_fit(img, w, h))
        self.canvas.create_image(*self._view(p["x"], p["y"]), image=self._photos[node.key],
                                 anchor=tk.NW, tags=tags)

    def _draw_placeholder(self, node: SceneNode, tags):
        p = node.props
        x1, y1 = self._view(p["x"], p["y"])
        x2, y2 = x1 + p["width"], y1 + p["height"]
        self.canvas.create_rectangle(x1, y1, x2, y2, fill=PLACEHOLDER_FILL, outline=PLACEHOLDER_BORDER,
                                     dash=(4, 2), tags=tags)
        size = -max(1, round(p.get("font_size", 8)))
        self.canvas.create_text((x1 + x2) / 2, (y1 + y2) / 2, text=p.get("label", "Image"),
                                fill=PLACEHOLDER_TEXT, font=("DejaVu Sans", size), tags=tags)

    # ------------------------------------------------------------------
    # Drag-and-drop
    # ------------------------------------------------------------------

    def _node_for(self, element_id: str) -> Optional[SceneNode]:
        for node in self._scene.children:
            if node.element_id == element_id:
                return node
        return None

    def _on_press(self, event):
        """Select the topmost element under the pointer."""
        self._drag_key = None
        if self._scene is None:
            return
        element_id = self._scene.hit_test(event.x - self._offset_x, event.y - self._offset_y)
        self.select_element(element_id)
        if self.on_element_selected:
            self.on_element_selected(element_id)
        if element_id is None:
            return
        self._drag_key = self._node_for(element_id).key
        self._drag_start_x, self._drag_start_y = event.x, event.y
        self._drag_dx = self._drag_dy = 0

    def _on_drag(self, event):
        if self._drag_key is None:
            return
        dx = event.x - self._drag_start_x
        dy = event.y - self._drag_start_y
        self.canvas.move(self._tag(self._drag_key), dx, dy)
        self.canvas.move("highlight", dx, dy)
        self._drag_dx += dx
        self._drag_dy += dy
        self._drag_start_x, self._drag_start_y = event.x, event.y

    def _on_release(self, event):
        """Commit the dragged position back to the design, in millimetres."""
        if self._drag_key is None:
            return
        node = self._scene.node(self._drag_key)
        self._drag_key = None
        if not (self._drag_dx or self._drag_dy):
            return
        x, y = self._scene.to_design_point(node.props["x"] + self._drag_dx,
                                           node.props["y"] + self._drag_dy)
        dims = self.design.dimensions
        x = round(max(0.0, min(x, dims.width)), 1)
        y = round(max(0.0, min(y, dims.height)), 1)
        logger.debug("Moved %s to (%.1f, %.1f) mm", node.element_id, x, y)
        if self.on_element_moved:
            self.on_element_moved(node.element_id, x, y)
        else:
            self.set_design(self.design.move_element(node.element_id, x, y))

    def _on_canvas_resize(self, event):
        """Redraw when canvas is resized."""
        self.after(50, self.refresh)
