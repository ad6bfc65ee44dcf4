"""Main application window: menu bar, toolbar, template list, canvas, status bar."""

import json
import logging
import threading
import tkinter as tk
from tkinter import ttk, filedialog, messagebox
from typing import Dict, List, Optional

from idcard_studio.errors import CardStudioError
from idcard_studio.export.base import CardSpec
from idcard_studio.export.image_renderer import ImageRenderer
from idcard_studio.export.pdf_renderer import DocumentRenderer
from idcard_studio.gui.canvas_editor import CanvasEditor
from idcard_studio.library.store import TemplateRecord, TemplateStore
from idcard_studio.models.history import DesignHistory
from idcard_studio.models.student import StudentRecord, normalize_settings
from idcard_studio.models.template_design import TemplateDesign

logger = logging.getLogger(__name__)

NO_STUDENT = "(template tokens)"


def load_roster(path: str):
    """Read students and optional school settings from a JSON file.

    Accepts either a list of student objects or
    ``{"students": [...], "settings": {...}}``.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        data = {"students": data}
    students: Dict[str, StudentRecord] = {}
    for i, row in enumerate(data.get("students") or []):
        sid = str(row.get("id") or row.get("idNumber") or i + 1)
        students[sid] = StudentRecord.from_dict(row)
    return students, normalize_settings(data.get("settings"))


class MainWindow:
    """Top-level application window."""

    def __init__(self, root: tk.Tk):
        self.root = root
        self.root.title("ID Card Studio")
        self.root.geometry("1060x640")
        self.root.minsize(800, 500)

        # Core state
        self.templates = TemplateStore()
        self.templates.seed()
        self.history = DesignHistory()
        self.students: Dict[str, StudentRecord] = {}
        self.settings = normalize_settings()
        self._record: Optional[TemplateRecord] = None
        self._records: List[TemplateRecord] = []

        self._build_menu()
        self._build_toolbar()
        self._build_main_panes()
        self._build_status_bar()

        # Wire up callbacks
        self.canvas_editor.on_element_moved = self._on_element_moved
        self.canvas_editor.on_element_selected = self._on_element_selected
        self.root.bind_all("<Control-z>", lambda e: self._undo())
        self.root.bind_all("<Control-y>", lambda e: self._redo())

        self._refresh_template_list()

    # ------------------------------------------------------------------
    # UI Construction
    # ------------------------------------------------------------------

    def _build_menu(self):
        menubar = tk.Menu(self.root)
        self.root.config(menu=menubar)

        file_menu = tk.Menu(menubar, tearoff=0)
        file_menu.add_command(label="Open Template...", command=self._load_template)
        file_menu.add_command(label="Save Template...", command=self._save_template)
        file_menu.add_separator()
        file_menu.add_command(label="Load Students...", command=self._load_students)
        file_menu.add_separator()
        file_menu.add_command(label="Export PDF...", command=self._export_pdf)
        file_menu.add_command(label="Save Card Image...", command=self._save_image)
        file_menu.add_separator()
        file_menu.add_command(label="Exit", command=self.root.quit)
        menubar.add_cascade(label="File", menu=file_menu)

        edit_menu = tk.Menu(menubar, tearoff=0)
        edit_menu.add_command(label="Undo", accelerator="Ctrl+Z", command=self._undo)
        edit_menu.add_command(label="Redo", accelerator="Ctrl+Y", command=self._redo)
        menubar.add_cascade(label="Edit", menu=edit_menu)

    def _build_toolbar(self):
        toolbar = ttk.Frame(self.root, style="Toolbar.TFrame")
        toolbar.pack(fill=tk.X, pady=(0, 1))

        pad = dict(padx=2, pady=4)
        ttk.Button(toolbar, text="Open Template", style="Toolbar.TButton",
                   command=self._load_template).pack(side=tk.LEFT, **pad)
        ttk.Button(toolbar, text="Save Template", style="Toolbar.TButton",
                   command=self._save_template).pack(side=tk.LEFT, **pad)
        ttk.Button(toolbar, text="Load Students", style="Toolbar.TButton",
                   command=self._load_students).pack(side=tk.LEFT, **pad)

        ttk.Separator(toolbar, orient=tk.VERTICAL).pack(side=tk.LEFT, fill=tk.Y, padx=6, pady=4)

        ttk.Button(toolbar, text="Undo", style="Toolbar.TButton",
                   command=self._undo).pack(side=tk.LEFT, **pad)
        ttk.Button(toolbar, text="Redo", style="Toolbar.TButton",
                   command=self._redo).pack(side=tk.LEFT, **pad)

        ttk.Separator(toolbar, orient=tk.VERTICAL).pack(side=tk.LEFT, fill=tk.Y, padx=6, pady=4)

        ttk.Label(toolbar, text="Student:", style="Toolbar.TLabel").pack(side=tk.LEFT, padx=(2, 4))
        self.student_var = tk.StringVar(value=NO_STUDENT)
        self.student_combo = ttk.Combobox(toolbar, textvariable=self.student_var,
                                          values=[NO_STUDENT], state="readonly", width=24)
        self.student_combo.pack(side=tk.LEFT, **pad)
        self.student_combo.bind("<<ComboboxSelected>>", lambda e: self._on_student_changed())

        ttk.Button(toolbar, text="Export PDF", style="Accent.TButton",
                   command=self._export_pdf).pack(side=tk.RIGHT, **pad)

    def _build_main_panes(self):
        container = ttk.Frame(self.root)
        container.pack(fill=tk.BOTH, expand=True)

        # Template list (left)
        side = ttk.Frame(container, style="Panel.TFrame")
        side.pack(side=tk.LEFT, fill=tk.Y, padx=(6, 3), pady=6)
        ttk.Label(side, text="Templates", style="Header.TLabel").pack(anchor=tk.W, pady=(0, 4))
        self.template_list = tk.Listbox(side, width=26, exportselection=False)
        self.template_list.pack(fill=tk.Y, expand=True)
        self.template_list.bind("<<ListboxSelect>>", lambda e: self._on_template_selected())

        ttk.Separator(container, orient=tk.VERTICAL).pack(side=tk.LEFT, fill=tk.Y, pady=6)

        # Canvas editor (right)
        self.canvas_editor = CanvasEditor(container)
        self.canvas_editor.pack(side=tk.LEFT, fill=tk.BOTH, expand=True, padx=(3, 6), pady=6)

    def _build_status_bar(self):
        status_frame = ttk.Frame(self.root, style="Status.TFrame")
        status_frame.pack(fill=tk.X, side=tk.BOTTOM)
        self.status_bar = ttk.Label(
            status_frame, text="Ready", style="Status.TLabel", padding=(8, 4)
        )
        self.status_bar.pack(fill=tk.X)

    # ------------------------------------------------------------------
    # Template & student selection
    # ------------------------------------------------------------------

    def _refresh_template_list(self):
        self._records = self.templates.list()
        self.template_list.delete(0, tk.END)
        for record in self._records:
            self.template_list.insert(tk.END, record.name)
        if self._records:
            self.template_list.selection_set(0)
            self._on_template_selected()

    def _on_template_selected(self):
        sel = self.template_list.curselection()
        if not sel:
            return
        self._record = self.templates.get(self._records[sel[0]].id)
        self.history.reset(self._record.design)
        self.canvas_editor.set_design(self._record.design)
        self._set_status(f"Template: {self._record.name}")

    def _current_student(self) -> Optional[StudentRecord]:
        return self.students.get(self.student_var.get())

    def _on_student_changed(self):
        self.canvas_editor.set_student(self._current_student(), self.settings)

    def _on_element_selected(self, element_id: Optional[str]):
        if element_id is not None and self.history.current is not None:
            el = self.history.current.element(element_id)
            self._set_status(f"{el.kind} '{el.id}' at ({el.position.x}, {el.position.y}) mm")

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def _commit(self, design: TemplateDesign):
        """Record an edit in the history, the store and on the canvas."""
        self.history.push(design)
        self._apply(design)

    def _apply(self, design: Optional[TemplateDesign]):
        if design is None:
            return
        if self._record is not None:
            self._record = self.templates.update_design(self._record.id, design)
        self.canvas_editor.set_design(design)

    def _on_element_moved(self, element_id: str, x: float, y: float):
        self._commit(self.history.current.move_element(element_id, x, y))
        self._set_status(f"Moved '{element_id}' to ({x}, {y}) mm")

    def _undo(self):
        if self.history.can_undo:
            self._apply(self.history.undo())

    def _redo(self):
        if self.history.can_redo:
            self._apply(self.history.redo())

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _save_template(self):
        if self.history.current is None:
            return
        path = filedialog.asksaveasfilename(
            title="Save Card Template",
            defaultextension=".json",
            filetypes=[("JSON files", "*.json")],
        )
        if not path:
            return
        try:
            self.history.current.save_json(path)
            self._set_status(f"Template saved: {path}")
        except OSError as e:
            messagebox.showerror("Error", f"Could not save template:\n{e}")

    def _load_template(self):
        path = filedialog.askopenfilename(
            title="Load Card Template",
            filetypes=[("JSON files", "*.json"), ("All files", "*.*")],
        )
        if not path:
            return
        try:
            design = TemplateDesign.load_json(path).validate()
        except (OSError, ValueError, TypeError, AttributeError) as e:
            messagebox.showerror("Error", f"Could not load template:\n{e}")
            return

        template_id = f"file:{path}"
        self.templates.add(TemplateRecord(template_id, path.rsplit("/", 1)[-1], design,
                                          category="custom"))
        self._records = self.templates.list()
        self.template_list.delete(0, tk.END)
        for i, record in enumerate(self._records):
            self.template_list.insert(tk.END, record.name)
            if record.id == template_id:
                self.template_list.selection_clear(0, tk.END)
                self.template_list.selection_set(i)
        self._on_template_selected()
        self._set_status(f"Template loaded: {path}")

    def _load_students(self):
        path = filedialog.askopenfilename(
            title="Load Students",
            filetypes=[("JSON files", "*.json"), ("All files", "*.*")],
        )
        if path:
            self.open_roster(path)

    def open_roster(self, path: str):
        """Load a student roster file and select its first student."""
        try:
            self.students, self.settings = load_roster(path)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            messagebox.showerror("Error", f"Could not load students:\n{e}")
            return

        self.student_combo.config(values=[NO_STUDENT] + list(self.students))
        self.student_var.set(next(iter(self.students), NO_STUDENT))
        self._on_student_changed()
        self._set_status(f"Loaded {len(self.students)} students")

    def _save_image(self):
        design = self.history.current
        if design is None:
            return
        path = filedialog.asksaveasfilename(
            title="Save Card Image",
            defaultextension=".png",
            filetypes=[("PNG image", "*.png"), ("JPEG image", "*.jpg")],
        )
        if not path:
            return
        try:
            renderer = ImageRenderer()
            img = renderer.render(design, self._current_student(), self.settings)
            img.save(path, dpi=(renderer.dpi, renderer.dpi))
            self._set_status(f"Card image saved: {path}")
        except (CardStudioError, OSError) as e:
            messagebox.showerror("Error", f"Could not save image:\n{e}")

    def _export_pdf(self):
        design = self.history.current
        if design is None:
            return
        if not self.students:
            messagebox.showwarning("No Data", "Please load students first.")
            return

        path = filedialog.asksaveasfilename(
            title="Export PDF",
            defaultextension=".pdf",
            filetypes=[("PDF files", "*.pdf")],
        )
        if not path:
            return

        specs = [CardSpec(design, s, self.settings) for s in self.students.values()]
        template_id = self._record.id if self._record else None
        self._set_status(f"Exporting {len(specs)} cards...")

        def run_export():
            try:
                doc = DocumentRenderer().render_batch(specs)
                doc.save(path)
            except (CardStudioError, OSError) as e:
                logger.warning("PDF export failed: %s", e)
                self.root.after(0, messagebox.showerror, "Export Error", str(e))
                return
            if template_id:
                self.templates.record_usage(template_id)
            missing = sum(1 for p in doc.pages if p.placeholders)
            msg = f"PDF exported: {path} ({doc.page_count} cards"
            msg += f", {missing} with placeholders)" if missing else ")"
            self.root.after(0, self._set_status, msg)

        threading.Thread(target=run_export, daemon=True).start()

    # ------------------------------------------------------------------
    # Status bar
    # ------------------------------------------------------------------

    def _set_status(self, text: str):
        self.status_bar.config(text=text)
