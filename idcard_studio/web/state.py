"""In-memory application state singleton for the web card studio."""

import threading
from typing import Dict, Optional

from idcard_studio.errors import StudentNotFound
from idcard_studio.library.store import TemplateStore
from idcard_studio.models.student import StudentRecord, normalize_settings
from idcard_studio.printing import CardPrinter


class AppState:
    """Holds all session state: templates, students, school settings."""

    def __init__(self, seed: bool = True):
        self.templates: TemplateStore = TemplateStore()
        if seed:
            self.templates.seed()
        self.students: Dict[str, StudentRecord] = {}
        self.settings: dict = {}
        # Print batch tasks: {task_id: {"status": str, "progress": int, "total": int, "path": str}}
        self.export_tasks: dict = {}
        self.lock = threading.Lock()

    def student(self, student_id: Optional[str]) -> Optional[StudentRecord]:
        """Look up a student; an empty id means "no student selected"."""
        if not student_id:
            return None
        student = self.students.get(student_id)
        if student is None:
            raise StudentNotFound(f"Unknown student: {student_id!r}")
        return student

    def school_settings(self) -> dict:
        with self.lock:
            return normalize_settings(dict(self.settings))

    def printer(self) -> CardPrinter:
        return CardPrinter(self.templates, self.students, self.school_settings)


# Module-level singleton
state = AppState()
