"""Turns queued print jobs into printable card files.

The queue itself lives elsewhere; this module only looks up the template and
student of each job, renders, and reports a success or failure outcome that
the queue can store on the job.
"""

import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import Callable, List, Mapping, Optional, Sequence

from idcard_studio.errors import CardStudioError, StudentNotFound
from idcard_studio.export.base import CardSpec
from idcard_studio.export.image_renderer import ImageRenderer
from idcard_studio.export.pdf_renderer import DocumentRenderer
from idcard_studio.library.store import TemplateStore
from idcard_studio.models.student import StudentRecord, normalize_settings

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("pdf", "png")


@dataclass(frozen=True)
class PrintRequest:
    template_id: str
    student_id: str
    copies: int = 1
    output: str = "pdf"  # "pdf" or "png"

    @classmethod
    def from_dict(cls, d: Mapping) -> "PrintRequest":
        return cls(
            template_id=str(d.get("templateId") or d.get("template_id") or ""),
            student_id=str(d.get("studentId") or d.get("student_id") or ""),
            copies=int(d.get("copies", 1)),
            output=str(d.get("output") or "pdf").lower(),
        )


@dataclass
class PrintOutcome:
    success: bool
    data: Optional[bytes] = None
    media_type: Optional[str] = None
    pages: int = 0
    warnings: List[str] = field(default_factory=list)
    placeholders: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: str) -> "PrintOutcome":
        return cls(False, error=error)

    def to_dict(self) -> dict:
        """JSON summary; the file bytes are not included."""
        return {
            "success": self.success,
            "mediaType": self.media_type,
            "pages": self.pages,
            "warnings": list(self.warnings),
            "placeholders": list(self.placeholders),
            "error": self.error,
        }


class CardPrinter:
    """Renders print jobs against a template store and a student lookup.

    ``students`` is any mapping of student id to ``StudentRecord``;
    ``settings_provider`` returns the current school settings each time a
    job runs, so edits made between jobs are picked up.
    """

    def __init__(self, templates: TemplateStore, students: Mapping[str, StudentRecord],
                 settings_provider: Callable[[], Mapping] = dict,
                 renderer_factory: Callable[[], DocumentRenderer] = DocumentRenderer,
                 image_renderer: Optional[ImageRenderer] = None):
        self.templates = templates
        self.students = students
        self.settings_provider = settings_provider
        self.renderer_factory = renderer_factory
        self.image_renderer = image_renderer

    def _student(self, student_id: str) -> StudentRecord:
        student = self.students.get(student_id)
        if student is None:
            raise StudentNotFound(f"Unknown student: {student_id!r}")
        return student

    def _specs(self, requests: Sequence[PrintRequest], settings: Mapping) -> List[CardSpec]:
        specs = []
        for req in requests:
            if req.copies < 1:
                raise ValueError(f"copies must be >= 1, got {req.copies}")
            design = self.templates.get(req.template_id).design
            spec = CardSpec(design, self._student(req.student_id), settings)
            specs.extend([spec] * req.copies)
        return specs

    def print_card(self, request: PrintRequest) -> PrintOutcome:
        """Render a single job as PDF (all copies) or PNG (one image)."""
        if request.output not in OUTPUT_FORMATS:
            return PrintOutcome.failed(f"Unsupported output format: {request.output!r}")
        if request.output == "png":
            return self._print_png(request)
        return self.print_batch([request])

    def print_batch(self, requests: Sequence[PrintRequest]) -> PrintOutcome:
        """Render every job into one PDF, one page per card copy.

        A job whose template or student cannot be found, or whose design is
        malformed, fails the whole batch; a missing photo only puts a
        placeholder on that card's page.
        """
        try:
            settings = normalize_settings(self.settings_provider())
            specs = self._specs(requests, settings)
            doc = self.renderer_factory().render_batch(specs)
        except (CardStudioError, LookupError, ValueError) as e:
            logger.warning("Print batch failed: %s", e)
            return PrintOutcome.failed(str(e))

        for req in requests:
            self.templates.record_usage(req.template_id)
        return PrintOutcome(
            True, doc.pdf, "application/pdf", doc.page_count,
            warnings=doc.warnings,
            placeholders=[el for page in doc.pages for el in page.placeholders],
        )

    def _print_png(self, request: PrintRequest) -> PrintOutcome:
        try:
            settings = normalize_settings(self.settings_provider())
            design = self.templates.get(request.template_id).design
            student = self._student(request.student_id)
            renderer = self.image_renderer or ImageRenderer()
            img = renderer.render(design, student, settings)
        except (CardStudioError, LookupError, ValueError) as e:
            logger.warning("Print job %s/%s failed: %s",
                           request.template_id, request.student_id, e)
            return PrintOutcome.failed(str(e))

        buf = BytesIO()
        img.save(buf, format="PNG", dpi=(renderer.dpi, renderer.dpi))
        self.templates.record_usage(request.template_id)
        return PrintOutcome(True, buf.getvalue(), "image/png", 1)
