"""Built-in template library and the in-memory template store."""

import json
import logging
import os
import threading
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional

from idcard_studio.errors import TemplateNotFound
from idcard_studio.models.template_design import TemplateDesign

logger = logging.getLogger(__name__)

SEED_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "seed_templates.json")


@dataclass(frozen=True)
class TemplateRecord:
    """A named design plus the catalogue metadata shown in the gallery."""
    id: str
    name: str
    design: TemplateDesign = field(default_factory=TemplateDesign)
    description: str = ""
    category: str = "student"
    is_default: bool = False
    is_popular: bool = False
    usage_count: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "isDefault": self.is_default,
            "isPopular": self.is_popular,
            "usageCount": self.usage_count,
            "design": self.design.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "TemplateRecord":
        return cls(
            id=str(d["id"]),
            name=d.get("name") or str(d["id"]),
            design=TemplateDesign.from_dict(d.get("design") or {}),
            description=d.get("description") or "",
            category=d.get("category") or "student",
            is_default=bool(d.get("isDefault", False)),
            is_popular=bool(d.get("isPopular", False)),
            usage_count=int(d.get("usageCount") or 0),
        )


def load_seed_templates(path: str = SEED_PATH) -> List[TemplateRecord]:
    with open(path, "r", encoding="utf-8") as f:
        return [TemplateRecord.from_dict(d) for d in json.load(f)]


class TemplateStore:
    """Thread-safe template catalogue keyed by template id.

    Records are immutable; updates replace the stored record.
    """

    def __init__(self, records: Iterable[TemplateRecord] = ()):
        self._records: Dict[str, TemplateRecord] = {}
        self._lock = threading.Lock()
        for record in records:
            self._records[record.id] = record

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, template_id: str) -> bool:
        with self._lock:
            return template_id in self._records

    def get(self, template_id: str) -> TemplateRecord:
        with self._lock:
            record = self._records.get(template_id)
        if record is None:
            raise TemplateNotFound(f"Unknown template: {template_id!r}")
        return record

    def list(self, category: Optional[str] = None) -> List[TemplateRecord]:
        """Popular templates first, then by usage, then by name."""
        with self._lock:
            records = [r for r in self._records.values()
                       if category is None or r.category == category]
        return sorted(records, key=lambda r: (not r.is_popular, -r.usage_count, r.name))

    def add(self, record: TemplateRecord) -> TemplateRecord:
        """Insert or replace a record."""
        with self._lock:
            self._records[record.id] = record
        return record

    def update_design(self, template_id: str, design: TemplateDesign) -> TemplateRecord:
        with self._lock:
            record = self._records.get(template_id)
            if record is None:
                raise TemplateNotFound(f"Unknown template: {template_id!r}")
            record = replace(record, design=design)
            self._records[template_id] = record
        return record

    def record_usage(self, template_id: str) -> None:
        """Bump the usage counter; an unknown id is only logged."""
        with self._lock:
            record = self._records.get(template_id)
            if record is None:
                logger.warning("Usage recorded for unknown template %r", template_id)
                return
            self._records[template_id] = replace(record, usage_count=record.usage_count + 1)

    def seed(self, records: Optional[Iterable[TemplateRecord]] = None, force: bool = False) -> int:
        """Load built-in templates into the store.

        Does nothing when the store already holds templates, unless ``force``
        is set, in which case existing templates are discarded first.

        Returns:
            Number of records inserted.
        """
        if records is None:
            records = load_seed_templates()
        records = list(records)
        with self._lock:
            if self._records and not force:
                return 0
            if force:
                self._records.clear()
            for record in records:
                self._records[record.id] = record
        logger.info("Seeded %d template(s)", len(records))
        return len(records)
