"""Linear undo/redo history of whole-design snapshots for the designer."""

from typing import List, Optional

from idcard_studio.models.template_design import TemplateDesign


class DesignHistory:
    """Keeps every committed design; memory grows with the editing session."""

    def __init__(self, initial: Optional[TemplateDesign] = None, limit: int = 200):
        self.limit = limit
        self._snapshots: List[TemplateDesign] = []
        self._index = -1
        if initial is not None:
            self.push(initial)

    @property
    def current(self) -> Optional[TemplateDesign]:
        if self._index < 0:
            return None
        return self._snapshots[self._index]

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._snapshots) - 1

    def push(self, design: TemplateDesign) -> None:
        """Commit a new snapshot, dropping anything that was undone."""
        if design == self.current:
            return
        del self._snapshots[self._index + 1:]
        self._snapshots.append(design)
        if self.limit and len(self._snapshots) > self.limit:
            del self._snapshots[0]
        self._index = len(self._snapshots) - 1

    def undo(self) -> Optional[TemplateDesign]:
        if self.can_undo:
            self._index -= 1
        return self.current

    def redo(self) -> Optional[TemplateDesign]:
        if self.can_redo:
            self._index += 1
        return self.current

    def reset(self, design: Optional[TemplateDesign] = None) -> None:
        self._snapshots = []
        self._index = -1
        if design is not None:
            self.push(design)

    def __len__(self) -> int:
        return len(self._snapshots)
