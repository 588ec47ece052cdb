import logging
from typing import Optional

from revdiff.backend import Backend
from revdiff.engine import compute_change_set
from revdiff.models import ChangeSet, ComparisonTarget
from revdiff.selection import SelectionSnapshot

logger = logging.getLogger(__name__)


class ComparisonSession:
    """
    Orders change set requests coming from one interactive view.

    Each request takes the next generation number. A request whose result
    arrives after a newer request was started returns None instead of its
    result; only the latest request ever reaches the caller. Queries already
    running are left to finish.
    """
    backend: Backend
    generation: int

    def __init__(self, backend: Backend):
        self.backend = backend
        self.generation = 0

    def invalidate(self) -> int:
        """Supersedes every request in flight, e.g. after the revision list was reloaded."""
        self.generation += 1
        return self.generation

    async def request(self, selection: SelectionSnapshot, target: ComparisonTarget,
                      path: Optional[str] = None) -> Optional[ChangeSet]:
        generation = self.invalidate()
        changes = await compute_change_set(selection, target, self.backend, path)
        if generation != self.generation:
            logger.debug(f"Discarding stale result of request {generation}; latest is {self.generation}")
            return None
        return changes
