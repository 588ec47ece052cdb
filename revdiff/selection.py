from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple


@dataclass(frozen=True)
class SelectionSnapshot:
    """
    The selected revision ids at one point in time, ordered by their position
    in the revision list. The list is newest first, so `first` is the newest
    selected revision and `last` the oldest.
    """
    ids: Tuple[str, ...] = ()

    @property
    def first(self) -> str:
        assert self.ids, "Empty selection has no first revision"
        return self.ids[0]

    @property
    def last(self) -> str:
        assert self.ids, "Empty selection has no last revision"
        return self.ids[-1]

    @property
    def single(self) -> bool:
        return len(self.ids) == 1

    def __len__(self) -> int:
        return len(self.ids)

    def __iter__(self):
        return iter(self.ids)

    def __bool__(self) -> bool:
        return bool(self.ids)

    @classmethod
    def of(cls, *ids: str) -> 'SelectionSnapshot':
        return cls(tuple(ids))


class Selection:
    # Invariant: every id in `selected` (and `last_anchor`, if set) is a key of
    # `positions`. Replacing the revision list drops the selection outright.
    positions: Dict[str, int]
    selected: Set[str]
    last_anchor: Optional[str]

    def __init__(self, revision_ids: Iterable[str] = ()):
        self.revision_ids: List[str] = []
        self.positions = {}
        self.selected = set()
        self.last_anchor = None
        self.replace_revisions(revision_ids)

    def replace_revisions(self, revision_ids: Iterable[str]) -> None:
        """
        Installs a refreshed or re-filtered revision list.

        Positions from the old list mean nothing in the new one, so the
        selection and the anchor are discarded rather than carried over.
        """
        self.revision_ids = list(revision_ids)
        self.positions = {rid: i for i, rid in enumerate(self.revision_ids)}
        assert len(self.positions) == len(self.revision_ids), "Duplicate revision ids in list"
        self.clear()

    def clear(self) -> None:
        self.selected = set()
        self.last_anchor = None

    def select_single(self, revision_id: str) -> None:
        if revision_id not in self.positions:
            return
        self.selected = {revision_id}
        self.last_anchor = revision_id

    def toggle(self, revision_id: str) -> None:
        if revision_id not in self.positions:
            return
        if revision_id in self.selected:
            self.selected.discard(revision_id)
        else:
            self.selected.add(revision_id)
        self.last_anchor = revision_id

    def extend_range(self, revision_id: str) -> None:
        """
        Adds every revision between the anchor and `revision_id`, inclusive.

        Existing selections are kept. Does nothing when there is no anchor or
        either end is not in the current list.
        """
        if self.last_anchor is None:
            return
        p0 = self.positions.get(self.last_anchor)
        p1 = self.positions.get(revision_id)
        if p0 is None or p1 is None:
            return
        lo, hi = min(p0, p1), max(p0, p1)
        self.selected.update(self.revision_ids[lo:hi + 1])

    def snapshot(self) -> SelectionSnapshot:
        return SelectionSnapshot(tuple(sorted(self.selected, key=self.positions.__getitem__)))

    def __contains__(self, revision_id: str) -> bool:
        return revision_id in self.selected

    def __len__(self) -> int:
        return len(self.selected)

    def __repr__(self) -> str:
        return f"Selection({list(self.snapshot())}, anchor={self.last_anchor})"
