"""
Value types shared by the parsers, the comparison engine and the backends.

Nothing in here talks to git. Every type is immutable so that a result
handed to a caller can never change under it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Dict

# Marker used by callers to select "the current commit" in working tree mode.
HEAD = "HEAD"

SHORT_ID_LENGTH = 7


################################################################################
# Status
################################################################################

class Status(Enum):
    ADDED = 'A'
    DELETED = 'D'
    MODIFIED = 'M'
    RENAMED = 'R'
    COPIED = 'C'
    UNMERGED = 'U'
    UNKNOWN = '?'

    @property
    def code(self) -> str:
        return self.value

    def reversed(self) -> 'Status':
        """Status of the same change read in the opposite direction."""
        match self:
            case Status.ADDED:
                return Status.DELETED
            case Status.DELETED:
                return Status.ADDED
            case _:
                return self


################################################################################
# Revision
################################################################################

@dataclass(frozen=True)
class Revision:
    id: str
    message: str
    author: str
    timestamp: datetime
    parents: Tuple[str, ...] = ()
    refs: Tuple[str, ...] = ()

    @property
    def short_id(self) -> str:
        return self.id[:SHORT_ID_LENGTH]

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    @property
    def is_root(self) -> bool:
        return not self.parents


################################################################################
# File change records
################################################################################

@dataclass(frozen=True)
class FileChangeRecord:
    """
    One file's line counts and status within a comparison.

    `total_changes` is always `additions + deletions`. Binary files carry
    zero counts, status MODIFIED and `binary=True`.
    """
    path: str
    additions: int = 0
    deletions: int = 0
    total_changes: int = 0
    status: Status = Status.MODIFIED
    binary: bool = False
    old_path: Optional[str] = None
    revision: Optional[str] = None

    def __post_init__(self):
        assert self.additions >= 0, f"Negative additions for {self.path}: {self.additions}"
        assert self.deletions >= 0, f"Negative deletions for {self.path}: {self.deletions}"
        assert self.total_changes == self.additions + self.deletions, \
            f"Inconsistent totals for {self.path}: {self.additions}+{self.deletions} != {self.total_changes}"
        if self.binary:
            assert self.total_changes == 0, f"Binary record {self.path} must have zero counts"

    @classmethod
    def of(cls, path: str, additions: int, deletions: int,
           status: Status = Status.MODIFIED, old_path: Optional[str] = None) -> 'FileChangeRecord':
        return cls(path=path, additions=additions, deletions=deletions,
                   total_changes=additions + deletions, status=status, old_path=old_path)

    @classmethod
    def binary_file(cls, path: str, old_path: Optional[str] = None) -> 'FileChangeRecord':
        return cls(path=path, status=Status.MODIFIED, binary=True, old_path=old_path)

    def reversed(self) -> 'FileChangeRecord':
        flipped = replace(self, additions=self.deletions, deletions=self.additions,
                          status=self.status.reversed())
        if self.old_path is None:
            return flipped
        # a rename read backwards goes from the new name to the old one
        return replace(flipped, path=self.old_path, old_path=self.path)

    def owned_by(self, revision: str) -> 'FileChangeRecord':
        return replace(self, revision=revision)

    def merged_with(self, other: 'FileChangeRecord') -> 'FileChangeRecord':
        assert self.path == other.path, f"Cannot merge {self.path} with {other.path}"
        if self.binary or other.binary:
            return self
        additions = self.additions + other.additions
        deletions = self.deletions + other.deletions
        return replace(self, additions=additions, deletions=deletions,
                       total_changes=additions + deletions)


def dedupe_records(records: Iterable[FileChangeRecord]) -> Tuple[FileChangeRecord, ...]:
    """Collapses records sharing a path into the first one, keeping order."""
    by_path: Dict[str, FileChangeRecord] = {}
    for record in records:
        if record.path in by_path:
            by_path[record.path] = by_path[record.path].merged_with(record)
        else:
            by_path[record.path] = record
    return tuple(by_path.values())


################################################################################
# Comparison targets
################################################################################

class ComparisonTarget:
    PreviousRevision: type['PreviousRevision'] = None # type: ignore
    NamedBranch: type['NamedBranch'] = None # type: ignore
    WorkingTree: type['WorkingTree'] = None # type: ignore

@dataclass(frozen=True)
class PreviousRevision(ComparisonTarget):
    def __str__(self) -> str:
        return "previous revision"
ComparisonTarget.PreviousRevision = PreviousRevision

@dataclass(frozen=True)
class NamedBranch(ComparisonTarget):
    name: str

    def __post_init__(self):
        assert isinstance(self.name, str) and self.name, f"Expected branch name, got {self.name!r}"

    def __str__(self) -> str:
        return f"branch {self.name}"
ComparisonTarget.NamedBranch = NamedBranch

@dataclass(frozen=True)
class WorkingTree(ComparisonTarget):
    def __str__(self) -> str:
        return "working tree"
ComparisonTarget.WorkingTree = WorkingTree


################################################################################
# Change sets
################################################################################

@dataclass(frozen=True)
class ChangeSetWarning:
    """A backend query failed; the change set is empty because of it, not because nothing changed."""
    message: str
    command: Optional[str] = None

    def __str__(self) -> str:
        if self.command:
            return f"{self.message} ({self.command})"
        return self.message


@dataclass(frozen=True)
class ChangeSet:
    records: Tuple[FileChangeRecord, ...] = ()
    diff: Optional[str] = None
    warning: Optional[ChangeSetWarning] = None

    @classmethod
    def empty(cls) -> 'ChangeSet':
        return cls()

    @classmethod
    def failed(cls, warning: ChangeSetWarning) -> 'ChangeSet':
        return cls(warning=warning)

    @classmethod
    def of(cls, records: Iterable[FileChangeRecord]) -> 'ChangeSet':
        return cls(records=dedupe_records(records))

    @classmethod
    def of_diff(cls, diff: str) -> 'ChangeSet':
        return cls(diff=diff)

    @property
    def failed_query(self) -> bool:
        return self.warning is not None

    @property
    def is_empty(self) -> bool:
        return not self.records and not self.diff

    @property
    def paths(self) -> List[str]:
        return [r.path for r in self.records]

    def record_for(self, path: str) -> Optional[FileChangeRecord]:
        return next((r for r in self.records if r.path == path), None)

    @property
    def additions(self) -> int:
        return sum(r.additions for r in self.records)

    @property
    def deletions(self) -> int:
        return sum(r.deletions for r in self.records)


################################################################################
# Working tree status
################################################################################

@dataclass(frozen=True)
class StatusEntry:
    """One line of `git status --porcelain`: X is the index column, Y the worktree column."""
    path: str
    index_token: str
    worktree_token: str
    old_path: Optional[str] = None

    @property
    def untracked(self) -> bool:
        return self.index_token == '?' and self.worktree_token == '?'

    @property
    def staged(self) -> bool:
        return self.index_token not in (' ', '?', '!')

    @property
    def unstaged(self) -> bool:
        return self.worktree_token not in (' ', '!')


__all__ = [
    "HEAD",
    "Status",
    "Revision",
    "FileChangeRecord",
    "dedupe_records",
    "ComparisonTarget",
    "PreviousRevision",
    "NamedBranch",
    "WorkingTree",
    "ChangeSetWarning",
    "ChangeSet",
    "StatusEntry",
]
