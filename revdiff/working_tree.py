"""
Staged and unstaged changes of the working tree, as FileChangeRecords.

Statuses come from `git status --porcelain` through the same classifier the
diff parsers use; line counts come from `git diff --numstat` against the
index (unstaged) and against HEAD from the index (staged).
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

from revdiff.backend import Backend
from revdiff.engine import count_lines, is_binary
from revdiff.models import FileChangeRecord, StatusEntry
from revdiff.parsers import classify_status, parse_numeric_stat

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkingChanges:
    staged: Tuple[FileChangeRecord, ...] = ()
    unstaged: Tuple[FileChangeRecord, ...] = ()

    @property
    def is_clean(self) -> bool:
        return not self.staged and not self.unstaged


async def working_changes(backend: Backend) -> WorkingChanges:
    entries, staged_stat, unstaged_stat = await asyncio.gather(
        backend.working_tree_status(),
        backend.diff(('--cached', '--numstat')),
        backend.diff(('--numstat',)),
    )
    staged_counts = _by_path(staged_stat)
    unstaged_counts = _by_path(unstaged_stat)

    staged: List[FileChangeRecord] = []
    unstaged: List[FileChangeRecord] = []
    for entry in entries:
        if entry.untracked:
            unstaged.append(await _untracked_record(backend, entry))
            continue
        if entry.staged:
            staged.append(_record(entry, entry.index_token, staged_counts))
        if entry.unstaged:
            unstaged.append(_record(entry, entry.worktree_token, unstaged_counts))
    logger.debug(f"{len(staged)} staged and {len(unstaged)} unstaged changes")
    return WorkingChanges(tuple(staged), tuple(unstaged))


def _by_path(numstat: str) -> Dict[str, FileChangeRecord]:
    return {r.path: r for r in parse_numeric_stat(numstat)}


def _record(entry: StatusEntry, token: str, counts: Dict[str, FileChangeRecord]) -> FileChangeRecord:
    counted = counts.get(entry.path)
    if counted is not None and counted.binary:
        return FileChangeRecord.binary_file(entry.path, old_path=entry.old_path)
    additions = counted.additions if counted else 0
    deletions = counted.deletions if counted else 0
    return FileChangeRecord.of(entry.path, additions, deletions,
                               classify_status(token), old_path=entry.old_path)


async def _untracked_record(backend: Backend, entry: StatusEntry) -> FileChangeRecord:
    content = await backend.read_working_file(entry.path)
    if is_binary(content):
        return FileChangeRecord.binary_file(entry.path)
    return FileChangeRecord.of(entry.path, count_lines(content), 0, classify_status(entry.worktree_token))


__all__ = [
    "WorkingChanges",
    "working_changes",
]
