import asyncio
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import pytest

from revdiff.backend import BackendInvocationError
from revdiff.models import Revision, StatusEntry


class FakeBackend:
    """
    Backend that answers from canned output and records every call.

    `show` output is keyed by (revision, path); `diff` output by
    (rev_range, path, cached). Anything not scripted comes back empty.
    """

    def __init__(self):
        self.calls: List[Tuple[Any, ...]] = []
        self.shows: Dict[Tuple[str, Optional[str]], str] = {}
        self.diffs: Dict[Tuple[Optional[str], Optional[str], bool], str] = {}
        self.trees: Dict[Optional[str], Set[str]] = {}
        self.working_files: Dict[str, bytes] = {}
        self.status: List[StatusEntry] = []
        self.revisions: List[Revision] = []
        self.roots: Set[str] = set()
        self.failing: Set[str] = set()
        self.gates: Dict[str, asyncio.Event] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    def on_show(self, revision: str, output: str, path: Optional[str] = None) -> 'FakeBackend':
        self.shows[(revision, path)] = output
        return self

    def on_diff(self, rev_range: Optional[str], output: str, path: Optional[str] = None,
                cached: bool = False) -> 'FakeBackend':
        self.diffs[(rev_range, path, cached)] = output
        return self

    def with_file(self, revision: Optional[str], path: str) -> 'FakeBackend':
        self.trees.setdefault(revision, set()).add(path)
        return self

    def root(self, revision: str) -> 'FakeBackend':
        """Marks `revision` as a commit without parents."""
        self.roots.add(revision)
        return self

    def fail(self, method: str) -> 'FakeBackend':
        self.failing.add(method)
        return self

    def gate(self, key: str) -> asyncio.Event:
        """Calls touching `key` wait until the returned event is set."""
        return self.gates.setdefault(key, asyncio.Event())

    def methods(self) -> List[str]:
        return [call[0] for call in self.calls]

    async def _enter(self, method: str, *args: Any):
        self.calls.append((method, *args))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            for key, event in self.gates.items():
                if key in args:
                    await event.wait()
        finally:
            self.in_flight -= 1
        if method in self.failing:
            raise BackendInvocationError(f"git {method} {' '.join(str(a) for a in args if a)}", "fatal: bad revision")

    async def show(self, revision: str, flags: Sequence[str] = (), path: Optional[str] = None) -> str:
        await self._enter('show', revision, tuple(flags), path)
        return self.shows.get((revision, path), '')

    async def diff(self, flags: Sequence[str] = (), rev_range: Optional[str] = None,
                   path: Optional[str] = None) -> str:
        await self._enter('diff', tuple(flags), rev_range, path)
        return self.diffs.get((rev_range, path, '--cached' in flags), '')

    async def file_exists_at(self, revision: Optional[str], path: str) -> bool:
        await self._enter('file_exists_at', revision, path)
        return path in self.trees.get(revision, set())

    async def read_working_file(self, path: str) -> bytes:
        await self._enter('read_working_file', path)
        return self.working_files[path]

    async def working_tree_status(self) -> List[StatusEntry]:
        await self._enter('working_tree_status')
        return list(self.status)

    async def revision_list(self, branch: Optional[str] = None, limit: int = 100,
                            exclude: Optional[str] = None) -> List[Revision]:
        await self._enter('revision_list', branch, limit, exclude)
        return self.revisions[:limit]

    async def has_parent(self, revision: str) -> bool:
        await self._enter('has_parent', revision)
        return revision not in self.roots


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()
