"""
The version-control backend contract and its GitPython implementation.

The engine only ever talks to a `Backend`. Every method is a coroutine so a
host can keep its event loop responsive while git runs; `GitBackend` pushes
each blocking GitPython call onto a worker thread.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from revdiff.config import Config, RevdiffError
from revdiff.models import Revision, StatusEntry
from revdiff.parsers import parse_porcelain_status, parse_revision_log, revision_log_format

logger = logging.getLogger(__name__)

STAT_FLAGS = ('--numstat', '--stat', '--shortstat', '--name-status', '--name-only')


class BackendInvocationError(RevdiffError):
    """A backend command could not be run or exited with an error."""

    def __init__(self, command: str, reason: str):
        super().__init__(f"{command}: {reason}")
        self.command = command
        self.reason = reason


class Backend(Protocol):
    async def show(self, revision: str, flags: Sequence[str] = (), path: Optional[str] = None) -> str: ...

    async def diff(self, flags: Sequence[str] = (), rev_range: Optional[str] = None,
                   path: Optional[str] = None) -> str: ...

    async def file_exists_at(self, revision: Optional[str], path: str) -> bool:
        """`revision=None` asks about the working tree."""
        ...

    async def read_working_file(self, path: str) -> bytes: ...

    async def working_tree_status(self) -> List[StatusEntry]: ...

    async def revision_list(self, branch: Optional[str] = None, limit: int = 100,
                            exclude: Optional[str] = None) -> List[Revision]:
        """Newest first. With `exclude`, only revisions reachable from `branch` but not from `exclude`."""
        ...

    async def has_parent(self, revision: str) -> bool:
        """False for a root commit."""
        ...


################################################################################
# GitPython
################################################################################

class GitBackend:
    repo: Repo
    config: Config

    def __init__(self, repo_path: Path | str, config: Optional[Config] = None):
        self.config = config or Config(repo_path=Path(repo_path))
        try:
            self.repo = Repo(repo_path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise BackendInvocationError('git rev-parse', f"Not a git repository: {repo_path}") from e
        assert self.repo.working_tree_dir is not None, f"Bare repositories are not supported: {repo_path}"
        self.root = Path(self.repo.working_tree_dir)

    def close(self):
        self.repo.close()

    def __enter__(self) -> 'GitBackend':
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _diff_flags(self, flags: Sequence[str]) -> List[str]:
        patch = not any(flag in STAT_FLAGS for flag in flags)
        return [*self.config.diff_flags(patch), *flags]

    async def _git(self, command: str, *args: str) -> str:
        text = ' '.join(['git', command.replace('_', '-'), *args])
        logger.debug(text)
        try:
            return await asyncio.to_thread(getattr(self.repo.git, command), *args)
        except GitCommandError as e:
            reason = (e.stderr or '').strip() or f"exit status {e.status}"
            raise BackendInvocationError(text, reason) from e
        except OSError as e:
            raise BackendInvocationError(text, str(e)) from e

    async def show(self, revision: str, flags: Sequence[str] = (), path: Optional[str] = None) -> str:
        args = [*self._diff_flags(flags), revision]
        if path is not None:
            args += ['--', path]
        return await self._git('show', *args)

    async def diff(self, flags: Sequence[str] = (), rev_range: Optional[str] = None,
                   path: Optional[str] = None) -> str:
        args = self._diff_flags(flags)
        if rev_range is not None:
            args.append(rev_range)
        if path is not None:
            args += ['--', path]
        return await self._git('diff', *args)

    async def file_exists_at(self, revision: Optional[str], path: str) -> bool:
        if revision is None:
            return await asyncio.to_thread((self.root / path).exists)
        # ls-tree prints nothing for a missing path and fails for a bad revision
        listing = await self._git('ls_tree', revision, '--', path)
        return bool(listing.strip())

    async def read_working_file(self, path: str) -> bytes:
        try:
            return await asyncio.to_thread((self.root / path).read_bytes)
        except OSError as e:
            raise BackendInvocationError(f"read {path}", str(e)) from e

    async def working_tree_status(self) -> List[StatusEntry]:
        output = await self._git('status', '--porcelain=v1', '--untracked-files=all')
        return parse_porcelain_status(output)

    async def revision_list(self, branch: Optional[str] = None, limit: int = 100,
                            exclude: Optional[str] = None) -> List[Revision]:
        args = [f'--format={revision_log_format()}', f'-n{limit}', branch or 'HEAD']
        if exclude is not None:
            args.append(f'^{exclude}')
        output = await self._git('log', *args, '--')
        return parse_revision_log(output)

    async def has_parent(self, revision: str) -> bool:
        # rev-list prints the id followed by its parents
        line = await self._git('rev_list', '--parents', '-n1', revision, '--')
        return len(line.split()) > 1

    async def head(self) -> str:
        """Full id of the commit HEAD points at."""
        return (await self._git('rev_parse', 'HEAD')).strip()


__all__ = [
    "Backend",
    "BackendInvocationError",
    "GitBackend",
]
