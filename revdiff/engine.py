"""
Turns a selection of revisions and a comparison target into a ChangeSet.

Which two endpoints get diffed:

    selection  target                records / file diff
    ---------  --------------------  -----------------------------------------
    1          PreviousRevision      show <id>
    n          PreviousRevision      diff <oldest>~1..<newest>
    1          NamedBranch(b)        diff b..<id>
    n          NamedBranch(b)        diff b..<newest>
    1 (HEAD)   WorkingTree           diff HEAD, plus untracked files
    1          WorkingTree           diff <id>..HEAD, polarity reversed
    n          WorkingTree           diff <oldest>~1..HEAD

A root commit has no `~1`; the empty tree stands in for its parent.

A multi-revision selection is always a single two-endpoint diff, never a sum
of per-revision diffs. `compute_revision_breakdown` lists revisions one by
one instead.
"""

import asyncio
import hashlib
import logging
from typing import List, Optional

from revdiff.backend import Backend, BackendInvocationError
from revdiff.models import (
    HEAD,
    ChangeSet,
    ChangeSetWarning,
    ComparisonTarget,
    FileChangeRecord,
    Status,
)
from revdiff.parsers import parse_numeric_stat, reverse_diff
from revdiff.selection import SelectionSnapshot

logger = logging.getLogger(__name__)

NUMSTAT = ('--numstat',)
# `git show` prints the commit header unless told otherwise; merges are
# compared against their first parent.
SHOW_FLAGS = ('--format=', '--diff-merges=first-parent')

EMPTY_BLOB_ABBREV = '0000000'
# Id git gives the tree with no entries; it resolves in every repository.
EMPTY_TREE = '4b825dc642cb6eb9a060e54bf8d69288fbee4904'


################################################################################
# Entry points
################################################################################

async def compute_change_set(selection: SelectionSnapshot,
                             target: ComparisonTarget,
                             backend: Backend,
                             path: Optional[str] = None) -> ChangeSet:
    """
    Computes the change set for `selection` against `target`.

    Without `path` the result carries one record per changed file. With
    `path` it carries the unified diff of that file alone and no records.

    Backend failures are not raised: the result is an empty change set
    whose `warning` says which command failed.
    """
    if not selection:
        return ChangeSet.empty()
    try:
        if path is None:
            return ChangeSet.of(await _records(selection, target, backend))
        diff = await _file_diff(selection, target, backend, path)
        return ChangeSet.of_diff(diff) if diff else ChangeSet.empty()
    except BackendInvocationError as e:
        logger.warning(f"Comparing {list(selection)} with {target} failed: {e}")
        return ChangeSet.failed(ChangeSetWarning(e.reason, e.command))


async def compute_revision_breakdown(selection: SelectionSnapshot, backend: Backend) -> ChangeSet:
    """
    Lists the records of each selected revision against its own parent,
    tagged with the owning revision and kept apart, newest revision first.
    """
    if not selection:
        return ChangeSet.empty()
    records: List[FileChangeRecord] = []
    try:
        outputs = await asyncio.gather(*(
            backend.show(revision, (*SHOW_FLAGS, *NUMSTAT)) for revision in selection
        ))
    except BackendInvocationError as e:
        logger.warning(f"Listing changes of {list(selection)} failed: {e}")
        return ChangeSet.failed(ChangeSetWarning(e.reason, e.command))
    for revision, output in zip(selection, outputs):
        records.extend(r.owned_by(revision) for r in parse_numeric_stat(output))
    # Paths repeat across revisions; these records are never merged.
    return ChangeSet(records=tuple(records))


################################################################################
# Records
################################################################################

async def _records(selection: SelectionSnapshot, target: ComparisonTarget,
                   backend: Backend) -> List[FileChangeRecord]:
    match target:
        case ComparisonTarget.PreviousRevision():
            if selection.single:
                output = await backend.show(selection.first, (*SHOW_FLAGS, *NUMSTAT))
            else:
                output = await backend.diff(NUMSTAT, await _span(selection, selection.first, backend))
            return parse_numeric_stat(output)

        case ComparisonTarget.NamedBranch(name=branch):
            output = await backend.diff(NUMSTAT, f"{branch}..{selection.first}")
            return parse_numeric_stat(output)

        case ComparisonTarget.WorkingTree():
            if not selection.single:
                output = await backend.diff(NUMSTAT, await _span(selection, HEAD, backend))
                return parse_numeric_stat(output)
            if selection.first == HEAD:
                output = await backend.diff(NUMSTAT, HEAD)
                return parse_numeric_stat(output) + await _untracked_records(backend)
            # Reads as "what the working tree lost relative to <id>"; flip it
            # so additions are what <id> has that HEAD does not.
            output = await backend.diff(NUMSTAT, f"{selection.first}..{HEAD}")
            return [r.reversed() for r in parse_numeric_stat(output)]

        case _:
            raise AssertionError(f"Unknown comparison target: {target!r}")


async def _untracked_records(backend: Backend) -> List[FileChangeRecord]:
    entries = [e for e in await backend.working_tree_status() if e.untracked]
    contents = await asyncio.gather(*(backend.read_working_file(e.path) for e in entries))
    records: List[FileChangeRecord] = []
    for entry, content in zip(entries, contents):
        if is_binary(content):
            records.append(FileChangeRecord.binary_file(entry.path))
        else:
            records.append(FileChangeRecord.of(entry.path, count_lines(content), 0, Status.ADDED))
    return records


################################################################################
# Single file diffs
################################################################################

async def _file_diff(selection: SelectionSnapshot, target: ComparisonTarget,
                     backend: Backend, path: str) -> str:
    match target:
        case ComparisonTarget.PreviousRevision():
            if selection.single:
                return await backend.show(selection.first, SHOW_FLAGS, path)
            return await backend.diff((), await _span(selection, selection.first, backend), path)

        case ComparisonTarget.NamedBranch(name=branch):
            if selection.single:
                at_revision, at_branch = await asyncio.gather(
                    backend.file_exists_at(selection.first, path),
                    backend.file_exists_at(branch, path),
                )
                if not at_revision and not at_branch:
                    return ''
            return await backend.diff((), f"{branch}..{selection.first}", path)

        case ComparisonTarget.WorkingTree():
            if not selection.single:
                return await backend.diff((), await _span(selection, HEAD, backend), path)
            if selection.first == HEAD:
                return await _working_file_diff(backend, path)
            return reverse_diff(await backend.diff((), f"{selection.first}..{HEAD}", path))

        case _:
            raise AssertionError(f"Unknown comparison target: {target!r}")


async def _working_file_diff(backend: Backend, path: str) -> str:
    at_head, in_tree = await asyncio.gather(
        backend.file_exists_at(HEAD, path),
        backend.file_exists_at(None, path),
    )
    if not at_head and not in_tree:
        return ''
    if not at_head:
        # Untracked files are invisible to `git diff HEAD`.
        return synthesize_new_file_diff(path, await backend.read_working_file(path))
    return await backend.diff((), HEAD, path)


async def _span(selection: SelectionSnapshot, newest: str, backend: Backend) -> str:
    oldest = selection.last
    if await backend.has_parent(oldest):
        return f"{oldest}~1..{newest}"
    return f"{EMPTY_TREE}..{newest}"


################################################################################
# New file synthesis
################################################################################

def is_binary(content: bytes) -> bool:
    return b'\x00' in content


def count_lines(content: bytes) -> int:
    if not content:
        return 0
    return content.count(b'\n') + (0 if content.endswith(b'\n') else 1)


def synthesize_new_file_diff(path: str, content: bytes) -> str:
    """
    Builds the unified diff git would print for `path` had it been staged
    as a new file with `content`.
    """
    # git abbreviates blob ids; the hash of the raw bytes stands in for one
    digest = hashlib.sha1(content).hexdigest()[:7]
    lines = [
        f"diff --git a/{path} b/{path}",
        "new file mode 100644",
        f"index {EMPTY_BLOB_ABBREV}..{digest}",
    ]
    if is_binary(content):
        lines.append(f"Binary files /dev/null and b/{path} differ")
        return '\n'.join(lines)
    if not content:
        return '\n'.join(lines)

    text = content.decode('utf-8', errors='replace')
    body = text.split('\n')
    if text.endswith('\n'):
        body.pop()
    lines += [
        "--- /dev/null",
        f"+++ b/{path}",
        f"@@ -0,0 +1,{len(body)} @@",
    ]
    lines += ['+' + line for line in body]
    if not text.endswith('\n'):
        lines.append("\\ No newline at end of file")
    return '\n'.join(lines)


__all__ = [
    "compute_change_set",
    "EMPTY_TREE",
    "compute_revision_breakdown",
    "synthesize_new_file_diff",
    "count_lines",
    "is_binary",
]
