from typing import List, Optional

from revdiff.backend import GitBackend
from revdiff.engine import compute_change_set, compute_revision_breakdown
from revdiff.messages import change_set, error
from revdiff.models import HEAD, ComparisonTarget, Revision
from revdiff.selection import Selection, SelectionSnapshot


def resolve(revisions: List[Revision], names: List[str]) -> Optional[List[str]]:
    """Maps HEAD and (possibly abbreviated) ids onto ids from `revisions`."""
    ids: List[str] = []
    for name in names:
        if name == HEAD and revisions:
            ids.append(revisions[0].id)
            continue
        matches = [r.id for r in revisions if r.id.startswith(name)]
        if len(matches) != 1:
            if matches:
                error(f"Revision {name} is ambiguous")
            else:
                error(f"Revision {name} is not among the last {len(revisions)} revisions")
            return None
        ids.append(matches[0])
    return ids


def select(revisions: List[Revision], ids: List[str], span: bool) -> SelectionSnapshot:
    selection = Selection(r.id for r in revisions)
    selection.select_single(ids[0])
    if span:
        selection.extend_range(ids[-1])
    else:
        for revision_id in ids[1:]:
            selection.toggle(revision_id)
    return selection.snapshot()


def target_of(branch: Optional[str], working: bool) -> ComparisonTarget:
    if working:
        return ComparisonTarget.WorkingTree()
    if branch is not None:
        return ComparisonTarget.NamedBranch(branch)
    return ComparisonTarget.PreviousRevision()


async def changes(backend: GitBackend, names: List[str], path: Optional[str] = None,
                  branch: Optional[str] = None, working: bool = False,
                  span: bool = False, each: bool = False) -> bool:
    """
    Prints what changed in the named revisions: one line per file, or the
    diff of `path`. Returns False when the comparison could not be made.
    """
    revisions = await backend.revision_list(limit=backend.config.revision_limit)
    ids = resolve(revisions, names)
    if ids is None:
        return False
    snapshot = select(revisions, ids, span)

    if each:
        return change_set(await compute_revision_breakdown(snapshot, backend))

    target = target_of(branch, working)
    if working and snapshot.single and snapshot.first == await backend.head():
        snapshot = SelectionSnapshot.of(HEAD)
    return change_set(await compute_change_set(snapshot, target, backend, path))
