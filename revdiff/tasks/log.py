from typing import Optional

from revdiff.backend import GitBackend
from revdiff.messages import info

async def log(backend: GitBackend, branch: Optional[str], exclude: Optional[str], limit: int) -> None:
    revisions = await backend.revision_list(branch, limit, exclude)
    if not revisions:
        info("No revisions")
        return
    for revision in revisions:
        refs = f" ({', '.join(revision.refs)})" if revision.refs else ""
        when = revision.timestamp.strftime('%Y-%m-%d')
        print(f"{revision.short_id} {when} {revision.author}: {revision.message}{refs}")
