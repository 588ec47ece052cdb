from revdiff.backend import GitBackend
from revdiff.messages import file_records, info, success
from revdiff.working_tree import working_changes

async def status(backend: GitBackend) -> None:
    changes = await working_changes(backend)
    if changes.is_clean:
        success("Working tree clean")
        return
    if changes.staged:
        info("Staged")
        file_records(changes.staged)
    if changes.unstaged:
        info("Not staged")
        file_records(changes.unstaged)
