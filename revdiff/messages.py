from typing import Iterable

from revdiff.models import ChangeSet, FileChangeRecord, Status
from revdiff.parsers import count_diff_lines

###############################################################################
# Output prefixes
###############################################################################

try:
    from termcolor import colored
    CHECKMARK    = '[' + colored("✓", "green") + ']'
    CROSSMARK    = '[' + colored("✗", "red") + ']'
    QUESTIONMARK = '[' + colored("?", "yellow") + ']'
    INFOMARK     = '[' + colored("i", "blue") + ']'
except ImportError:
    colored = None
    CHECKMARK    = "[✓]"
    CROSSMARK    = "[✗]"
    QUESTIONMARK = "[?]"
    INFOMARK     = "[i]"

def _message(prefix: str, raw_prefix: str, *args):
    msg = '\n'.join(str(arg) for arg in args)
    first = True
    for line in msg.split('\n'):
        if first: print(f"{prefix} {line}")
        else:     print(f"{' ' * len(raw_prefix)} {line}")
        first = False

# Use CROSSMARK for errors
def error(*msg): _message(CROSSMARK, '[✗]', *msg)

# Use QUESTIONMARK for warnings
def warning(*msg): _message(QUESTIONMARK, '[?]', *msg)

# Use INFOMARK for information
def info(*msg): _message(INFOMARK, '[i]', *msg)

# Use CHECKMARK for success
def success(*msg): _message(CHECKMARK, '[✓]', *msg)


###############################################################################
# Change set output
###############################################################################

_STATUS_COLORS = {
    Status.ADDED: "green",
    Status.DELETED: "red",
    Status.RENAMED: "cyan",
    Status.COPIED: "cyan",
    Status.UNMERGED: "magenta",
    Status.UNKNOWN: "yellow",
}

def _status_code(status: Status) -> str:
    color = _STATUS_COLORS.get(status)
    if colored is None or color is None:
        return status.code
    return colored(status.code, color)

def format_record(record: FileChangeRecord) -> str:
    if record.binary:
        counts = "binary"
    else:
        counts = f"+{record.additions} -{record.deletions}"
    path = record.path if record.old_path is None else f"{record.old_path} -> {record.path}"
    owner = f"{record.revision[:7]} " if record.revision else ""
    return f"{_status_code(record.status)} {owner}{path} ({counts})"

def file_records(items: Iterable[FileChangeRecord]):
    for record in items:
        print(f"    {format_record(record)}")

def change_set(changes: ChangeSet) -> bool:
    """
    Prints a change set. Returns False when the query behind it failed, so
    the caller can exit non-zero.
    """
    if changes.failed_query:
        warning("Could not compute changes", str(changes.warning))
        return False
    if changes.is_empty:
        info("no changes")
        return True
    if changes.diff is not None:
        additions, deletions = count_diff_lines(changes.diff)
        info(f"+{additions} -{deletions}")
        print(changes.diff)
        return True
    info(f"{len(changes.records)} file(s) changed, "
         f"{changes.additions} insertion(s)(+), {changes.deletions} deletion(s)(-)")
    file_records(changes.records)
    return True
