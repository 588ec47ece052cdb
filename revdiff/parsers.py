"""
Parsers for the text git prints when asked what changed.

Every parser here is pure and forgiving: a line it does not understand is
skipped and the rest of the output is still parsed. Nothing raises on
malformed input, you just get fewer records back.
"""

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from revdiff.models import FileChangeRecord, Revision, Status, StatusEntry

logger = logging.getLogger(__name__)

BINARY_MARKER = '-'

# Field separator used by `revision_log_format()`; subjects may contain '|'.
LOG_FIELD_SEPARATOR = '\x1f'


###############################################################################
# Status classification
###############################################################################

_STATUS_CODES = {
    'A': Status.ADDED,
    'D': Status.DELETED,
    'M': Status.MODIFIED,
    'R': Status.RENAMED,
    'C': Status.COPIED,
    'U': Status.UNMERGED,
    '?': Status.UNKNOWN,
}

# Checked in order; the first word found in the token wins.
_STATUS_WORDS = [
    ('new file', Status.ADDED),
    ('added', Status.ADDED),
    ('deleted', Status.DELETED),
    ('renamed', Status.RENAMED),
    ('copied', Status.COPIED),
    ('unmerged', Status.UNMERGED),
    ('untracked', Status.UNKNOWN),
]


def classify_status(token: str) -> Status:
    """
    Maps a raw status token to a Status.

    Single-letter git codes match exactly. Anything else (free text such as
    "deleted file" or a `--stat` path segment) is searched for status words,
    and falls back to MODIFIED.
    """
    stripped = token.strip()
    if stripped in _STATUS_CODES:
        return _STATUS_CODES[stripped]
    lowered = stripped.lower()
    for word, status in _STATUS_WORDS:
        if word in lowered:
            return status
    return Status.MODIFIED


def _status_from_counts(additions: int, deletions: int) -> Status:
    if deletions == 0 and additions > 0:
        return Status.ADDED
    if additions == 0 and deletions > 0:
        return Status.DELETED
    return Status.MODIFIED


###############################################################################
# Rename notation
###############################################################################

_BRACE_RENAME_RE = re.compile(r'^(?P<prefix>.*?)\{(?P<old>[^{}]*) => (?P<new>[^{}]*)\}(?P<suffix>.*)$')
_PLAIN_RENAME_RE = re.compile(r'^(?P<old>.+?) => (?P<new>.+)$')


def split_rename(path: str) -> Tuple[str, Optional[str]]:
    """
    Expands git's compact rename notation into (new_path, old_path).

        src/{a => b}/x.py  ->  ("src/b/x.py", "src/a/x.py")
        old.txt => new.txt ->  ("new.txt", "old.txt")

    Paths without a rename come back as (path, None).
    """
    match = _BRACE_RENAME_RE.match(path)
    if match:
        prefix, suffix = match.group('prefix'), match.group('suffix')
        old = _join_rename_part(prefix, match.group('old'), suffix)
        new = _join_rename_part(prefix, match.group('new'), suffix)
        return new, old
    match = _PLAIN_RENAME_RE.match(path)
    if match:
        return match.group('new').strip(), match.group('old').strip()
    return path, None


def _join_rename_part(prefix: str, middle: str, suffix: str) -> str:
    # "{ => sub}/x.py" has an empty side; it must become "x.py", not "/x.py"
    joined = re.sub(r'/+', '/', prefix + middle + suffix)
    if not prefix and joined.startswith('/'):
        joined = joined[1:]
    return joined


###############################################################################
# --numstat
###############################################################################

_NUMSTAT_RE = re.compile(r'^(\d+|-)\s+(\d+|-)\s+(.+)$')


def parse_numeric_stat(text: str) -> List[FileChangeRecord]:
    """
    Parses `--numstat` output: `<added>\\t<deleted>\\t<path>` per line.

    A `-` in either count marks a binary file. Anything that is not a stat
    line (commit headers from `git show`, blank lines) is ignored.
    """
    records: List[FileChangeRecord] = []
    for line in text.splitlines():
        line = line.rstrip()
        if not line:
            continue
        match = _NUMSTAT_RE.match(line)
        if not match:
            logger.debug(f"Skipping non-numstat line: {line!r}")
            continue

        added_raw, deleted_raw, raw_path = match.groups()
        path, old_path = split_rename(raw_path.strip())

        if added_raw == BINARY_MARKER or deleted_raw == BINARY_MARKER:
            records.append(FileChangeRecord.binary_file(path, old_path=old_path))
            continue

        additions = int(added_raw)
        deletions = int(deleted_raw)
        status = Status.RENAMED if old_path is not None else _status_from_counts(additions, deletions)
        records.append(FileChangeRecord.of(path, additions, deletions, status, old_path=old_path))
    return records


###############################################################################
# --stat
###############################################################################

_SUMMARY_RE = re.compile(r'^\s*\d+\s+files?\s+changed\b', re.IGNORECASE)
_SIMILARITY_SUFFIX_RE = re.compile(r'\s+\([^)]+\)\s*$')
_TOTAL_RE = re.compile(r'^(\d+)')
_BIN_RE = re.compile(r'^Bin\b', re.IGNORECASE)
_INSERTIONS_RE = re.compile(r'(\d+)\s+insertions?\(\+\)')
_DELETIONS_RE = re.compile(r'(\d+)\s+deletions?\(-\)')
# Signed counts such as "5 +3 -2"; the digits must follow the sign directly.
_SIGNED_PLUS_RE = re.compile(r'(?<![\w+])\+(\d+)')
_SIGNED_MINUS_RE = re.compile(r'(?<![\w-])-(\d+)')
_BAR_RE = re.compile(r'^\d+\s+([+-]+)$')


def parse_human_stat(text: str) -> List[FileChangeRecord]:
    """
    Parses `--stat` output: `<path> | <N> <+/- bar>` or `<path> | Bin a -> b bytes`.

    Parsing stops at the "N files changed" summary. Explicit counts
    (`3 insertions(+)`, `+3 -1`) are used when present. The `+`/`-` bar is
    scaled by git, so it is only trusted when it is all one glyph. Otherwise
    the total is split evenly: floor(total / 2) additions and the remainder
    as deletions.
    """
    records: List[FileChangeRecord] = []
    for line in text.splitlines():
        line = line.rstrip()
        if not line:
            continue
        if _SUMMARY_RE.match(line):
            break
        if '|' not in line:
            logger.debug(f"Skipping non-stat line: {line!r}")
            continue

        path_part, stats_part = line.split('|', 1)
        stats_part = stats_part.strip()
        path = _SIMILARITY_SUFFIX_RE.sub('', path_part).strip()
        if not path or not stats_part:
            continue
        path, old_path = split_rename(path)

        if _BIN_RE.match(stats_part):
            records.append(FileChangeRecord.binary_file(path, old_path=old_path))
            continue

        total_match = _TOTAL_RE.match(stats_part)
        if not total_match:
            logger.debug(f"Skipping stat line without a count: {line!r}")
            continue
        total = int(total_match.group(1))

        additions_match = _INSERTIONS_RE.search(stats_part) or _SIGNED_PLUS_RE.search(stats_part)
        deletions_match = _DELETIONS_RE.search(stats_part) or _SIGNED_MINUS_RE.search(stats_part)
        additions = int(additions_match.group(1)) if additions_match else 0
        deletions = int(deletions_match.group(1)) if deletions_match else 0

        if total > 0 and additions == 0 and deletions == 0:
            bar = _BAR_RE.match(stats_part)
            glyphs = set(bar.group(1)) if bar else set()
            if glyphs == {'+'}:
                additions = total
            elif glyphs == {'-'}:
                deletions = total
            else:
                additions = total // 2
                deletions = total - additions

        if deletions == 0 and additions > 0 and additions == total:
            status = Status.ADDED
        elif additions == 0 and deletions > 0 and deletions == total:
            status = Status.DELETED
        elif old_path is not None:
            status = Status.RENAMED
        else:
            status = classify_status(path_part)

        records.append(FileChangeRecord.of(path, additions, deletions, status, old_path=old_path))
    return records


###############################################################################
# --name-status
###############################################################################

_NAME_STATUS_RE = re.compile(r'^([ADMRCU?])(\d*)$')


def parse_name_status(text: str) -> List[FileChangeRecord]:
    """
    Parses `--name-status` output: `<code>\\t<path>` per line.

    Only the leading letter of the code matters (`R100` is a rename). Renames
    and copies print two paths, old then new; the record takes the new path
    and keeps the old one in `old_path`. Counts are not part of this format
    and are left at zero.
    """
    records: List[FileChangeRecord] = []
    for line in text.splitlines():
        line = line.rstrip('\r\n')
        if not line.strip():
            continue
        fields = line.split('\t')
        if len(fields) < 2:
            # Space separated: a single path may hold spaces, two paths cannot be told apart
            code, _, rest = line.strip().partition(' ')
            if code[:1] in ('R', 'C'):
                logger.debug(f"Skipping rename line without tabs: {line!r}")
                continue
            fields = [code, rest.strip()]

        code = fields[0].strip()
        if not _NAME_STATUS_RE.match(code):
            logger.debug(f"Skipping name-status line with unknown code: {line!r}")
            continue
        status = classify_status(code[0])

        paths = [p for p in fields[1:] if p]
        if not paths:
            logger.debug(f"Skipping name-status line without a path: {line!r}")
            continue
        old_path: Optional[str] = None
        if status in (Status.RENAMED, Status.COPIED) and len(paths) >= 2:
            old_path, path = paths[0], paths[1]
        else:
            path = paths[0]
        records.append(FileChangeRecord(path=path, status=status, old_path=old_path))
    return records


###############################################################################
# git log
###############################################################################

def revision_log_format() -> str:
    """The `--format=` argument whose output `parse_revision_log` reads."""
    return '%x1f'.join(['%H', '%an', '%ct', '%s', '%P', '%D'])


def parse_refs(refs: str) -> Tuple[str, ...]:
    return tuple(ref.strip() for ref in refs.split(',') if ref.strip())


def parse_revision_log(text: str) -> List[Revision]:
    revisions: List[Revision] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        fields = line.split(LOG_FIELD_SEPARATOR)
        if len(fields) < 4:
            logger.debug(f"Skipping malformed log line: {line!r}")
            continue
        revision_id, author, timestamp_raw, message = fields[:4]
        parents = fields[4] if len(fields) > 4 else ''
        refs = fields[5] if len(fields) > 5 else ''
        try:
            timestamp = datetime.fromtimestamp(int(timestamp_raw), tz=timezone.utc)
        except ValueError:
            logger.debug(f"Skipping log line with bad timestamp: {line!r}")
            continue
        revisions.append(Revision(
            id=revision_id.strip(),
            message=message,
            author=author,
            timestamp=timestamp,
            parents=tuple(parents.split()),
            refs=parse_refs(refs),
        ))
    return revisions


###############################################################################
# git status --porcelain
###############################################################################

def parse_porcelain_status(text: str) -> List[StatusEntry]:
    """Parses `git status --porcelain=v1`: `XY path` or `XY old -> new`."""
    entries: List[StatusEntry] = []
    for line in text.splitlines():
        if len(line) < 4 or line[2] != ' ':
            if line.strip():
                logger.debug(f"Skipping malformed status line: {line!r}")
            continue
        index_token, worktree_token, rest = line[0], line[1], line[3:]
        old_path: Optional[str] = None
        if ' -> ' in rest and (index_token in 'RC' or worktree_token in 'RC'):
            old_path, rest = rest.split(' -> ', 1)
        entries.append(StatusEntry(
            path=_unquote(rest),
            index_token=index_token,
            worktree_token=worktree_token,
            old_path=_unquote(old_path) if old_path is not None else None,
        ))
    return entries


def _unquote(path: str) -> str:
    # git quotes paths with spaces or special characters
    if len(path) >= 2 and path.startswith('"') and path.endswith('"'):
        # octal escapes are UTF-8 bytes: "\303\251" is "é"
        raw = path[1:-1].encode('utf-8').decode('unicode_escape').encode('latin-1')
        return raw.decode('utf-8', errors='replace')
    return path


###############################################################################
# Unified diff helpers
###############################################################################

_HUNK_RE = re.compile(r'^@@ -(\d+(?:,\d+)?) \+(\d+(?:,\d+)?) @@(.*)$')


def _range_length(hunk_range: str) -> int:
    # `@@ -3 +3 @@` omits the length when it is 1
    _, _, length = hunk_range.partition(',')
    return int(length) if length else 1


def reverse_diff(diff: str) -> str:
    """
    Flips the polarity of a unified diff.

    Body lines swap their leading `+` and `-`. The `---`/`+++` file headers
    and the ranges in `@@` hunk headers are swapped too, so the result is
    still a well-formed diff of the opposite direction.

    Hunk bodies are consumed by the line counts of their `@@` header, so a
    removed line that reads `-- x` is never taken for a file header.
    """
    lines = diff.split('\n')
    out: List[str] = []
    old_left = new_left = 0
    i = 0
    while i < len(lines):
        line = lines[i]
        if old_left > 0 or new_left > 0:
            if line.startswith('+'):
                out.append('-' + line[1:])
                new_left -= 1
            elif line.startswith('-'):
                out.append('+' + line[1:])
                old_left -= 1
            else:
                out.append(line)
                if not line.startswith('\\'):
                    old_left -= 1
                    new_left -= 1
            i += 1
            continue

        if line.startswith('--- ') and i + 1 < len(lines) and lines[i + 1].startswith('+++ '):
            out.append('--- ' + lines[i + 1][4:])
            out.append('+++ ' + line[4:])
            i += 2
            continue
        hunk = _HUNK_RE.match(line)
        if line.startswith('new file mode '):
            out.append('deleted file mode ' + line[len('new file mode '):])
        elif line.startswith('deleted file mode '):
            out.append('new file mode ' + line[len('deleted file mode '):])
        elif hunk:
            old_range, new_range, rest = hunk.groups()
            out.append(f"@@ -{new_range} +{old_range} @@{rest}")
            old_left, new_left = _range_length(old_range), _range_length(new_range)
        elif line.startswith('+'):
            out.append('-' + line[1:])
        elif line.startswith('-'):
            out.append('+' + line[1:])
        else:
            out.append(line)
        i += 1
    return '\n'.join(out)


def count_diff_lines(diff: str) -> Tuple[int, int]:
    """Counts (additions, deletions) in unified diff text, ignoring file headers."""
    additions = deletions = 0
    in_hunk = False
    for line in diff.splitlines():
        if line.startswith('diff '):
            in_hunk = False
        elif line.startswith('@@'):
            in_hunk = True
        if not in_hunk and (line.startswith('+++') or line.startswith('---')):
            continue
        if line.startswith('+'):
            additions += 1
        elif line.startswith('-'):
            deletions += 1
    return additions, deletions


__all__ = [
    "classify_status",
    "split_rename",
    "parse_numeric_stat",
    "parse_human_stat",
    "parse_name_status",
    "revision_log_format",
    "parse_refs",
    "parse_revision_log",
    "parse_porcelain_status",
    "reverse_diff",
    "count_diff_lines",
]
