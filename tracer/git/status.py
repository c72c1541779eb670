"""Per-file change status parsing for `git diff-tree --name-status` output."""

# Status letters collapsed to the statuses recorded on a story
STATUS_ADDED = "added"
STATUS_MODIFIED = "modified"
STATUS_DELETED = "deleted"

_CODE_TO_STATUS = {
    "A": STATUS_ADDED,
    "?": STATUS_ADDED,
    "C": STATUS_ADDED,
    "D": STATUS_DELETED,
    "M": STATUS_MODIFIED,
    "R": STATUS_MODIFIED,
    "T": STATUS_MODIFIED,
    "U": STATUS_MODIFIED,
}


def status_from_code(code: str) -> str:
    """Map a status code (A, M, D, R100, ...) to added/modified/deleted.

    Unknown codes are reported as modified.
    """
    for ch in code:
        if ch in _CODE_TO_STATUS:
            return _CODE_TO_STATUS[ch]
    return STATUS_MODIFIED


def parse_name_status(output: str) -> list[tuple[str, str]]:
    """Parse `git diff --name-status` / `git show --name-status` lines."""
    changes = []
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) < 2 or not parts[0]:
            continue
        code = parts[0].strip()
        # R100<TAB>old<TAB>new
        path = parts[-1]
        changes.append((path, status_from_code(code[:1])))
    return changes
