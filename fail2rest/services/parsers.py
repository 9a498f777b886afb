"""Line parsers for fail2ban-client text output.

fail2ban-client has no machine-readable mode. Its output is a loose tree of
"key: value" lines, for example::

    Status
    |- Number of jail:      2
    `- Jail list:   sshd, apache

The parsers below are deliberately tolerant: they work line by line, only
ever split on the first colon, and never coerce values to numbers.
"""

import re
from enum import Enum

JAIL_SECTION_MARKER = "Status for the jail:"
JAIL_LIST_MARKER = "Jail list:"

# Tree drawing that fail2ban puts in front of keys ("|- ", "`- ", "|  |- ")
_TREE_PREFIX = re.compile(r"^[\s|`\-]+")


class ParserState(Enum):
    IDLE = "idle"
    IN_JAIL_SECTION = "in_jail_section"


def split_field(line: str) -> tuple[str, str] | None:
    """Split a "key: value" line at its first colon.

    Returns None for lines without a colon or with nothing left of it.
    """
    if ":" not in line:
        return None
    key, value = line.split(":", 1)
    key = _TREE_PREFIX.sub("", key).strip()
    if not key:
        return None
    return key, value.strip()


def split_names(text: str) -> list[str]:
    """Split a comma separated list into trimmed, non-empty names."""
    return [name.strip() for name in text.split(",") if name.strip()]


def parse_server_status(output: str) -> tuple[list[str], dict[str, str]]:
    """Parse `fail2ban-client status`.

    A line that is exactly the jail section marker switches to
    IN_JAIL_SECTION; there, colon-free lines are jail names. Colon lines are
    fields in either state.
    """
    state = ParserState.IDLE
    jails: list[str] = []
    fields: dict[str, str] = {}

    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        if line == JAIL_SECTION_MARKER:
            state = ParserState.IN_JAIL_SECTION
            continue

        field = split_field(line)
        if field is not None:
            key, value = field
            fields[key] = value
        elif state is ParserState.IN_JAIL_SECTION:
            jails.extend(split_names(line))

    return jails, fields


def parse_jail_status(output: str) -> dict[str, str]:
    """Parse `fail2ban-client status <jail>` into a flat field mapping."""
    fields: dict[str, str] = {}
    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        field = split_field(line)
        if field is not None:
            key, value = field
            fields[key] = value
    return fields


def parse_jail_list(output: str) -> list[str]:
    """Extract jail names from `fail2ban-client status`.

    Either marker starts the list. Names may follow the marker on the same
    line (the usual "`- Jail list: sshd, apache" form) or come on the lines
    after it. Colon lines after the marker are fields, not names.
    """
    state = ParserState.IDLE
    jails: list[str] = []

    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        marker_end = _marker_end(line)
        if marker_end is not None:
            state = ParserState.IN_JAIL_SECTION
            jails.extend(split_names(line[marker_end:]))
            continue

        if state is ParserState.IN_JAIL_SECTION and ":" not in line:
            jails.extend(split_names(line))

    return jails


def _marker_end(line: str) -> int | None:
    for marker in (JAIL_LIST_MARKER, JAIL_SECTION_MARKER):
        index = line.find(marker)
        if index != -1:
            return index + len(marker)
    return None


def parse_banned_ips(output: str) -> list[str]:
    """One address per non-empty line; the tool is trusted here."""
    return [line.strip() for line in output.splitlines() if line.strip()]
