"""Credential record store.

TrustTunnel keeps its client credentials in a small TOML dialect:

    [[client]]
    username = "alice"
    password = "s3cret"  # trailing comments are allowed

This module reads and writes exactly that subset:
- ``#`` starts a comment unless it sits inside a quoted string
- a ``[[client]]`` line opens a new record
- ``username`` and ``password`` are TOML basic strings; other keys are ignored
- usernames are unique ignoring case and passwords are never empty

Writes validate the whole set first and replace the file atomically, so a
rejected or interrupted write leaves the previous file untouched.

Example:
    records = load_records(path)
    records.append(StructuredRecord("bob", new_secure_token()))
    save_records(path, records)
"""

import json
import os
import re
import sys
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from loguru import logger

from psasctl.core.exceptions import RecordParseError, RecordValidationError

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

RECORD_MARKER: Final = "[[client]]"
USERNAME_RE: Final = re.compile(r"[A-Za-z0-9._@-]{1,64}")
DEFAULT_FILE_MODE: Final = 0o600


@dataclass(frozen=True)
class StructuredRecord:
    """One persisted credential pair."""

    username: str
    password: str


def sort_records(records: Iterable[StructuredRecord]) -> list[StructuredRecord]:
    return sorted(records, key=lambda r: r.username.lower())


def strip_comment(line: str) -> str:
    """Drop an unquoted ``#`` comment and surrounding whitespace."""
    line = line.strip()
    in_string = False
    escaped = False
    for i, ch in enumerate(line):
        if ch == "\\" and in_string and not escaped:
            escaped = True
            continue
        if ch == '"' and not escaped:
            in_string = not in_string
        elif ch == "#" and not in_string:
            return line[:i].strip()
        escaped = False
    return line


def parse_assignment(line: str, key: str) -> str | None:
    """Return the string value of ``key = "..."``, or None for other lines.

    Raises:
        RecordParseError: If the key matches but the value is not a string
    """
    name, sep, raw_value = line.partition("=")
    if not sep or name.strip() != key:
        return None
    raw_value = raw_value.strip()
    try:
        value = tomllib.loads(f"v = {raw_value}")["v"]
    except tomllib.TOMLDecodeError as e:
        raise RecordParseError(f"invalid TOML string for {key}: {raw_value}") from e
    if not isinstance(value, str):
        raise RecordParseError(f"invalid TOML string for {key}: {raw_value}")
    return value


def quote_string(value: str) -> str:
    """Encode ``value`` as a TOML basic string."""
    # JSON string escapes are valid TOML, except that DEL must be escaped too
    return json.dumps(value, ensure_ascii=False).replace("\x7f", "\\u007f")


def parse_records(text: str) -> list[StructuredRecord]:
    """Parse credential records.

    Args:
        text: File contents

    Returns:
        list[StructuredRecord]: Records sorted by lowercased username

    Raises:
        RecordParseError: On a malformed value, a record without a username
            or password, or a duplicate username
    """
    records: list[StructuredRecord] = []
    seen: set[str] = set()
    in_record = False
    username: str | None = None
    password = ""

    def flush() -> None:
        if not in_record:
            return
        if not username:
            raise RecordParseError(f"client entry #{len(records) + 1} is missing username")
        if not password.strip():
            raise RecordParseError(f"client {username!r} is missing password")
        folded = username.lower()
        if folded in seen:
            raise RecordParseError(f"duplicate username: {username}")
        seen.add(folded)
        records.append(StructuredRecord(username, password))

    for raw_line in text.replace("\r", "").split("\n"):
        line = strip_comment(raw_line)
        if not line:
            continue
        if line == RECORD_MARKER:
            flush()
            in_record = True
            username, password = None, ""
            continue
        if not in_record:
            continue
        value = parse_assignment(line, "username")
        if value is not None:
            username = value.strip()
            continue
        value = parse_assignment(line, "password")
        if value is not None:
            password = value
    flush()

    return sort_records(records)


def validate_username(username: str) -> None:
    """Check a username against the allowed charset.

    Raises:
        RecordValidationError: If the username is empty or has other characters
    """
    if not username.strip():
        raise RecordValidationError("trust username is required")
    if not USERNAME_RE.fullmatch(username):
        raise RecordValidationError(
            f"invalid trust username {username!r} (allowed: A-Z a-z 0-9 . _ @ -)"
        )


def validate_records(records: Iterable[StructuredRecord]) -> None:
    """Validate a full record set before it is written.

    Raises:
        RecordValidationError: On a bad username, an empty password or a
            case-insensitive duplicate
    """
    seen: set[str] = set()
    for record in records:
        validate_username(record.username)
        if not record.password.strip():
            raise RecordValidationError(f"password is empty for user {record.username}")
        folded = record.username.lower()
        if folded in seen:
            raise RecordValidationError(f"duplicate username: {record.username}")
        seen.add(folded)


def render_records(records: Iterable[StructuredRecord]) -> str:
    """Serialize records, validating all of them first.

    Raises:
        RecordValidationError: If any record is invalid
    """
    records = list(records)
    validate_records(records)

    blocks = [
        f"{RECORD_MARKER}\n"
        f"username = {quote_string(r.username)}\n"
        f"password = {quote_string(r.password)}\n"
        for r in sort_records(records)
    ]
    return "\n".join(blocks)


def load_records(path: Path) -> list[StructuredRecord]:
    """Read and parse a credentials file.

    Raises:
        OSError: If the file cannot be read
        RecordParseError: If the contents are invalid; the message names the file
    """
    text = path.read_text(encoding="utf-8")
    try:
        records = parse_records(text)
    except RecordParseError as e:
        raise RecordParseError(f"parse {path}: {e}") from e
    logger.debug(f"Loaded {len(records)} records from {path}")
    return records


def save_records(path: Path, records: Iterable[StructuredRecord]) -> None:
    """Validate and atomically write a credentials file.

    The file is written to a temporary sibling, flushed to disk and renamed
    over ``path``. The existing file's permission bits are kept; new files
    are created ``0600``.

    Raises:
        RecordValidationError: If any record is invalid; nothing is written
        OSError: If the file cannot be written
    """
    records = list(records)
    payload = render_records(records)

    try:
        mode = path.stat().st_mode & 0o7777
    except FileNotFoundError:
        mode = DEFAULT_FILE_MODE

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.debug(f"Wrote {len(records)} records to {path}")
