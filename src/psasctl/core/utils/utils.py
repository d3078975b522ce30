"""Common utility functions."""

import json
import re
import secrets
import string
from typing import Final

TOKEN_ALPHABET: Final = string.ascii_lowercase + string.ascii_uppercase + string.digits
DEFAULT_TOKEN_LENGTH: Final = 24

ANSI_RE: Final = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")


def mask_secret(secret: str) -> str:
    """Mask all but the first and last two characters of a secret.

    Args:
        secret: Value to mask

    Returns:
        str: Masked value, fully starred when four characters or shorter
    """
    secret = secret.strip()
    if not secret:
        return ""
    if len(secret) <= 4:
        return "*" * len(secret)
    return secret[:2] + "*" * (len(secret) - 4) + secret[-2:]


def short_text(text: str, max_len: int) -> str:
    """Truncate text to ``max_len`` characters, ending with ``...`` when cut."""
    if len(text) <= max_len:
        return text
    if max_len <= 3:
        return text[:max_len]
    return text[: max_len - 3] + "..."


def new_secure_token(length: int = DEFAULT_TOKEN_LENGTH) -> str:
    """Generate a random alphanumeric token suitable for a password."""
    if length <= 0:
        length = DEFAULT_TOKEN_LENGTH
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def new_hex_token(nbytes: int = 16) -> str:
    """Generate ``nbytes`` random bytes as lowercase hex."""
    return secrets.token_hex(nbytes if nbytes > 0 else 16)


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences."""
    return ANSI_RE.sub("", text)


def extract_json_object(text: str) -> dict:
    """Return the first complete JSON object embedded in ``text``.

    Tools that print banners or warnings around their JSON output are common,
    so this scans for the first ``{`` that decodes cleanly.

    Raises:
        ValueError: If no JSON object can be decoded
    """
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    raise ValueError("no JSON object found in output")
