from __future__ import annotations

import re
import unicodedata
from pathlib import Path

from .config import MAX_APP_NAME_BYTES
from .errors import InvalidNameError


# Path separators and characters reserved on common filesystems.
_RESERVED_CHARS_RE = re.compile(r'[/\\?<>:*|"]')
# C0 and C1 control characters.
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x80-\x9f]")
_WINDOWS_RESERVED_RE = re.compile(r"^(con|prn|aux|nul|com[0-9]|lpt[0-9])(\..*)?$", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")
_UUID4_SUFFIX_RE = re.compile(
    r"-[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}(\.zip)?$"
)


def _truncate_utf8(value: str, max_bytes: int) -> str:
    encoded = value.encode("utf-8")
    if len(encoded) <= max_bytes:
        return value
    # Drop any partial multi-byte sequence left at the cut.
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def sanitize_app_name(name: str) -> str:
    """Reduce an untrusted app name to a token safe as a file/directory name.

    Removes separators, reserved and control characters, leading dots (no
    hidden files, no "..") and trailing dots/spaces (Windows). Device names
    such as CON or LPT1 are rejected outright.
    """
    if not isinstance(name, str):
        raise InvalidNameError("App name must be a string")

    cleaned = unicodedata.normalize("NFC", name)
    cleaned = _CONTROL_CHARS_RE.sub("", cleaned)
    cleaned = _RESERVED_CHARS_RE.sub("", cleaned)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    cleaned = cleaned.lstrip(".").strip()
    cleaned = _truncate_utf8(cleaned, MAX_APP_NAME_BYTES)
    cleaned = cleaned.rstrip(". ")

    if not cleaned or _WINDOWS_RESERVED_RE.match(cleaned):
        raise InvalidNameError("App name is empty after sanitization", app_name=name)
    return cleaned


def looks_like_workspace_name(name: str) -> bool:
    """True for "<token>-<uuid4>" directories and their ".zip" archives."""
    return bool(_UUID4_SUFFIX_RE.search(name or ""))


def safe_join(base_dir: Path, *parts: str) -> Path:
    """Join paths and ensure the result stays within base_dir."""
    base_dir = base_dir.resolve()
    candidate = base_dir
    for part in parts:
        candidate = candidate / part
    resolved = candidate.resolve()
    if resolved == base_dir:
        return resolved
    if base_dir not in resolved.parents:
        raise ValueError("Path traversal attempt")
    return resolved
