from __future__ import annotations

import re
import uuid
from pathlib import Path

from .config import ALLOWED_PRESENTATION_EXTS


_ARTIFACT_ID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$")
_UNSAFE_CHARS_RE = re.compile(r"[\x00-\x1f<>:\"|?*]")


def new_artifact_id() -> str:
    return str(uuid.uuid4())


def normalize_artifact_id(artifact_id: str) -> str:
    """Validate and normalize an artifact id.

    Ids are capability tokens; anything that is not a canonical UUID string is
    rejected before it gets near the registry or the filesystem.
    """
    if not isinstance(artifact_id, str):
        raise ValueError("Invalid artifact id")
    artifact_id = artifact_id.strip()
    if not _ARTIFACT_ID_RE.match(artifact_id):
        raise ValueError("Invalid artifact id")
    return str(uuid.UUID(artifact_id))


def is_safe_basename(name: str) -> bool:
    """Allow only simple filenames (no directories)."""
    if not isinstance(name, str) or not name:
        return False
    if name != Path(name).name:
        return False
    if "/" in name or "\\" in name:
        return False
    if name in (".", ".."):
        return False
    return True


def sanitize_upload_name(name: str | None, fallback: str = "presentation") -> str:
    """Reduce a client-supplied filename to a safe basename.

    Browsers on Windows may send full paths; keep only the last component and
    drop characters that are illegal on common filesystems.
    """
    raw = (name or "").replace("\\", "/").split("/")[-1]
    cleaned = _UNSAFE_CHARS_RE.sub("_", raw).strip()
    if not cleaned or not is_safe_basename(cleaned):
        return fallback
    return cleaned


def has_allowed_extension(name: str | None) -> bool:
    return Path(name or "").suffix.lower() in ALLOWED_PRESENTATION_EXTS


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
