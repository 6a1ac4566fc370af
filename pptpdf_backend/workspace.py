from __future__ import annotations

import logging
import shutil
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from .config import SCRATCH_PREFIX, SCRATCH_ROOT
from .security import is_safe_basename, safe_join


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScratchWorkspace:
    job_id: str
    root: Path

    @property
    def profile_dir(self) -> Path:
        """LibreOffice user profile for this job, removed with the workspace."""
        return self.root / "lo_profile"

    def input_slot(self, index: int, filename: str) -> Path:
        """Return <root>/<index>/<filename>, creating the slot folder.

        One folder per upload keeps identically named files (and the PDFs
        soffice writes next to them) from clobbering each other.
        """
        if not is_safe_basename(filename):
            raise ValueError("Invalid filename")
        slot = safe_join(self.root, f"{index:03d}")
        slot.mkdir(parents=True, exist_ok=True)
        return safe_join(slot, filename)


def _now_epoch() -> float:
    return time.time()


def create_scratch_workspace(prefix: str = SCRATCH_PREFIX) -> ScratchWorkspace:
    SCRATCH_ROOT.mkdir(parents=True, exist_ok=True)
    job_id = uuid.uuid4().hex
    root = (SCRATCH_ROOT / f"{prefix}{job_id}").resolve()
    root.mkdir(parents=True, exist_ok=False)
    return ScratchWorkspace(job_id=job_id, root=root)


def delete_scratch_workspace(ws: ScratchWorkspace) -> None:
    if ws.root.exists():
        shutil.rmtree(ws.root, ignore_errors=True)
        logger.debug("Removed scratch dir %s", ws.root.name)


@contextmanager
def scratch_workspace(prefix: str = SCRATCH_PREFIX) -> Iterator[ScratchWorkspace]:
    """Create a per-request scratch dir and always remove it afterwards."""
    ws = create_scratch_workspace(prefix)
    try:
        yield ws
    finally:
        delete_scratch_workspace(ws)


def store_artifact(src: Path, dest_dir: Path, artifact_id: str) -> Path:
    """Copy a finished file into artifact storage as <artifact_id><suffix>."""
    dest_dir.mkdir(parents=True, exist_ok=True)
    dest = safe_join(dest_dir, f"{artifact_id}{src.suffix.lower()}")
    shutil.copyfile(src, dest)
    return dest


def delete_file(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not delete %s: %s", path.name, e)


def cleanup_stale_scratch(max_age_seconds: float, root: Path = SCRATCH_ROOT) -> int:
    """Delete scratch dirs older than max_age_seconds.

    Requests remove their own scratch dir; this only catches leftovers from a
    crashed or killed process. Returns the number of deleted directories.
    """
    if not root.exists():
        return 0
    now = _now_epoch()
    deleted = 0
    for child in root.iterdir():
        if not child.is_dir():
            continue
        try:
            age = now - child.stat().st_mtime
        except OSError:
            continue
        if age > max_age_seconds:
            shutil.rmtree(child, ignore_errors=True)
            deleted += 1
    return deleted


def cleanup_orphan_files(directory: Path, known: set[Path], max_age_seconds: float) -> int:
    """Delete old files in an artifact dir that no registry entry points at.

    Registries are in-memory, so after a restart every stored file is an orphan.
    """
    if not directory.exists():
        return 0
    now = _now_epoch()
    deleted = 0
    for child in directory.iterdir():
        if not child.is_file() or child.resolve() in known:
            continue
        try:
            age = now - child.stat().st_mtime
        except OSError:
            continue
        if age > max_age_seconds:
            delete_file(child)
            deleted += 1
    return deleted
