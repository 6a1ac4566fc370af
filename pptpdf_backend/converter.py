from __future__ import annotations

import logging
import os
import shutil
import subprocess
from functools import lru_cache
from pathlib import Path
from typing import Optional

from .config import CONVERT_TIMEOUT_SECONDS, SOFFICE_PATH
from .errors import ConversionFailedError, ConversionTimeoutError, NoOutputError, SofficeSpawnError


logger = logging.getLogger(__name__)

# Well-known install locations, tried after SOFFICE_PATH and before PATH lookup.
SOFFICE_CANDIDATES = (
    r"C:\Program Files\LibreOffice\program\soffice.exe",
    r"C:\Program Files (x86)\LibreOffice\program\soffice.exe",
    "/usr/bin/soffice",
    "/usr/bin/libreoffice",
    "/usr/local/bin/soffice",
    "/Applications/LibreOffice.app/Contents/MacOS/soffice",
)

# Keep only the end of stderr; soffice can be chatty about fonts and Java.
_STDERR_TAIL = 2000


def find_soffice(override: Optional[str] = None) -> str:
    """Resolve the soffice binary.

    Order: explicit override (SOFFICE_PATH), known install paths, PATH lookup.
    Falls back to the bare name so the spawn error names the real problem.
    """
    if override:
        return override
    for candidate in SOFFICE_CANDIDATES:
        if os.path.exists(candidate):
            return candidate
    for name in ("soffice", "libreoffice"):
        found = shutil.which(name)
        if found:
            return found
    return "soffice"


@lru_cache(maxsize=1)
def soffice_binary() -> str:
    binary = find_soffice(SOFFICE_PATH)
    logger.info("Using soffice binary: %s", binary)
    return binary


def build_command(
    binary: str,
    input_path: Path,
    outdir: Path,
    target_format: str,
    profile_dir: Optional[Path] = None,
) -> list[str]:
    cmd = [binary]
    if profile_dir is not None:
        # Private user profile: instances sharing one hand their job to the first and exit 0.
        cmd.append(f"-env:UserInstallation={profile_dir.resolve().as_uri()}")
    return cmd + [
        "--headless",
        "--invisible",
        "--convert-to",
        target_format,
        "--outdir",
        str(outdir),
        str(input_path),
    ]


def _tail(text: Optional[str]) -> str:
    text = (text or "").strip()
    return text[-_STDERR_TAIL:]


def run_soffice(
    input_path: Path,
    outdir: Path,
    target_format: str = "pdf",
    timeout: float = CONVERT_TIMEOUT_SECONDS,
    profile_dir: Optional[Path] = None,
) -> None:
    """Run one headless soffice conversion and wait for it.

    subprocess.run kills the child when the timeout expires. Raises one of the
    external-tool errors on spawn failure, timeout or non-zero exit.
    """
    cmd = build_command(soffice_binary(), input_path, outdir, target_format, profile_dir)
    logger.info("Converting %s to %s", input_path.name, target_format)
    try:
        proc = subprocess.run(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning("soffice timed out after %ss on %s", timeout, input_path.name)
        raise ConversionTimeoutError(timeout)
    except OSError as e:
        logger.warning("Could not start soffice: %s", e)
        raise SofficeSpawnError(str(e))

    if proc.returncode != 0:
        stderr = _tail(proc.stderr)
        logger.warning("soffice exited with %s on %s: %s", proc.returncode, input_path.name, stderr)
        raise ConversionFailedError(proc.returncode, stderr or None)


def convert_to_pdf(
    input_path: Path,
    outdir: Path,
    timeout: float = CONVERT_TIMEOUT_SECONDS,
    profile_dir: Optional[Path] = None,
) -> Path:
    """Convert a presentation to PDF and return the produced file."""
    run_soffice(input_path, outdir, "pdf", timeout=timeout, profile_dir=profile_dir)
    produced = outdir / f"{input_path.stem}.pdf"
    if not produced.is_file():
        raise NoOutputError()
    logger.info("Converted %s", input_path.name)
    return produced


def convert_to_png(
    input_path: Path,
    outdir: Path,
    timeout: float = CONVERT_TIMEOUT_SECONDS,
    profile_dir: Optional[Path] = None,
) -> Path:
    """Render the first slide to PNG and return it.

    LibreOffice names the image <stem>.png, but some builds export one file
    per slide (<stem>-0001.png, ...); pick the first in sorted order.
    """
    run_soffice(input_path, outdir, "png", timeout=timeout, profile_dir=profile_dir)
    images = sorted(p for p in outdir.iterdir() if p.is_file() and p.suffix.lower() == ".png")
    if not images:
        raise NoOutputError("Preview generation failed: no image produced.")
    return images[0]
