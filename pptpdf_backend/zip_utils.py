from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Iterable

from .errors import ArchiveError


def unique_arcnames(names: Iterable[str]) -> list[str]:
    """Make archive member names unique, case-insensitively.

    Repeats get " (2)", " (3)", ... before the suffix so two uploads called
    deck.pptx end up as deck.pdf and deck (2).pdf.
    """
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        stem, suffix = Path(name).stem, Path(name).suffix
        candidate = name
        n = 2
        while candidate.lower() in seen:
            candidate = f"{stem} ({n}){suffix}"
            n += 1
        seen.add(candidate.lower())
        result.append(candidate)
    return result


def build_pdf_zip(pdf_paths: list[Path], dest: Path) -> Path:
    """Write the given PDFs into a deflated ZIP at dest.

    Members are stored flat under their own basenames. A partial archive is
    removed before ArchiveError is raised.
    """
    if not pdf_paths:
        raise ArchiveError("nothing to archive")
    arcnames = unique_arcnames(p.name for p in pdf_paths)
    try:
        with zipfile.ZipFile(dest, mode="w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
            for path, arcname in zip(pdf_paths, arcnames):
                zf.write(path, arcname=arcname)
    except (OSError, zipfile.BadZipFile, ValueError) as e:
        try:
            dest.unlink()
        except FileNotFoundError:
            pass
        raise ArchiveError(str(e))
    return dest


def zip_member_names(path: Path) -> list[str]:
    with zipfile.ZipFile(path) as zf:
        return zf.namelist()
