from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from fastapi import UploadFile

from .config import MAX_FILES, MAX_UPLOAD_BYTES
from .errors import InvalidExtensionError, NoFileUploadedError, TooManyFilesError, UploadTooLargeError
from .security import has_allowed_extension, sanitize_upload_name
from .workspace import ScratchWorkspace


@dataclass(frozen=True)
class UploadedPresentation:
    filename: str
    data: bytes


def validate_names(files: Sequence[UploadFile], max_files: int = MAX_FILES) -> None:
    """Reject the request before reading any bytes.

    Every file must be .ppt/.pptx; one bad name rejects the whole batch.
    """
    if not files:
        raise NoFileUploadedError()
    if len(files) > max_files:
        raise TooManyFilesError(max_files)
    for f in files:
        if not f.filename:
            raise NoFileUploadedError()
        if not has_allowed_extension(sanitize_upload_name(f.filename)):
            raise InvalidExtensionError(f.filename)


async def read_uploads(
    files: Optional[Sequence[UploadFile]],
    max_files: int = MAX_FILES,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> list[UploadedPresentation]:
    files = list(files or [])
    validate_names(files, max_files)

    uploads: list[UploadedPresentation] = []
    for f in files:
        # Limit read to catch oversized files without buffering all of them.
        data = await f.read(max_bytes + 1)
        if len(data) > max_bytes:
            raise UploadTooLargeError(f.filename or "")
        uploads.append(UploadedPresentation(filename=sanitize_upload_name(f.filename), data=data))
    return uploads


def write_to_workspace(ws: ScratchWorkspace, uploads: Sequence[UploadedPresentation]) -> list[Path]:
    """Write each upload into its own slot and return the input paths in order."""
    paths: list[Path] = []
    for index, upload in enumerate(uploads):
        dest = ws.input_slot(index, upload.filename)
        dest.write_bytes(upload.data)
        paths.append(dest)
    return paths
