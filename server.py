from __future__ import annotations

import os
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import List, Optional
from pathlib import Path
from urllib.parse import quote

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from starlette.background import BackgroundTask

from pptpdf_backend.config import (
    ARTIFACT_TTL_SECONDS,
    CLEANUP_INTERVAL_SECONDS,
    CONVERT_TIMEOUT_SECONDS,
    FILES_DIR,
    PREVIEW_DIR,
    PREVIEW_TIMEOUT_SECONDS,
    SCRATCH_MAX_AGE_SECONDS,
    ZIP_DOWNLOAD_NAME,
)
from pptpdf_backend.converter import convert_to_pdf, convert_to_png, soffice_binary
from pptpdf_backend.errors import ArtifactNotFoundError, ConverterError, ServerError
from pptpdf_backend.registry import ArtifactRegistry
from pptpdf_backend.security import new_artifact_id
from pptpdf_backend.uploads import read_uploads, write_to_workspace
from pptpdf_backend.workspace import (
    ScratchWorkspace,
    cleanup_orphan_files,
    cleanup_stale_scratch,
    delete_file,
    scratch_workspace,
    store_artifact,
)
from pptpdf_backend.zip_utils import build_pdf_zip


BASE_DIR = Path(__file__).resolve().parent
PUBLIC_DIR = BASE_DIR / "public"

logger = logging.getLogger(__name__)

# Finished conversions waiting for their one download.
generated_files = ArtifactRegistry("download")
# First-slide previews waiting to be fetched.
preview_files = ArtifactRegistry("preview")


class ConvertResponse(BaseModel):
    success: bool = True
    downloadUrl: str
    filename: str


class PreviewResponse(BaseModel):
    success: bool = True
    previewUrl: str


class HealthResponse(BaseModel):
    status: str = "ok"
    soffice: str


def sweep_expired() -> dict:
    """Evict expired registry entries and remove leftover files on disk."""
    evicted = generated_files.evict_expired() + preview_files.evict_expired()
    scratch = cleanup_stale_scratch(SCRATCH_MAX_AGE_SECONDS)
    orphans = cleanup_orphan_files(FILES_DIR, generated_files.paths(), ARTIFACT_TTL_SECONDS)
    orphans += cleanup_orphan_files(PREVIEW_DIR, preview_files.paths(), ARTIFACT_TTL_SECONDS)
    logger.debug("Sweep: %d evicted, %d scratch dirs, %d orphan files", evicted, scratch, orphans)
    return {"evicted": evicted, "scratch": scratch, "orphans": orphans}


async def _cleanup_worker() -> None:
    # Periodically drop expired artifacts; one bad pass must not stop the loop.
    while True:
        try:
            sweep_expired()
        except Exception:
            logger.exception("Cleanup sweep failed")
        await asyncio.sleep(max(5, CLEANUP_INTERVAL_SECONDS))


@asynccontextmanager
async def lifespan(app: FastAPI):
    soffice_binary()
    try:
        sweep_expired()
    except Exception:
        logger.exception("Startup cleanup failed")

    task = asyncio.create_task(_cleanup_worker())
    app.state._cleanup_task = task
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        generated_files.clear()
        preview_files.clear()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def _no_cache_static_assets(request: Request, call_next):
    response = await call_next(request)
    path = (request.url.path or "").lower()
    # Make local iteration predictable: ensure browsers always re-fetch edited assets.
    if path.endswith((".css", ".js", ".html")) or path == "/":
        response.headers["Cache-Control"] = "no-store"
    return response


@app.exception_handler(ConverterError)
async def _converter_error_handler(request: Request, exc: ConverterError) -> JSONResponse:
    return JSONResponse(exc.to_payload(), status_code=exc.status_code)


def _content_disposition(disposition: str, filename: str) -> str:
    # Headers are latin-1; other names go out RFC 5987 encoded, as FileResponse does.
    quoted = quote(filename)
    if quoted != filename:
        return f"{disposition}; filename*=utf-8''{quoted}"
    return f'{disposition}; filename="{filename}"'


async def _convert_all(ws: ScratchWorkspace, inputs: List[Path], filenames: List[str]) -> List[Path]:
    # One at a time: soffice is heavy, and the job's profile dir serves one instance.
    pdfs: List[Path] = []
    for in_path, name in zip(inputs, filenames):
        try:
            pdf = await asyncio.to_thread(
                convert_to_pdf, in_path, in_path.parent, CONVERT_TIMEOUT_SECONDS, ws.profile_dir
            )
        except ConverterError as e:
            raise e.for_file(name)
        pdfs.append(pdf)
    return pdfs


@app.post("/convert")
async def convert(file: Optional[List[UploadFile]] = File(None)) -> ConvertResponse:
    """Convert 1..MAX_FILES presentations; one PDF or a ZIP of PDFs comes back as a one-time link."""
    uploads = await read_uploads(file)

    with scratch_workspace() as ws:
        try:
            inputs = write_to_workspace(ws, uploads)
            pdfs = await _convert_all(ws, inputs, [u.filename for u in uploads])

            artifact_id = new_artifact_id()
            if len(pdfs) == 1:
                dest = store_artifact(pdfs[0], FILES_DIR, artifact_id)
                generated_files.register(artifact_id, dest, pdfs[0].name, "application/pdf")
                filename = pdfs[0].name
            else:
                dest = await asyncio.to_thread(build_pdf_zip, pdfs, FILES_DIR / f"{artifact_id}.zip")
                generated_files.register(artifact_id, dest, ZIP_DOWNLOAD_NAME, "application/zip")
                filename = ZIP_DOWNLOAD_NAME
        except ConverterError:
            raise
        except Exception:
            logger.exception("Unexpected error while converting %d file(s)", len(uploads))
            raise ServerError()

    logger.info("Converted %d file(s) into %s", len(uploads), filename)
    return ConvertResponse(downloadUrl=f"/download/{artifact_id}", filename=filename)


@app.post("/preview")
async def preview(file: Optional[UploadFile] = File(None)) -> PreviewResponse:
    """Render the first slide to PNG and hand back a one-time URL for it."""
    uploads = await read_uploads([file] if file is not None else [], max_files=1)

    with scratch_workspace("preview_") as ws:
        try:
            (in_path,) = write_to_workspace(ws, uploads)
            image = await asyncio.to_thread(
                convert_to_png, in_path, in_path.parent, PREVIEW_TIMEOUT_SECONDS, ws.profile_dir
            )
            artifact_id = new_artifact_id()
            dest = store_artifact(image, PREVIEW_DIR, artifact_id)
            preview_files.register(artifact_id, dest, image.name, "image/png")
        except ConverterError:
            raise
        except Exception:
            logger.exception("Unexpected error during preview generation")
            raise ServerError("Server error during preview generation.")

    return PreviewResponse(previewUrl=f"/preview/{artifact_id}")


@app.post("/preview-pdf")
async def preview_pdf(file: Optional[UploadFile] = File(None)) -> Response:
    """Convert one presentation and return the PDF bytes directly (for client-side rendering)."""
    uploads = await read_uploads([file] if file is not None else [], max_files=1)

    with scratch_workspace("preview_") as ws:
        try:
            (in_path,) = write_to_workspace(ws, uploads)
            pdf = await asyncio.to_thread(
                convert_to_pdf, in_path, in_path.parent, PREVIEW_TIMEOUT_SECONDS, ws.profile_dir
            )
            pdf_bytes = pdf.read_bytes()
        except ConverterError:
            raise
        except Exception:
            logger.exception("Unexpected error during PDF preview")
            raise ServerError("Server error during preview generation.")

    headers = {
        "Content-Disposition": _content_disposition("inline", f"{Path(uploads[0].filename).stem}.pdf"),
        "Cache-Control": "no-store",
    }
    return Response(content=pdf_bytes, media_type="application/pdf", headers=headers)


@app.get("/preview/{artifact_id}")
async def get_preview(artifact_id: str) -> FileResponse:
    artifact = preview_files.pop(artifact_id)
    if artifact is None:
        raise ArtifactNotFoundError("Preview not found or expired.")
    return FileResponse(
        artifact.path,
        media_type=artifact.media_type,
        headers={"Cache-Control": "no-store", "X-Content-Type-Options": "nosniff"},
        background=BackgroundTask(delete_file, artifact.path),
    )


@app.get("/download/{artifact_id}")
async def download(artifact_id: str) -> FileResponse:
    """One-time download: the entry is gone before the body is sent, the file right after."""
    artifact = generated_files.pop(artifact_id)
    if artifact is None:
        raise ArtifactNotFoundError()
    return FileResponse(
        artifact.path,
        media_type=artifact.media_type,
        filename=artifact.download_name,
        headers={"Cache-Control": "no-store", "X-Content-Type-Options": "nosniff"},
        background=BackgroundTask(delete_file, artifact.path),
    )


@app.get("/health")
async def health() -> HealthResponse:
    return HealthResponse(soffice=soffice_binary())


# Static file hosting (so you can open http://localhost:3000/)
# Note: define API routes above, then mount static at '/'.
app.mount("/", StaticFiles(directory=str(PUBLIC_DIR), html=True), name="static")


if __name__ == "__main__":
    # Convenience: python server.py
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", "3000"))
    uvicorn.run("server:app", host=host, port=port, reload=False)
