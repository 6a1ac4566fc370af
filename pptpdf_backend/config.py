from __future__ import annotations

import os
import tempfile
from pathlib import Path


# Root directory for scratch workspaces and finished artifacts.
# Default: <os temp dir>/ppt2pdf. Override with env var PPTPDF_DATA_ROOT.
_root_raw = os.environ.get("PPTPDF_DATA_ROOT")
if _root_raw and _root_raw.strip():
    DATA_ROOT = Path(_root_raw)
else:
    DATA_ROOT = Path(tempfile.gettempdir()) / "ppt2pdf"
DATA_ROOT = DATA_ROOT.resolve()
DATA_ROOT.mkdir(parents=True, exist_ok=True)

# Per-request workspaces live here and are removed once the request finishes.
SCRATCH_ROOT = DATA_ROOT / "scratch"
# Converted PDFs / ZIPs waiting to be downloaded.
FILES_DIR = DATA_ROOT / "files"
# Rendered first-slide previews waiting to be fetched.
PREVIEW_DIR = DATA_ROOT / "previews"

for _d in (SCRATCH_ROOT, FILES_DIR, PREVIEW_DIR):
    _d.mkdir(parents=True, exist_ok=True)

# Optional explicit path to the LibreOffice binary.
SOFFICE_PATH = os.environ.get("SOFFICE_PATH") or None

# How long a finished artifact may wait for its (single) download.
ARTIFACT_TTL_SECONDS = float(os.environ.get("PPTPDF_ARTIFACT_TTL_SECONDS", str(10 * 60)))

# How often the server sweeps the registries for expired entries.
CLEANUP_INTERVAL_SECONDS = int(os.environ.get("PPTPDF_CLEANUP_INTERVAL_SECONDS", "60"))

# Wall-clock limits for a single soffice run.
CONVERT_TIMEOUT_SECONDS = float(os.environ.get("PPTPDF_CONVERT_TIMEOUT_SECONDS", "150"))
PREVIEW_TIMEOUT_SECONDS = float(os.environ.get("PPTPDF_PREVIEW_TIMEOUT_SECONDS", "120"))

# Upload limits (best-effort; a proxy may enforce its own).
MAX_FILES = int(os.environ.get("PPTPDF_MAX_FILES", "50"))
MAX_UPLOAD_BYTES = int(os.environ.get("PPTPDF_MAX_UPLOAD_BYTES", str(200 * 1024 * 1024)))  # 200MB

ALLOWED_PRESENTATION_EXTS = {".ppt", ".pptx"}

# Scratch dirs older than this are leftovers from a crashed process.
SCRATCH_MAX_AGE_SECONDS = float(
    os.environ.get(
        "PPTPDF_SCRATCH_MAX_AGE_SECONDS",
        str(max(3600.0, CONVERT_TIMEOUT_SECONDS * MAX_FILES + 600)),
    )
)

ZIP_DOWNLOAD_NAME = "converted-pdfs.zip"
SCRATCH_PREFIX = "job_"
