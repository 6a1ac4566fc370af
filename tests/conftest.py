"""Shared test fixtures.

The data root and soffice path are pinned through the environment before any
application module is imported, so config.py never touches the real temp dir
and nobody needs LibreOffice installed.
"""
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Callable, Generator, List, Optional

os.environ["PPTPDF_DATA_ROOT"] = tempfile.mkdtemp(prefix="ppt2pdf-tests-")
os.environ["SOFFICE_PATH"] = "/opt/fake/soffice"

import pytest
from fastapi.testclient import TestClient

import server
from pptpdf_backend import converter
from pptpdf_backend.config import FILES_DIR, PREVIEW_DIR, SCRATCH_ROOT


class FakeSoffice:
    """Stands in for subprocess.run inside pptpdf_backend.converter.

    Writes <stem>.<format> into --outdir like LibreOffice does. Set
    ``behaviour`` to change what happens on the next calls.
    """

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.behaviour: Optional[Callable[[List[str], float], subprocess.CompletedProcess]] = None

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        if self.behaviour is not None:
            return self.behaviour(cmd, kwargs.get("timeout"))
        return self.produce(cmd)

    @staticmethod
    def produce(cmd) -> subprocess.CompletedProcess:
        fmt = cmd[cmd.index("--convert-to") + 1]
        outdir = Path(cmd[cmd.index("--outdir") + 1])
        src = Path(cmd[-1])
        if fmt == "pdf":
            body = b"%PDF-1.4\n% fake render of " + src.name.encode("utf-8") + b"\n%%EOF\n"
        else:
            body = b"\x89PNG\r\n\x1a\n fake slide of " + src.name.encode("utf-8")
        (outdir / f"{src.stem}.{fmt}").write_bytes(body)
        return subprocess.CompletedProcess(cmd, 0, "", "")

    @property
    def inputs(self) -> List[str]:
        return [Path(c[-1]).name for c in self.calls]


@pytest.fixture
def fake_soffice(monkeypatch) -> FakeSoffice:
    fake = FakeSoffice()
    monkeypatch.setattr(converter.subprocess, "run", fake)
    return fake


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    yield TestClient(server.app)


@pytest.fixture(autouse=True)
def clean_state() -> Generator[None, None, None]:
    """Start every test with empty registries and empty data dirs."""
    yield
    server.generated_files.clear()
    server.preview_files.clear()
    for d in (SCRATCH_ROOT, FILES_DIR, PREVIEW_DIR):
        for child in d.iterdir():
            if child.is_dir():
                shutil.rmtree(child, ignore_errors=True)
            else:
                child.unlink()

