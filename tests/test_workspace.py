"""Tests for scratch workspaces and artifact storage on disk."""
import os
import time
from pathlib import Path

import pytest

from pptpdf_backend.config import SCRATCH_ROOT
from pptpdf_backend.workspace import (
    cleanup_orphan_files,
    cleanup_stale_scratch,
    create_scratch_workspace,
    delete_file,
    scratch_workspace,
    store_artifact,
)


def _age(path: Path, seconds: float) -> None:
    old = time.time() - seconds
    os.utime(path, (old, old))


class TestScratchWorkspace:
    def test_created_under_scratch_root_and_removed(self):
        with scratch_workspace() as ws:
            assert ws.root.parent == SCRATCH_ROOT
            assert ws.root.name.startswith("job_")
            ws.input_slot(0, "deck.pptx").write_bytes(b"x")
        assert not ws.root.exists()

    def test_removed_when_body_raises(self):
        with pytest.raises(RuntimeError):
            with scratch_workspace("preview_") as ws:
                raise RuntimeError("boom")
        assert not ws.root.exists()

    def test_input_slots_keep_same_names_apart(self):
        with scratch_workspace() as ws:
            a = ws.input_slot(0, "deck.pptx")
            b = ws.input_slot(1, "deck.pptx")
            assert a != b
            assert a.parent.name == "000"
            assert b.parent.name == "001"

    def test_input_slot_rejects_paths(self):
        with scratch_workspace() as ws:
            with pytest.raises(ValueError):
                ws.input_slot(0, "../escape.pptx")

    def test_each_workspace_is_unique(self):
        a = create_scratch_workspace()
        b = create_scratch_workspace()
        try:
            assert a.root != b.root
        finally:
            for ws in (a, b):
                ws.root.rmdir()


class TestArtifacts:
    def test_store_artifact_names_file_by_id(self, tmp_path):
        src = tmp_path / "Quarterly Review.PDF"
        src.write_bytes(b"%PDF")
        dest_dir = tmp_path / "files"
        dest = store_artifact(src, dest_dir, "0b6c1b0e-8d8a-4d53-9a57-1bb7f0d7f6a1")
        assert dest.name == "0b6c1b0e-8d8a-4d53-9a57-1bb7f0d7f6a1.pdf"
        assert dest.read_bytes() == b"%PDF"
        assert src.exists()

    def test_delete_file_is_idempotent(self, tmp_path):
        path = tmp_path / "gone.pdf"
        path.write_bytes(b"x")
        delete_file(path)
        delete_file(path)
        assert not path.exists()


class TestCleanup:
    def test_stale_scratch_dirs_are_removed(self, tmp_path):
        old = tmp_path / "job_old"
        new = tmp_path / "job_new"
        old.mkdir()
        new.mkdir()
        _age(old, 7200)

        assert cleanup_stale_scratch(3600, root=tmp_path) == 1
        assert not old.exists()
        assert new.exists()

    def test_orphans_removed_only_when_old_and_unknown(self, tmp_path):
        known = tmp_path / "known.pdf"
        orphan = tmp_path / "orphan.pdf"
        young = tmp_path / "young.pdf"
        for p in (known, orphan, young):
            p.write_bytes(b"x")
        _age(known, 7200)
        _age(orphan, 7200)

        assert cleanup_orphan_files(tmp_path, {known.resolve()}, 600) == 1
        assert known.exists()
        assert young.exists()
        assert not orphan.exists()

    def test_missing_dirs_are_fine(self, tmp_path):
        assert cleanup_stale_scratch(0, root=tmp_path / "nope") == 0
        assert cleanup_orphan_files(tmp_path / "nope", set(), 0) == 0
