"""Tests for ArtifactRegistry: one-time retrieval and TTL eviction."""
from pathlib import Path

import pytest

from pptpdf_backend.registry import ArtifactRegistry
from pptpdf_backend.security import new_artifact_id


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(100.0)


@pytest.fixture
def registry(clock: FakeClock) -> ArtifactRegistry:
    return ArtifactRegistry("test", ttl_seconds=600, clock=clock)


def _artifact_file(tmp_path: Path, name: str = "out.pdf") -> Path:
    path = tmp_path / name
    path.write_bytes(b"%PDF-1.4")
    return path


class TestRegister:
    def test_register_sets_expiry_from_clock(self, registry, tmp_path):
        aid = new_artifact_id()
        artifact = registry.register(aid, _artifact_file(tmp_path), "deck.pdf", "application/pdf")
        assert artifact.expires_at == 700.0
        assert len(registry) == 1

    def test_ids_are_independent(self, registry, tmp_path):
        a, b = new_artifact_id(), new_artifact_id()
        registry.register(a, _artifact_file(tmp_path, "a.pdf"), "a.pdf", "application/pdf")
        registry.register(b, _artifact_file(tmp_path, "b.pdf"), "b.pdf", "application/pdf")
        assert registry.pop(a).download_name == "a.pdf"
        assert registry.pop(b).download_name == "b.pdf"


class TestPop:
    def test_pop_is_one_time(self, registry, tmp_path):
        aid = new_artifact_id()
        path = _artifact_file(tmp_path)
        registry.register(aid, path, "deck.pdf", "application/pdf")

        first = registry.pop(aid)
        assert first is not None
        assert first.path == path
        assert registry.pop(aid) is None
        # Popping hands the file over; the registry does not delete it.
        assert path.exists()

    def test_malformed_id_is_absent(self, registry):
        assert registry.pop("../../etc/passwd") is None
        assert registry.pop("") is None

    def test_uppercase_id_is_normalized(self, registry, tmp_path):
        aid = new_artifact_id()
        registry.register(aid, _artifact_file(tmp_path), "deck.pdf", "application/pdf")
        assert registry.pop(aid.upper()) is not None

    def test_missing_backing_file_is_absent(self, registry, tmp_path):
        aid = new_artifact_id()
        path = _artifact_file(tmp_path)
        registry.register(aid, path, "deck.pdf", "application/pdf")
        path.unlink()
        assert registry.pop(aid) is None
        assert len(registry) == 0


class TestExpiry:
    def test_expired_entry_is_gone_and_file_deleted(self, registry, clock, tmp_path):
        aid = new_artifact_id()
        path = _artifact_file(tmp_path)
        registry.register(aid, path, "deck.pdf", "application/pdf")

        clock.now += 600
        assert registry.pop(aid) is None
        assert not path.exists()
        assert len(registry) == 0

    def test_entry_alive_just_before_ttl(self, registry, clock, tmp_path):
        aid = new_artifact_id()
        registry.register(aid, _artifact_file(tmp_path), "deck.pdf", "application/pdf")
        clock.now += 599.9
        assert registry.pop(aid) is not None

    def test_evict_expired_only_touches_old_entries(self, registry, clock, tmp_path):
        old, fresh = new_artifact_id(), new_artifact_id()
        old_path = _artifact_file(tmp_path, "old.pdf")
        registry.register(old, old_path, "old.pdf", "application/pdf")
        clock.now += 300
        registry.register(fresh, _artifact_file(tmp_path, "fresh.pdf"), "fresh.pdf", "application/pdf")
        clock.now += 301

        assert registry.evict_expired() == 1
        assert not old_path.exists()
        assert len(registry) == 1
        assert registry.pop(fresh) is not None

    def test_clear_deletes_files(self, registry, tmp_path):
        path = _artifact_file(tmp_path)
        registry.register(new_artifact_id(), path, "deck.pdf", "application/pdf")
        registry.clear()
        assert len(registry) == 0
        assert not path.exists()

    def test_paths_lists_live_files(self, registry, tmp_path):
        path = _artifact_file(tmp_path)
        registry.register(new_artifact_id(), path, "deck.pdf", "application/pdf")
        assert registry.paths() == {path.resolve()}
