from __future__ import annotations

"""Snapshot persistence tests."""

import json
from dataclasses import replace
from pathlib import Path

import pytest

from lexrag.app.dependencies import build_pipeline, initialize
from lexrag.app.settings import settings
from lexrag.loaders.chunking import chunk_documents
from lexrag.loaders.text import DocumentLoadError, load_documents_from_mapping
from lexrag.vectorstore.tfidf import SNAPSHOT_VERSION, SnapshotError, TfidfVectorStore, load_index, save_index

CORPUS = {
    "energy.txt": (
        "Solar panels convert sunlight into electricity for homes. "
        "Battery storage keeps the lights on after sunset."
    ),
    "hiring.txt": (
        "New hires complete onboarding during their first week. "
        "Managers schedule a review after thirty days."
    ),
    "menu.txt": (
        "The café serves crème brûlée and naïve espresso blends. "
        "Pastries are baked fresh every morning."
    ),
}


def _store() -> TfidfVectorStore:
    chunks = chunk_documents(load_documents_from_mapping(CORPUS))
    return TfidfVectorStore.build(chunks, params={"max_chars": 500})


def _ranked(store: TfidfVectorStore, query: str) -> list[tuple[str, float]]:
    return [(result.chunk.id, result.score) for result in store.search(query, top_k=3)]


def test_round_trip_preserves_search_results(tmp_path: Path) -> None:
    store = _store()
    path = save_index(store, tmp_path / "cache" / "vectors.json")

    loaded = load_index(path)

    assert loaded.chunks == store.chunks
    assert loaded.params == {"max_chars": 500}
    for query in ("solar battery storage", "onboarding review", "crème brûlée pastries"):
        assert _ranked(loaded, query) == _ranked(store, query)


def test_snapshot_layout(tmp_path: Path) -> None:
    path = _store().save(tmp_path / "vectors.json")

    data = json.loads(path.read_text(encoding="utf-8"))

    assert data["version"] == SNAPSHOT_VERSION
    assert data["created_at"]
    assert sorted(data["index"]) == ["0", "1", "2"]
    assert len(data["chunks"]) == 3
    assert "solar" in data["idf"]
    assert "crème brûlée" in path.read_text(encoding="utf-8")
    assert not (tmp_path / ".vectors.json.tmp").exists()


def test_missing_snapshot_raises(tmp_path: Path) -> None:
    with pytest.raises(SnapshotError):
        TfidfVectorStore.load(tmp_path / "absent.json")


def test_corrupted_snapshot_raises(tmp_path: Path) -> None:
    path = tmp_path / "vectors.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(SnapshotError):
        TfidfVectorStore.load(path)


def test_unknown_version_raises() -> None:
    data = _store().to_snapshot()
    data["version"] = SNAPSHOT_VERSION + 1

    with pytest.raises(SnapshotError):
        TfidfVectorStore.from_snapshot(data)


def test_vector_count_mismatch_raises() -> None:
    data = _store().to_snapshot()
    data["index"].pop("0")

    with pytest.raises(SnapshotError):
        TfidfVectorStore.from_snapshot(data)


def test_malformed_chunk_raises() -> None:
    data = _store().to_snapshot()
    del data["chunks"][0]["text"]

    with pytest.raises(SnapshotError):
        TfidfVectorStore.from_snapshot(data)


def _write_corpus(directory: Path) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    for name, text in CORPUS.items():
        (directory / name).write_text(text, encoding="utf-8")


def test_initialize_rebuilds_then_loads_snapshot(tmp_path: Path) -> None:
    documents = tmp_path / "documents"
    _write_corpus(documents)
    config = replace(
        settings,
        documents_path=str(documents),
        snapshot_path=str(tmp_path / "cache" / "vectors.json"),
        auto_save=True,
    )

    assert initialize(build_pipeline(config), config) == "rebuild"
    assert (tmp_path / "cache" / "vectors.json").exists()

    pipeline = build_pipeline(config)
    assert initialize(pipeline, config) == "snapshot"
    assert pipeline.vectorstore.stats()["chunk_count"] == 3


def test_initialize_falls_back_to_rebuild_on_corrupt_snapshot(tmp_path: Path) -> None:
    documents = tmp_path / "documents"
    _write_corpus(documents)
    snapshot = tmp_path / "vectors.json"
    snapshot.write_text("[]", encoding="utf-8")
    config = replace(
        settings,
        documents_path=str(documents),
        snapshot_path=str(snapshot),
        auto_save=True,
    )
    pipeline = build_pipeline(config)

    assert initialize(pipeline, config) == "rebuild"
    assert pipeline.retrieve("solar electricity")[0].chunk.source_id == "energy.txt"
    assert load_index(snapshot).stats()["chunk_count"] == 3


def test_initialize_without_documents_or_snapshot_raises(tmp_path: Path) -> None:
    config = replace(
        settings,
        documents_path=str(tmp_path / "missing"),
        snapshot_path=str(tmp_path / "vectors.json"),
    )

    with pytest.raises(DocumentLoadError):
        initialize(build_pipeline(config), config)
