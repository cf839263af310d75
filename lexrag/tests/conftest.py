from __future__ import annotations

"""Shared pytest fixtures and test environment defaults."""

import os
import sys
import tempfile
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

_TEST_STORAGE = Path(tempfile.gettempdir()) / "lexrag-tests"

os.environ.setdefault("RAG_DOCUMENTS_PATH", str(_TEST_STORAGE / "missing-documents"))
os.environ.setdefault("RAG_SNAPSHOT_PATH", str(_TEST_STORAGE / "cache" / "vectors.json"))
os.environ.setdefault("RAG_AUTO_SAVE", "false")
os.environ.setdefault("RAG_METRICS_ENABLED", "true")
os.environ.setdefault("RAG_LOG_LEVEL", "WARNING")
