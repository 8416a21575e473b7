"""Shared fixtures for the keyhole test-suite."""

from __future__ import annotations

import pytest

from keyhole.configuration import clear_cache
from keyhole.structures import Artifact


@pytest.fixture
def make_artifact():
    def factory(filename: str, content: str | bytes) -> Artifact:
        return Artifact(filename=filename, content=content)

    return factory


@pytest.fixture(autouse=True)
def isolated_configuration(monkeypatch, tmp_path):
    """Run every test without ambient KEYHOLE_* settings or config files."""

    for name in (
        "KEYHOLE_REFERENCE_LANGUAGE",
        "KEYHOLE_DIALECT",
        "KEYHOLE_SKIP_PATTERN",
        "KEYHOLE_EXTENSIONS",
        "KEYHOLE_SOURCE_MAPS",
        "KEYHOLE_STRICT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    clear_cache()
    yield
    clear_cache()
