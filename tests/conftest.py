import pathlib

import pytest


@pytest.fixture(scope="session")
def DATA_DIR() -> pathlib.Path:
    return pathlib.Path(__file__).parent / "data"


@pytest.fixture(autouse=True)
def _clean_environ(monkeypatch):
    """settings and warning filters must not leak in from the shell"""
    monkeypatch.delenv("AFORM_SETTINGS", raising=False)
    monkeypatch.delenv("AFORM_WARNINGS", raising=False)


@pytest.fixture
def sample_path(DATA_DIR) -> pathlib.Path:
    return DATA_DIR / "sample.sto"
