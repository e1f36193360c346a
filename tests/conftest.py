import logging
import sys
from pathlib import Path

import pytest

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'hieraedit' and tests/ as 'helpers'
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from helpers.fakes import FakeResolver  # noqa: E402
from helpers.workspace import WorkspaceBuilder  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_config_env(monkeypatch):
    """Drop HIERAEDIT_* variables leaking in from the developer shell."""
    import os

    for key in list(os.environ):
        if key.startswith("HIERAEDIT_"):
            monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def builder(tmp_path) -> WorkspaceBuilder:
    """Empty workspace with a ``production`` environment."""
    return WorkspaceBuilder(tmp_path / "workspace")


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def hieraedit_logs(caplog):
    caplog.set_level(logging.DEBUG, logger="hieraedit")
    return caplog
