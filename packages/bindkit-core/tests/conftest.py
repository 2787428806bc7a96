import tempfile
import shutil
from pathlib import Path

import sys

# Allow running tests without installing the package.
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest
from bindkit.core.runtime.settings import Settings
from bindkit.core.sessions.memory import MemoryFilesystem, reset_shared_filesystems


@pytest.fixture()
def temp_dir():
    d = Path(tempfile.mkdtemp(prefix="bindkit_test_"))
    try:
        yield d
    finally:
        shutil.rmtree(d, ignore_errors=True)


@pytest.fixture()
def settings():
    return Settings(
        log_level="INFO",
        plugin_paths=[],
        plugin_strict=True,
    )


@pytest.fixture(autouse=True)
def _fresh_memory_stores():
    reset_shared_filesystems()
    yield
    reset_shared_filesystems()


@pytest.fixture()
def fs():
    return MemoryFilesystem()


@pytest.fixture()
def props():
    return {
        "host": "172.17.0.7",
        "port": "22",
        "username": "demo",
        "password": "demo",
        "rootPath": "download",
    }
