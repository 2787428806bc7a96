from __future__ import annotations

import json
import textwrap

import pytest

import bindkit.core.plugins as plugins
from bindkit.core.binding import SftpBinding
from bindkit.core.exception import ConfigurationError
from bindkit.core.plugins import load_entry_point_drivers, load_path_drivers
from bindkit.core.registry.sessions import list_sessions, register_session
from bindkit.core.sessions.memory import MemorySession
from bindkit.core.spec import InvokeRequest

PLUGIN = """
from bindkit.core.api import MemorySession, register_session


@register_session("sftp", "plugin-memory")
class PluginMemorySession(MemorySession):
    def list(self, path):
        return sorted(super().list(path))
"""


class FakeEntryPoint:
    def __init__(self, name, target):
        self.name = name
        self.value = f"bindkit_test_plugins:{name}"
        self._target = target

    def load(self):
        if isinstance(self._target, Exception):
            raise self._target
        return self._target


@pytest.fixture()
def installed(monkeypatch):
    eps: list[FakeEntryPoint] = []

    class _EntryPoints:
        def select(self, *, group):
            assert group == "bindkit.sessions"
            return list(eps)

    monkeypatch.setattr(plugins, "entry_points", lambda: _EntryPoints())
    return eps


def test_plugin_path_registers_driver(temp_dir, props, settings):
    (temp_dir / "plugin_memory.py").write_text(textwrap.dedent(PLUGIN), encoding="utf-8")
    s2 = settings.model_copy(update={"plugin_paths": [str(temp_dir)]})

    b = SftpBinding.init({**props, "driver": "plugin-memory"}, settings=s2)
    b.invoke(InvokeRequest("create", {"fileName": "b.txt"}, b"b b"))
    b.invoke(InvokeRequest("create", {"fileName": "a.txt"}, b"a a"))

    assert "sftp:plugin-memory" in list_sessions()
    assert json.loads(b.invoke(InvokeRequest("list")).data) == ["a.txt", "b.txt"]


def test_entry_point_hook_registers_driver(installed):
    def register():
        @register_session("sftp", "ep-memory")
        class EntryPointMemorySession(MemorySession):
            pass

    installed.append(FakeEntryPoint("ep-memory", register))

    assert load_entry_point_drivers() == ["ep-memory"]
    assert "sftp:ep-memory" in list_sessions()


def test_entry_point_without_its_driver_strict_and_lenient(installed, caplog):
    installed.append(FakeEntryPoint("silent", lambda: None))

    with pytest.raises(ConfigurationError, match="did not register driver sftp:silent"):
        load_entry_point_drivers(strict=True)

    caplog.set_level("WARNING", logger="bindkit.core.plugins")
    assert load_entry_point_drivers(strict=False) == []
    assert any("sftp:silent" in r.getMessage() for r in caplog.records)


def test_entry_point_import_failure(installed):
    installed.append(FakeEntryPoint("broken", ImportError("no module named vendor_sftp")))

    with pytest.raises(ConfigurationError, match="Failed loading session plugin 'broken'") as ei:
        load_entry_point_drivers(strict=True)
    assert isinstance(ei.value.__cause__, ImportError)


def test_plugin_file_without_driver_is_rejected(temp_dir):
    (temp_dir / "not_a_driver.py").write_text("VALUE = 1\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="registered no sftp driver"):
        load_path_drivers([str(temp_dir)], strict=True)


def test_helper_files_are_skipped(temp_dir):
    (temp_dir / "_helpers.py").write_text("raise ImportError('must not be imported')\n", encoding="utf-8")
    assert load_path_drivers([str(temp_dir)], strict=True) == []


def test_missing_plugin_path_strict(temp_dir):
    with pytest.raises(ConfigurationError, match="Plugin path not found"):
        load_path_drivers([str(temp_dir / "nope")], strict=True)


def test_missing_plugin_path_lenient(temp_dir):
    assert load_path_drivers([str(temp_dir / "nope")], strict=False) == []


def test_broken_plugin_strict_and_lenient(temp_dir):
    (temp_dir / "broken.py").write_text("raise ImportError('boom')\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Failed loading session plugin file"):
        load_path_drivers([str(temp_dir)], strict=True)
    assert load_path_drivers([str(temp_dir)], strict=False) == []


def test_strict_plugin_failure_stops_binding_init(temp_dir, props, settings):
    (temp_dir / "broken.py").write_text("raise ImportError('boom')\n", encoding="utf-8")
    s2 = settings.model_copy(update={"plugin_paths": [str(temp_dir)]})

    with pytest.raises(ConfigurationError):
        SftpBinding.init({**props, "driver": "memory"}, settings=s2)
