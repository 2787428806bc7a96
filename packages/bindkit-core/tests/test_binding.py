from __future__ import annotations

import base64
import json
import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from bindkit.core.binding import SftpBinding
from bindkit.core.exception import (
    ConfigurationError,
    InvalidPath,
    RemoteConnectionError,
    RemoteFileNotFound,
    RemoteIOError,
    UnsupportedOperation,
)
from bindkit.core.sessions.memory import MemorySession, shared_filesystem
from bindkit.core.spec import InvokeRequest, OperationKind


class SessionRecorder:
    """Session factory handing out a fresh MemorySession per call."""

    def __init__(self, fs, failures=None):
        self.fs = fs
        self.failures = failures or {}
        self.sessions: list[MemorySession] = []

    def __call__(self, config):
        s = MemorySession(filesystem=self.fs, failures=self.failures)
        self.sessions.append(s)
        return s


def _binding(props, settings, recorder):
    return SftpBinding.init(props, settings=settings, session_factory=recorder)


def test_list_returns_names_and_attributes(props, settings, fs):
    fs.seed("download/a.txt", b"1")
    fs.seed("download/b.txt", b"2")
    fs.seed("download/sub/c.txt", b"3")
    rec = SessionRecorder(fs)

    res = _binding(props, settings, rec).invoke(InvokeRequest(operation="list"))

    assert json.loads(res.data) == ["a.txt", "b.txt"]
    assert res.metadata == {"count": "2", "operation": "list", "type": "[]string", "rootPath": "download"}
    assert rec.sessions[0].calls == [("list", "download")]


def test_list_subdirectory_via_file_name(props, settings, fs):
    fs.seed("download/sub/c.txt", b"3")
    rec = SessionRecorder(fs)

    res = _binding(props, settings, rec).invoke(InvokeRequest("list", {"fileName": "sub"}))

    assert json.loads(res.data) == ["c.txt"]
    assert res.metadata["count"] == "1"


def test_list_empty_directory_is_empty_array(props, settings, fs):
    fs.mkdir_recursive("download")
    res = _binding(props, settings, SessionRecorder(fs)).list()
    assert res.data == b"[]"
    assert res.metadata["count"] == "0"


def test_get_returns_bytes_verbatim(props, settings, fs):
    fs.seed("download/f.txt", b"hello")
    rec = SessionRecorder(fs)

    res = _binding(props, settings, rec).invoke(InvokeRequest("get", {"fileName": "f.txt"}))

    assert res.data == b"hello"
    assert res.metadata == {}
    assert rec.sessions[0].calls == [("fetch", "download/f.txt")]


def test_create_writes_decoded_payload_under_root(props, settings, fs):
    rec = SessionRecorder(fs)
    payload = base64.b64encode(b"\x00\x01 binary \xff")

    res = _binding(props, settings, rec).invoke(InvokeRequest("create", {"fileName": "in/2024/x.bin"}, payload))

    assert res.data == b"" and res.metadata == {}
    assert fs.files["download/in/2024/x.bin"] == b"\x00\x01 binary \xff"
    assert fs.is_dir("download/in/2024")


def test_create_plain_text_is_written_as_is(props, settings, fs):
    _binding(props, settings, SessionRecorder(fs)).invoke(
        InvokeRequest("create", {"fileName": "testfile.txt"}, b"some data to save")
    )
    assert fs.files["download/testfile.txt"] == b"some data to save"


def test_create_without_name_generates_fresh_names(props, settings, fs):
    rec = SessionRecorder(fs)
    b = _binding(props, settings, rec)

    b.invoke(InvokeRequest("create", {}, b"one one"))
    b.invoke(InvokeRequest("create", {"fileName": ""}, b"two two"))

    written = [s.calls[0][1] for s in rec.sessions]
    assert len(written) == 2
    assert written[0] != written[1]
    assert all(p.startswith("download/") for p in written)


@pytest.mark.parametrize(
    "operation,metadata,failing",
    [
        ("list", {}, "list"),
        ("get", {"fileName": "missing.txt"}, None),
        ("get", {"fileName": "f.txt"}, "fetch"),
        ("create", {"fileName": "x.txt"}, "write"),
    ],
)
def test_close_called_exactly_once_when_operation_fails(props, settings, fs, operation, metadata, failing):
    fs.seed("download/f.txt", b"x")
    failures = {failing: RemoteIOError("boom")} if failing else {}
    rec = SessionRecorder(fs, failures)

    with pytest.raises(RemoteIOError):
        _binding(props, settings, rec).invoke(InvokeRequest(operation, metadata, b"data data"))

    assert len(rec.sessions) == 1
    assert rec.sessions[0].connect_calls == 1
    assert rec.sessions[0].close_calls == 1


@pytest.mark.parametrize("operation", ["list", "get", "create"])
def test_close_called_exactly_once_on_success(props, settings, fs, operation):
    fs.seed("download/f.txt", b"x")
    rec = SessionRecorder(fs)
    _binding(props, settings, rec).invoke(InvokeRequest(operation, {"fileName": "f.txt"} if operation != "list" else {}))
    assert [s.close_calls for s in rec.sessions] == [1]


def test_connect_failure_propagates_without_close(props, settings, fs):
    rec = SessionRecorder(fs, {"connect": RemoteConnectionError("connection refused")})

    with pytest.raises(RemoteConnectionError, match="refused"):
        _binding(props, settings, rec).invoke(InvokeRequest("get", {"fileName": "f.txt"}))

    assert rec.sessions[0].close_calls == 0


@pytest.mark.parametrize("operation", ["delete", "LIST", "", "bulkCreate"])
def test_unsupported_operation_never_connects(props, settings, fs, operation):
    rec = SessionRecorder(fs)

    with pytest.raises(UnsupportedOperation) as ei:
        _binding(props, settings, rec).invoke(InvokeRequest(operation, {"fileName": "f.txt"}))

    assert ei.value.operation == operation
    assert rec.sessions == []


def test_invalid_path_never_connects(props, settings, fs):
    rec = SessionRecorder(fs)
    b = _binding(props, settings, rec)

    for op in ("get", "create", "list"):
        with pytest.raises(InvalidPath):
            b.invoke(InvokeRequest(op, {"fileName": "../../etc/passwd"}, b"x"))

    assert rec.sessions == []


def test_list_failure_is_reported_generically_with_cause(props, settings, fs, caplog):
    cause = RemoteIOError("permission denied", operation="list", path="download")
    rec = SessionRecorder(fs, {"list": cause})
    caplog.set_level(logging.ERROR, logger="bindkit.core.binding")

    with pytest.raises(RemoteIOError, match="unable to list files") as ei:
        _binding(props, settings, rec).list()

    assert ei.value.__cause__ is cause
    assert "permission denied" in caplog.text


def test_list_failure_passthrough_setting(props, settings, fs):
    cause = RemoteIOError("permission denied")
    rec = SessionRecorder(fs, {"list": cause})
    s2 = settings.model_copy(update={"list_error_passthrough": True})

    with pytest.raises(RemoteIOError) as ei:
        _binding(props, s2, rec).list()

    assert ei.value is cause
    assert rec.sessions[0].close_calls == 1


def test_get_failure_is_not_wrapped(props, settings, fs):
    fs.mkdir_recursive("download")
    with pytest.raises(RemoteFileNotFound) as ei:
        _binding(props, settings, SessionRecorder(fs)).get("nope.txt")
    assert ei.value.path == "download/nope.txt"


def test_create_failure_is_wrapped_with_cause(props, settings, fs):
    cause = RemoteIOError("disk full")
    rec = SessionRecorder(fs, {"write": cause})

    with pytest.raises(RemoteIOError, match="could not create file x.txt") as ei:
        _binding(props, settings, rec).create("x.txt", b"payload here")

    assert ei.value.__cause__ is cause
    assert ei.value.path == "download/x.txt"


def test_close_failure_does_not_mask_result(props, settings, fs, caplog):
    fs.seed("download/f.txt", b"hello")
    rec = SessionRecorder(fs, {"close": RemoteConnectionError("close failed")})
    caplog.set_level(logging.WARNING, logger="bindkit.core.binding")

    res = _binding(props, settings, rec).get("f.txt")

    assert res.data == b"hello"
    assert "session close failed" in caplog.text


def test_close_failure_does_not_mask_operation_error(props, settings, fs):
    fs.mkdir_recursive("download")
    rec = SessionRecorder(fs, {"close": RemoteConnectionError("close failed")})

    with pytest.raises(RemoteFileNotFound):
        _binding(props, settings, rec).get("missing.txt")

    assert rec.sessions[0].close_calls == 1


def test_registry_driver_is_used_without_factory(props, settings):
    shared_filesystem("172.17.0.7:22").seed("download/RFC4251.pdf", b"%PDF")
    b = SftpBinding.init({**props, "driver": "memory"}, settings=settings)

    res = b.invoke(InvokeRequest(OperationKind.LIST))

    assert json.loads(res.data) == ["RFC4251.pdf"]
    assert b.invoke(InvokeRequest("get", {"fileName": "RFC4251.pdf"})).data == b"%PDF"


def test_unknown_driver_fails_init(props, settings):
    with pytest.raises(ConfigurationError, match="Unknown session driver"):
        SftpBinding.init({**props, "driver": "ftp"}, settings=settings)


def test_parallel_calls_use_separate_sessions(props, settings):
    b = SftpBinding.init({**props, "driver": "memory"}, settings=settings)

    def _create(i: int) -> None:
        b.invoke(InvokeRequest("create", {"fileName": f"batch/{i}.txt"}, f"payload {i}".encode()))

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(_create, range(32)))

    fs = shared_filesystem("172.17.0.7:22")
    assert len([p for p in fs.files if p.startswith("download/batch/")]) == 32
    assert fs.files["download/batch/7.txt"] == b"payload 7"


def test_operations_lists_supported_kinds(props, settings, fs):
    b = _binding(props, settings, SessionRecorder(fs))
    assert [op.value for op in b.operations()] == ["list", "get", "create"]
