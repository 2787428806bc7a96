"""SFTP output binding: list, get and create under a configured root.

Every call resolves its file name against the root first, then opens one
session, runs the operation and closes the session. Failures follow three
policies:

- List: remote errors are reported as "unable to list files" (cause chained),
  unless ``Settings.list_error_passthrough`` is set
- Get: remote errors propagate unchanged
- Create: remote errors are wrapped as "could not create file <name>"
"""

from __future__ import annotations

import json
import logging
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, List, Mapping, Optional

from bindkit.core.codec import normalize_payload
from bindkit.core.component import load_component
from bindkit.core.exception import BindingError, ConfigurationError, RemoteIOError, UnsupportedOperation
from bindkit.core.observability import InvocationObserver, MetricsSink, ensure_logging, log_event
from bindkit.core.paths import resolve
from bindkit.core.plugins import load_session_plugins
from bindkit.core.registry.sessions import REGISTRY, SESSION_KIND, get_session
from bindkit.core.runtime.secrets import load_secrets_provider
from bindkit.core.runtime.settings import Settings, load_settings
from bindkit.core.sessions.base import RemoteSession
from bindkit.core.spec import InvokeRequest, InvokeResponse, OperationKind, SftpConfig

log = logging.getLogger("bindkit.core.binding")

SessionFactory = Callable[[SftpConfig], RemoteSession]


def new_file_name() -> str:
    return str(uuid.uuid4())


class SftpBinding:
    """
    Output binding exposing list/get/create against an SFTP root directory.

    Every call opens its own session, runs one operation and closes the
    session again, so a binding instance can serve parallel calls. The only
    state held here is the frozen config.

        binding = SftpBinding.init({"host": "...", "username": "...", "rootPath": "upload"})
        binding.invoke(InvokeRequest("create", {"fileName": "a.txt"}, b"hello"))
    """

    def __init__(
        self,
        config: SftpConfig,
        *,
        settings: Optional[Settings] = None,
        session_factory: Optional[SessionFactory] = None,
        metrics: Optional[MetricsSink] = None,
    ):
        self.config = config
        self.settings = settings or load_settings()
        self._session_factory = session_factory or self._registry_session
        self._observer = InvocationObserver(settings=self.settings, logger=log, metrics=metrics)

    @classmethod
    def init(
        cls,
        properties: Mapping[str, Any],
        *,
        settings: Optional[Settings] = None,
        session_factory: Optional[SessionFactory] = None,
        metrics: Optional[MetricsSink] = None,
    ) -> "SftpBinding":
        settings = settings or load_settings()
        ensure_logging(settings)
        load_session_plugins(settings=settings)

        props = dict(properties or {})
        secrets = load_secrets_provider(secrets_module=settings.secrets_module, secrets_path=settings.secrets_path)
        if secrets is not None and props.get("password"):
            props["password"] = secrets.decode(props["password"])

        config = SftpConfig.from_properties(props)
        if session_factory is None:
            try:
                get_session(SESSION_KIND, config.driver)
            except KeyError as e:
                raise ConfigurationError(str(e)) from e

        log_event(
            log,
            settings=settings,
            level=logging.INFO,
            event="binding_init",
            address=config.address,
            username=config.username,
            root_path=config.root_path,
            driver=config.driver,
            host_key_policy=config.effective_host_key_policy,
        )
        return cls(config, settings=settings, session_factory=session_factory, metrics=metrics)

    @classmethod
    def from_component(cls, path: str | Path, **kwargs: Any) -> "SftpBinding":
        return cls.init(load_component(path), **kwargs)

    def _registry_session(self, config: SftpConfig) -> RemoteSession:
        return REGISTRY.create(
            kind=SESSION_KIND,
            driver=config.driver,
            config=config,
            timeout=self.settings.connect_timeout,
        )

    def operations(self) -> List[OperationKind]:
        return [OperationKind.LIST, OperationKind.GET, OperationKind.CREATE]

    @contextmanager
    def session(self) -> Iterator[RemoteSession]:
        """Connected session for one call; closed exactly once on the way out.

        A failed connect() propagates without close(): nothing was opened.
        """
        s = self._session_factory(self.config)
        s.connect()
        try:
            yield s
        finally:
            try:
                s.close()
            except BindingError:
                log.warning("session close failed; continuing", exc_info=True)

    def invoke(self, request: InvokeRequest) -> InvokeResponse:
        try:
            op = OperationKind(request.operation)
        except ValueError:
            raise UnsupportedOperation(str(request.operation)) from None

        file_name = request.file_name
        if not file_name and op is OperationKind.CREATE:
            file_name = new_file_name()

        t0 = self._observer.start(operation=op.value, file_name=file_name)
        try:
            if op is OperationKind.LIST:
                res = self.list(file_name)
            elif op is OperationKind.GET:
                res = self.get(file_name)
            else:
                res = self.create(file_name, request.data)
        except Exception as e:
            self._observer.end(t0, operation=op.value, file_name=file_name, status="FAILED", error=type(e).__name__)
            raise
        self._observer.end(t0, operation=op.value, file_name=file_name, status="SUCCESS")
        return res

    def list(self, file_name: str = "") -> InvokeResponse:
        target = resolve(self.config.root_path, file_name)
        with self.session() as s:
            try:
                files = s.list(target.absolute)
            except BindingError as e:
                if self.settings.list_error_passthrough:
                    raise
                log.error("list %s failed: %s", target.absolute, e)
                raise RemoteIOError("unable to list files", operation="list", path=target.absolute) from e

        return InvokeResponse(
            data=json.dumps(files).encode("utf-8"),
            metadata={
                "count": str(len(files)),
                "operation": OperationKind.LIST.value,
                "type": "[]string",
                "rootPath": self.config.root_path,
            },
        )

    def get(self, file_name: str) -> InvokeResponse:
        target = resolve(self.config.root_path, file_name)
        with self.session() as s:
            data = s.fetch(target.absolute)
        return InvokeResponse(data=data)

    def create(self, file_name: str, data: bytes) -> InvokeResponse:
        target = resolve(self.config.root_path, file_name)
        payload = normalize_payload(data)
        with self.session() as s:
            try:
                s.write(target.absolute, payload)
            except BindingError as e:
                raise RemoteIOError(
                    f"could not create file {file_name}: {e}", operation="create", path=target.absolute
                ) from e
        log.debug("created %s (%d bytes) relpath=%s", target.absolute, len(payload), target.relative_to_root)
        return InvokeResponse()
