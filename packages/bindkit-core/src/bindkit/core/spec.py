from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic.config import ConfigDict

from bindkit.core.exception import ConfigurationError

# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


class OperationKind(str, Enum):
    LIST = "list"
    GET = "get"
    CREATE = "create"


@dataclass
class InvokeRequest:
    operation: str
    metadata: Dict[str, str] = field(default_factory=dict)
    data: bytes = b""

    @property
    def file_name(self) -> str:
        return self.metadata.get("fileName") or ""


@dataclass
class InvokeResponse:
    data: bytes = b""
    metadata: Dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Binding configuration
# ---------------------------------------------------------------------------

HostKeyPolicyName = Literal["accept-all", "pinned", "tofu"]


class SftpConfig(BaseModel):
    """Validated binding properties.

    Property names follow the wire format of the host framework (camelCase);
    python attribute names are snake_case. Unknown properties are rejected so
    typos surface at init time instead of as a silent default.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    host: str
    port: str = "22"
    username: str
    password: str = Field(default="", repr=False)
    root_path: str = Field(alias="rootPath")
    # Reserved for host-key pinning; only used by the "pinned" policy.
    host_key: Optional[str] = Field(default=None, alias="hostKey")

    private_key_path: Optional[str] = Field(default=None, alias="privateKeyPath")
    host_key_policy: Optional[HostKeyPolicyName] = Field(default=None, alias="hostKeyPolicy")
    known_hosts_path: Optional[str] = Field(default=None, alias="knownHostsPath")
    timeout: Optional[int] = None
    driver: str = "paramiko"

    @field_validator("host_key", "private_key_path", "host_key_policy", "known_hosts_path", "timeout", mode="before")
    @classmethod
    def _blank_is_unset(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("host", "username", "root_path")
    @classmethod
    def _required(cls, v: str, info) -> str:
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return v

    @field_validator("port")
    @classmethod
    def _port(cls, v: str) -> str:
        v = (v or "").strip() or "22"
        if not v.isdigit() or not 0 < int(v) < 65536:
            raise ValueError(f"port must be an integer in 1..65535, got {v!r}")
        return v

    @field_validator("timeout")
    @classmethod
    def _timeout(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @model_validator(mode="after")
    def _policy_requirements(self) -> "SftpConfig":
        policy = self.effective_host_key_policy
        if policy == "pinned" and not self.host_key:
            raise ValueError("hostKeyPolicy=pinned requires hostKey")
        if policy == "tofu" and not self.known_hosts_path:
            raise ValueError("hostKeyPolicy=tofu requires knownHostsPath")
        return self

    @property
    def effective_host_key_policy(self) -> str:
        if self.host_key_policy:
            return self.host_key_policy
        return "pinned" if self.host_key else "accept-all"

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any]) -> "SftpConfig":
        try:
            return cls.model_validate(dict(properties or {}))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid binding configuration: {_describe(exc)}") from exc


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", ())) or "<root>"
        if err.get("type") == "extra_forbidden":
            parts.append(f"unknown property {loc}")
        else:
            parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


# ---------------------------------------------------------------------------
# Component files
# ---------------------------------------------------------------------------


class ComponentMetadataItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    value: Any = None


class ComponentMetaSpec(BaseModel):
    name: str
    namespace: Optional[str] = None


class ComponentBodySpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: str
    version: str = "v1"
    metadata: List[ComponentMetadataItem] = Field(default_factory=list)


class ComponentSpec(BaseModel):
    """Component file root schema (apiVersion/kind/metadata/spec)."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(default="dapr.io/v1alpha1", alias="apiVersion")
    kind: Literal["Component"] = "Component"
    metadata: ComponentMetaSpec
    spec: ComponentBodySpec


__all__ = [
    "OperationKind",
    "InvokeRequest",
    "InvokeResponse",
    "HostKeyPolicyName",
    "SftpConfig",
    "ComponentMetadataItem",
    "ComponentMetaSpec",
    "ComponentBodySpec",
    "ComponentSpec",
]
