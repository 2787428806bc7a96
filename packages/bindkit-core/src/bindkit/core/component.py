"""Load binding properties from a component file.

    apiVersion: dapr.io/v1alpha1
    kind: Component
    metadata:
      name: sftp-inbox
    spec:
      type: bindings.sftp
      version: v1
      metadata:
        - name: host
          value: sftp.example.org
        - name: rootPath
          value: /upload
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from bindkit.core.exception import ConfigurationError
from bindkit.core.spec import ComponentSpec

log = logging.getLogger("bindkit.core.component")

COMPONENT_TYPE = "bindings.sftp"


def _stringify(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, bool):
        return "true" if v else "false"
    return str(v)


def properties_from_component(raw: Any) -> Dict[str, str]:
    if not isinstance(raw, dict):
        raise ConfigurationError("Component file must be a YAML mapping (object)")
    try:
        comp = ComponentSpec.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid component file: {e}") from e
    if comp.spec.type != COMPONENT_TYPE:
        raise ConfigurationError(f"Unsupported component type {comp.spec.type!r}, expected {COMPONENT_TYPE!r}")

    props: Dict[str, str] = {}
    for item in comp.spec.metadata:
        if item.name in props:
            raise ConfigurationError(f"Duplicate component metadata entry: {item.name}")
        props[item.name] = _stringify(item.value)
    log.debug("loaded component %s with properties %s", comp.metadata.name, sorted(props))
    return props


def load_component(path: str | Path) -> Dict[str, str]:
    p = Path(path)
    try:
        with open(p, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Unable to read component file {p}: {e}") from e
    return properties_from_component(raw)
