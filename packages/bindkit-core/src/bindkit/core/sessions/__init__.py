from __future__ import annotations


def require(spec: str):
    """
    Import a session driver dependency lazily.

    spec:
      - "a.b.c" -> module (import a.b.c)
      - "a.b:c" -> attribute c from module a.b (from a.b import c)

    Drivers import their transport library at connect time so the registry
    can list every driver even when an optional dependency is absent.
    """
    import importlib
    module_name, _, attr = spec.partition(":")
    try:
        mod = importlib.import_module(module_name)
        return getattr(mod, attr) if attr else mod
    except (ImportError, AttributeError) as e:
        raise RuntimeError(
            f"Optional dependency missing: {spec}. "
            f"Install it to use this session driver."
        ) from e
