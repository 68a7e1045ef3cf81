from __future__ import annotations

from importlib import metadata
from typing import Any, Callable, Dict, List, Optional

from .diagnostics import BackendIncompatibleError, BackendNotFoundError
from .plugin_api import API_VERSION, Backend, PluginMeta


BACKEND_GROUP = "jamie.backend"
DEFAULT_BACKEND_PLUGIN = "vagrant"

BackendFactory = Callable[..., Backend]


def _major(version: str) -> str:
    return version.split(".")[0]


def _iter_entry_points(group: str):
    eps = metadata.entry_points()
    if hasattr(eps, "select"):
        return list(eps.select(group=group))
    return list(eps.get(group, []))


class BackendRegistry:
    """Maps backend plugin names to factories producing Backend instances."""

    def __init__(self, **backend_options: Any) -> None:
        self._registry: Dict[str, Any] = {}
        self._options = backend_options

    def register(self, name: str, provider: Any) -> None:
        self._registry[name] = provider

    def discover(self) -> "BackendRegistry":
        for ep in _iter_entry_points(BACKEND_GROUP):
            self.register(ep.name, _LazyEntryPoint(ep))
        # Source checkouts have no installed entry points.
        self._register_builtins()
        return self

    def names(self) -> List[str]:
        return sorted(self._registry)

    def __contains__(self, name: object) -> bool:
        return name in self._registry

    def get(self, name: str) -> Backend:
        if name not in self._registry:
            raise BackendNotFoundError(name, self._registry)
        backend = _instantiate_backend(self._registry[name], self._options)
        _check_compatibility(backend.meta())
        return backend

    def _register_builtins(self) -> None:
        from jamie.plugins_builtin.backend_vagrant import VagrantBackend

        if "vagrant" not in self._registry:
            self.register("vagrant", VagrantBackend)


class _LazyEntryPoint:
    def __init__(self, ep: Any) -> None:
        self.ep = ep

    def __call__(self, **options: Any) -> Backend:
        return _instantiate_backend(self.ep.load(), options)


def default_registry(**backend_options: Any) -> BackendRegistry:
    return BackendRegistry(**backend_options).discover()


def _check_compatibility(meta: PluginMeta) -> None:
    if _major(meta.api_version) != _major(API_VERSION):
        raise BackendIncompatibleError(
            f"Backend API version mismatch: host {API_VERSION} vs plugin {meta.api_version}",
            plugin=meta.name,
        )


def _instantiate_backend(provider: Any, options: Optional[Dict[str, Any]] = None) -> Backend:
    options = options or {}
    obj = provider
    if callable(obj):
        obj = obj(**options) if options else obj()
    if not hasattr(obj, "meta"):
        raise BackendIncompatibleError(f"Loaded backend does not implement meta(): {type(obj)}")
    return obj
