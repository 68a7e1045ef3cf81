from __future__ import annotations

from collections import Counter
from typing import List, Optional, Sequence, Tuple

from .diagnostics import BackendNotFoundError, Diagnostic, Diagnostics
from .instance import Instance
from .plugin_loader import DEFAULT_BACKEND_PLUGIN, BackendRegistry
from .records import Platform, Suite


def resolve_plugin(platform: Platform, default_plugin: Optional[str] = None) -> str:
    return platform.backend_plugin or default_plugin or DEFAULT_BACKEND_PLUGIN


def build_matrix(
    suites: Sequence[Suite],
    platforms: Sequence[Platform],
    registry: BackendRegistry,
    default_plugin: Optional[str] = None,
) -> Tuple[Instance, ...]:
    """Expand suites x platforms into instances, suite-major.

    Plugin names are checked for every platform before any backend is built,
    so an unknown plugin fails the whole matrix.
    """
    plugins = [resolve_plugin(platform, default_plugin) for platform in platforms]
    for plugin in plugins:
        if plugin not in registry:
            raise BackendNotFoundError(plugin, registry.names())

    instances: List[Instance] = []
    for suite in suites:
        for platform, plugin in zip(platforms, plugins):
            instances.append(Instance(suite, platform, registry.get(plugin)))
    return tuple(instances)


def check_matrix(instances: Sequence[Instance]) -> Diagnostics:
    diagnostics = Diagnostics()
    if not instances:
        diagnostics.add(
            Diagnostic(
                code="W-MATRIX-EMPTY",
                message="No instances: configuration defines no suites or no platforms",
                severity="WARNING",
            )
        )
    counts = Counter(instance.name for instance in instances)
    for name, count in sorted(counts.items()):
        if count > 1:
            diagnostics.add(
                Diagnostic(
                    code="W-MATRIX-DUPLICATE",
                    message=f"Instance name {name} is produced {count} times",
                    severity="WARNING",
                    location=name,
                    hints=["suite and platform names must be unique after removing '_' and '.'"],
                )
            )
    return diagnostics
