"""jamie package."""

from .api import load, perform, select_instances
from .core.config import Config, load_config
from .core.diagnostics import BackendNotFoundError, CommandFailedError, ConfigError, JamieError
from .core.instance import Instance
from .core.plugin_api import ActionResult, Backend
from .core.plugin_loader import BackendRegistry
from .core.records import Platform, Suite
from .core.version import __version__

__all__ = [
    "ActionResult",
    "Backend",
    "BackendNotFoundError",
    "BackendRegistry",
    "CommandFailedError",
    "Config",
    "ConfigError",
    "Instance",
    "JamieError",
    "Platform",
    "Suite",
    "load",
    "load_config",
    "perform",
    "select_instances",
    "__version__",
]
