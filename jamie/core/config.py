from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import jsonschema

from .diagnostics import ConfigError, Diagnostic, Diagnostics
from .instance import Instance
from .matrix import build_matrix, check_matrix
from .plugin_loader import DEFAULT_BACKEND_PLUGIN, BackendRegistry, default_registry
from .records import Platform, Suite, build_records


DEFAULT_YAML_FILE = ".jamie.yml"
DEFAULT_LOG_LEVEL = "info"
DEFAULT_DATA_BAGS_BASE_PATH = Path("test") / "integration"

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "jamie.schema.json"

logger = logging.getLogger("jamie.config")


@dataclass(frozen=True)
class Config:
    yaml_file: Path
    platforms: Tuple[Platform, ...]
    suites: Tuple[Suite, ...]
    instances: Tuple[Instance, ...]
    backend_plugin: str = DEFAULT_BACKEND_PLUGIN
    log_level: str = DEFAULT_LOG_LEVEL
    data_bags_base_path: Path = DEFAULT_DATA_BAGS_BASE_PATH

    def instance(self, name: str) -> Instance:
        for item in self.instances:
            if item.name == name:
                return item
        raise KeyError(f"Instance not found: {name}")


def load_config(
    path: Union[Path, str, None] = None,
    *,
    registry: Optional[BackendRegistry] = None,
    backend_plugin: Optional[str] = None,
    log_level: Optional[str] = None,
    data_bags_base_path: Union[Path, str, None] = None,
) -> Config:
    yaml_file = Path(path).expanduser() if path is not None else Path.cwd() / DEFAULT_YAML_FILE
    data = load_config_data(yaml_file.resolve())
    return build_config(
        data,
        yaml_file=yaml_file,
        registry=registry,
        backend_plugin=backend_plugin,
        log_level=log_level,
        data_bags_base_path=data_bags_base_path,
    )


def build_config(
    data: Dict[str, Any],
    *,
    yaml_file: Optional[Path] = None,
    registry: Optional[BackendRegistry] = None,
    backend_plugin: Optional[str] = None,
    log_level: Optional[str] = None,
    data_bags_base_path: Union[Path, str, None] = None,
) -> Config:
    diagnostics = validate_config(data)
    diagnostics.raise_for_errors(ConfigError)

    platforms = build_records(Platform, data.get("platforms"), "platforms")
    suites = build_records(Suite, data.get("suites"), "suites")
    default_plugin = backend_plugin or data.get("backend_plugin") or DEFAULT_BACKEND_PLUGIN
    registry = registry if registry is not None else default_registry()
    instances = build_matrix(suites, platforms, registry, default_plugin)

    for warning in check_matrix(instances).warnings():
        logger.warning("%s", warning.message)

    bags = data_bags_base_path or data.get("data_bags_base_path")
    return Config(
        yaml_file=yaml_file or Path.cwd() / DEFAULT_YAML_FILE,
        platforms=platforms,
        suites=suites,
        instances=instances,
        backend_plugin=default_plugin,
        log_level=log_level or data.get("log_level") or DEFAULT_LOG_LEVEL,
        data_bags_base_path=Path(bags) if bags else Path.cwd() / DEFAULT_DATA_BAGS_BASE_PATH,
    )


def validate_config(data: Dict[str, Any], schema_path: Path = SCHEMA_PATH) -> Diagnostics:
    diagnostics = Diagnostics()
    with schema_path.open("r", encoding="utf-8") as handle:
        schema = json.load(handle)
    validator = jsonschema.Draft202012Validator(schema)
    for error in sorted(validator.iter_errors(data), key=str):
        code = "E-CONFIG-REQUIRED" if error.validator == "required" else "E-CONFIG-SCHEMA"
        diagnostics.add(
            Diagnostic(
                code=code,
                message=error.message,
                location="/".join(str(x) for x in error.path),
            )
        )
    return diagnostics


def load_config_data(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(
            Diagnostic(
                code="E-CONFIG-MISSING",
                message=f"Configuration file not found: {path}",
                location=str(path),
            )
        )
    data = _load_data(path)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            Diagnostic(
                code="E-CONFIG-INVALID",
                message="Configuration must be a mapping",
                location=str(path),
            )
        )
    return data


def _load_data(path: Path) -> Any:
    if path.suffix in {".yaml", ".yml"}:
        import yaml  # type: ignore

        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle)
    if path.suffix == ".toml":
        try:
            import tomllib
        except ImportError:  # pragma: no cover - python <3.11
            import tomli as tomllib  # type: ignore

        with path.open("rb") as handle:
            return tomllib.load(handle)
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)
