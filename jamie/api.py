from __future__ import annotations

import dataclasses
import re
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from .core.config import Config, load_config
from .core.diagnostics import Diagnostic, JamieError
from .core.instance import ACTIONS, Instance, target_state
from .core.logging import get_event_logger, get_logger
from .core.plugin_api import ActionResult
from .core.plugin_loader import BackendRegistry


def load(
    path: Union[Path, str, None] = None,
    *,
    registry: Optional[BackendRegistry] = None,
    backend_plugin: Optional[str] = None,
    log_level: Optional[str] = None,
) -> Config:
    return load_config(path, registry=registry, backend_plugin=backend_plugin, log_level=log_level)


def select_instances(instances: Sequence[Instance], pattern: Optional[str] = None) -> List[Instance]:
    if not pattern or pattern == "all":
        selected = list(instances)
    else:
        regex = re.compile(pattern)
        selected = [instance for instance in instances if regex.search(instance.name)]
    if not selected:
        raise JamieError(
            Diagnostic(
                code="E-NO-INSTANCES",
                message=f"No instances for pattern {pattern!r}",
                data={"pattern": pattern},
            )
        )
    return selected


def perform(
    action: str,
    instances: Iterable[Instance],
    *,
    logs_dir: Union[Path, str, None] = None,
) -> List[Instance]:
    """Run ``action`` on each instance in turn, stopping at the first failure."""
    if action not in ACTIONS:
        raise ValueError(f"Unknown action: {action}")
    logs_path = Path(logs_dir) if logs_dir is not None else None
    if logs_path is not None:
        get_logger("instance", logs_path)
        get_logger("backend", logs_path)
    events = get_event_logger(logs_path)

    def _record(instance: Instance, result: ActionResult) -> None:
        payload = result.to_dict()
        payload["event"] = "action.complete"
        payload["state"] = target_state(result.action).value
        events.record(payload)

    done: List[Instance] = []
    for instance in instances:
        tracked = dataclasses.replace(instance, on_result=_record)
        events.record({"event": "action.start", "action": action, "instance": instance.name})
        try:
            getattr(tracked, action)()
        except Exception as exc:
            events.record(
                {
                    "event": "action.failed",
                    "action": action,
                    "instance": instance.name,
                    "error": str(exc),
                }
            )
            raise
        done.append(instance)
    return done
