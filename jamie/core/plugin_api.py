from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from .diagnostics import CommandExecutionError, CommandFailedError
from .external import DEFAULT_TIMEOUT, CommandResult, run_command

if TYPE_CHECKING:
    from .instance import Instance


API_VERSION = "1.0.0"

STATUS_OK = "ok"
STATUS_NOTHING_TO_DO = "nothing_to_do"

CommandRunner = Callable[..., CommandResult]


class LifecycleState(str, Enum):
    UNKNOWN = "unknown"
    CREATED = "created"
    CONVERGED = "converged"
    VERIFIED = "verified"
    DESTROYED = "destroyed"


@dataclass(frozen=True)
class PluginMeta:
    name: str
    api_version: str
    plugin_version: str


@dataclass(frozen=True)
class ActionResult:
    action: str
    instance_name: str
    status: str = STATUS_OK
    command: Optional[CommandResult] = None

    @property
    def nothing_to_do(self) -> bool:
        return self.status == STATUS_NOTHING_TO_DO

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "action": self.action,
            "instance": self.instance_name,
            "status": self.status,
        }
        if self.command is not None:
            payload["cmd"] = self.command.cmd
            payload["returncode"] = self.command.returncode
            payload["elapsed_s"] = self.command.elapsed_s
        return payload


class Backend:
    """Provisioning driver for instances.

    Subclasses must implement ``create``, ``converge`` and ``destroy``;
    ``verify`` is optional and reports that there is nothing to do.
    """

    name = "base"
    plugin_version = "0.0.0"

    def __init__(
        self,
        *,
        runner: CommandRunner = run_command,
        cwd: Optional[Path] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ) -> None:
        self.runner = runner
        self.cwd = cwd
        self.timeout = timeout
        self.logger = logging.getLogger(f"jamie.backend.{self.name}")

    def meta(self) -> PluginMeta:
        return PluginMeta(name=self.name, api_version=API_VERSION, plugin_version=self.plugin_version)

    def create(self, instance: "Instance") -> ActionResult:
        raise NotImplementedError("Subclass must implement")

    def converge(self, instance: "Instance") -> ActionResult:
        raise NotImplementedError("Subclass must implement")

    def verify(self, instance: "Instance") -> ActionResult:
        self.logger.info("       Nothing to do!")
        return ActionResult(action="verify", instance_name=instance.name, status=STATUS_NOTHING_TO_DO)

    def destroy(self, instance: "Instance") -> ActionResult:
        raise NotImplementedError("Subclass must implement")

    def run(self, cmd: str) -> CommandResult:
        label = f"[{self.name} command]"
        self.logger.info("       %s '%s'", label, cmd)
        try:
            result = self.runner(
                cmd, cwd=self.cwd, timeout=self.timeout, live_stream=self._stream
            )
            self.logger.info("       %s '%s' ran in %s seconds.", label, cmd, round(result.elapsed_s, 2))
            result.error()
        except CommandExecutionError as exc:
            raise CommandFailedError(str(exc), backend=self.name, cmd=cmd) from exc
        return result

    def _stream(self, line: str) -> None:
        self.logger.info("       %s", line)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
