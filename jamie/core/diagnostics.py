from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional


@dataclass
class Diagnostic:
    code: str
    message: str
    severity: str = "ERROR"
    location: Optional[str] = None
    hints: List[str] = field(default_factory=list)
    data: Optional[dict] = None

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "location": self.location,
            "hints": self.hints,
            "data": self.data,
        }


class JamieError(Exception):
    def __init__(self, diagnostic: Diagnostic):
        super().__init__(diagnostic.message)
        self.diagnostic = diagnostic


class ConfigError(JamieError):
    pass


class BackendNotFoundError(JamieError):
    def __init__(self, plugin: str, available: Iterable[str] = ()) -> None:
        known = sorted(available)
        super().__init__(
            Diagnostic(
                code="E-BACKEND-NOT-FOUND",
                message=f"Backend plugin not found: {plugin}",
                location="backend_plugin",
                hints=[f"registered backends: {', '.join(known)}"] if known else [],
                data={"plugin": plugin},
            )
        )
        self.plugin = plugin


class BackendIncompatibleError(JamieError):
    def __init__(self, message: str, *, plugin: Optional[str] = None) -> None:
        super().__init__(
            Diagnostic(
                code="E-BACKEND-API",
                message=message,
                location="backend_plugin",
                data={"plugin": plugin},
            )
        )
        self.plugin = plugin


class CommandExecutionError(JamieError):
    """Raised by the command runner when a process fails to run cleanly."""

    def __init__(self, message: str, *, cmd: Optional[str] = None, returncode: Optional[int] = None):
        super().__init__(
            Diagnostic(
                code="E-COMMAND-EXEC",
                message=message,
                data={"cmd": cmd, "returncode": returncode},
            )
        )
        self.cmd = cmd
        self.returncode = returncode


class CommandFailedError(JamieError):
    """A provisioning command failed; carries the runner's diagnostic text."""

    def __init__(self, message: str, *, backend: Optional[str] = None, cmd: Optional[str] = None):
        super().__init__(
            Diagnostic(
                code="E-COMMAND-FAILED",
                message=message,
                data={"backend": backend, "cmd": cmd},
            )
        )
        self.backend = backend
        self.cmd = cmd


class Diagnostics:
    def __init__(self) -> None:
        self.items: List[Diagnostic] = []

    def add(self, diagnostic: Diagnostic) -> None:
        self.items.append(diagnostic)

    def has_errors(self) -> bool:
        return any(d.severity == "ERROR" for d in self.items)

    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.items if d.severity == "WARNING"]

    def raise_for_errors(self, error_cls: type = JamieError) -> None:
        if self.has_errors():
            # Raise the first error; callers can access the rest via diagnostics
            first = next(d for d in self.items if d.severity == "ERROR")
            raise error_cls(first)

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)
