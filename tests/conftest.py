from __future__ import annotations

import logging
from typing import List, Optional

import pytest

from jamie.core.external import CommandResult
from jamie.core.plugin_api import ActionResult, Backend
from jamie.core.plugin_loader import BackendRegistry


class RecordingBackend(Backend):
    """Backend that records calls and optionally fails one action."""

    name = "recording"

    def __init__(self, calls: Optional[List[str]] = None, fail_on: Optional[str] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.calls = calls if calls is not None else []
        self.fail_on = fail_on

    def _act(self, action: str, instance) -> ActionResult:
        self.calls.append(f"{action}:{instance.name}")
        if action == self.fail_on:
            raise RuntimeError(f"{action} failed")
        return ActionResult(action=action, instance_name=instance.name)

    def create(self, instance) -> ActionResult:
        return self._act("create", instance)

    def converge(self, instance) -> ActionResult:
        return self._act("converge", instance)

    def destroy(self, instance) -> ActionResult:
        return self._act("destroy", instance)


class DockerBackend(RecordingBackend):
    name = "docker"


class FakeRunner:
    def __init__(self, returncode: int = 0, output: str = "") -> None:
        self.returncode = returncode
        self.output = output
        self.commands: List[str] = []

    def __call__(self, cmd, **kwargs) -> CommandResult:
        self.commands.append(cmd)
        return CommandResult(cmd=cmd, returncode=self.returncode, output=self.output, elapsed_s=0.25)


@pytest.fixture
def registry() -> BackendRegistry:
    reg = BackendRegistry(runner=FakeRunner())
    reg.discover()
    reg.register("docker", DockerBackend)
    reg.register("recording", RecordingBackend)
    return reg


@pytest.fixture(autouse=True)
def _reset_jamie_logger():
    yield
    for name in ("jamie", "jamie.instance", "jamie.backend"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)
