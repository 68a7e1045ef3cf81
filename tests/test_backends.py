from __future__ import annotations

import logging
import shlex
import sys

import pytest

from jamie.core.diagnostics import (
    BackendIncompatibleError,
    BackendNotFoundError,
    CommandExecutionError,
    CommandFailedError,
)
from jamie.core.instance import Instance
from jamie.core.plugin_api import API_VERSION, ActionResult, Backend, PluginMeta
from jamie.core.plugin_loader import BackendRegistry
from jamie.core.records import Platform, Suite
from jamie.plugins_builtin.backend_vagrant import VagrantBackend

from conftest import FakeRunner


def _instance(backend) -> Instance:
    return Instance(Suite(name="default", run_list=[]), Platform(name="ubuntu_12.04"), backend)


class ShellBackend(Backend):
    name = "shell"

    def __init__(self, script: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.script = script

    def create(self, instance) -> ActionResult:
        cmd = f"{shlex.quote(sys.executable)} -c {shlex.quote(self.script)}"
        return ActionResult(action="create", instance_name=instance.name, command=self.run(cmd))


def test_vagrant_commands():
    runner = FakeRunner()
    instance = _instance(VagrantBackend(runner=runner))

    instance.create().converge().verify().destroy()

    assert runner.commands == [
        "vagrant up default-ubuntu1204 --no-provision",
        "vagrant provision default-ubuntu1204",
        "vagrant destroy default-ubuntu1204 -f",
    ]


def test_vagrant_logs_command_and_timing(caplog):
    caplog.set_level(logging.INFO)
    VagrantBackend(runner=FakeRunner()).create(_instance(None))
    assert "       [vagrant command] 'vagrant up default-ubuntu1204 --no-provision'" in caplog.messages
    assert any("ran in 0.25 seconds." in m for m in caplog.messages)


def test_vagrant_result_carries_command():
    result = VagrantBackend(runner=FakeRunner()).destroy(_instance(None))
    assert result.status == "ok"
    assert result.command.cmd == "vagrant destroy default-ubuntu1204 -f"
    assert result.to_dict()["returncode"] == 0


def test_nonzero_exit_raises_command_failed():
    runner = FakeRunner(returncode=1, output="VM not found\n")
    backend = VagrantBackend(runner=runner)

    with pytest.raises(CommandFailedError) as excinfo:
        backend.converge(_instance(backend))

    assert "VM not found" in str(excinfo.value)
    assert excinfo.value.cmd == "vagrant provision default-ubuntu1204"
    assert excinfo.value.backend == "vagrant"
    assert isinstance(excinfo.value.__cause__, CommandExecutionError)


def test_runner_failure_raises_command_failed():
    def broken(cmd, **kwargs):
        raise CommandExecutionError("Command timed out after 1 seconds: vagrant up", cmd=cmd)

    backend = VagrantBackend(runner=broken)
    with pytest.raises(CommandFailedError, match="timed out"):
        backend.create(_instance(backend))


def test_real_command_failure_keeps_stderr():
    backend = ShellBackend("import sys; sys.stderr.write('kaboom\\n'); sys.exit(1)")
    with pytest.raises(CommandFailedError) as excinfo:
        _instance(backend).create()
    assert "kaboom" in str(excinfo.value)
    assert "received '1'" in str(excinfo.value)


def test_real_command_success(caplog):
    caplog.set_level(logging.INFO)
    backend = ShellBackend("print('booted')")
    result = backend.create(_instance(backend))
    assert result.command.returncode == 0
    assert "booted" in result.command.output
    assert "       booted" in caplog.messages


def test_registry_unknown_backend():
    registry = BackendRegistry().discover()
    with pytest.raises(BackendNotFoundError) as excinfo:
        registry.get("nonexistent")
    assert "vagrant" in excinfo.value.diagnostic.hints[0]


def test_registry_builtin_and_custom_factories():
    registry = BackendRegistry().discover()
    registry.register("shell", lambda: ShellBackend("pass"))
    assert "vagrant" in registry.names()
    assert isinstance(registry.get("vagrant"), VagrantBackend)
    assert registry.get("shell").script == "pass"
    assert registry.get("vagrant") is not registry.get("vagrant")


def test_registry_passes_backend_options():
    runner = FakeRunner()
    backend = BackendRegistry(runner=runner, timeout=5).discover().get("vagrant")
    assert backend.runner is runner
    assert backend.timeout == 5


def test_registry_rejects_incompatible_api():
    class Future(VagrantBackend):
        def meta(self) -> PluginMeta:
            return PluginMeta(name="future", api_version="2.0.0", plugin_version="1.0.0")

    registry = BackendRegistry()
    registry.register("future", Future)
    with pytest.raises(BackendIncompatibleError, match="API version mismatch") as excinfo:
        registry.get("future")
    assert excinfo.value.diagnostic.code == "E-BACKEND-API"


def test_backend_meta():
    meta = VagrantBackend().meta()
    assert meta.name == "vagrant"
    assert meta.api_version == API_VERSION
