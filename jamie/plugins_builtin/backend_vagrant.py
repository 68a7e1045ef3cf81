from __future__ import annotations

from jamie.core.instance import Instance
from jamie.core.plugin_api import ActionResult, Backend


class VagrantBackend(Backend):
    """Drives instances as Vagrant machines named after the instance."""

    name = "vagrant"
    plugin_version = "0.1.0"

    def create(self, instance: Instance) -> ActionResult:
        return self._vagrant("create", instance, f"vagrant up {instance.name} --no-provision")

    def converge(self, instance: Instance) -> ActionResult:
        return self._vagrant("converge", instance, f"vagrant provision {instance.name}")

    def destroy(self, instance: Instance) -> ActionResult:
        return self._vagrant("destroy", instance, f"vagrant destroy {instance.name} -f")

    def _vagrant(self, action: str, instance: Instance, cmd: str) -> ActionResult:
        result = self.run(cmd)
        return ActionResult(action=action, instance_name=instance.name, command=result)
