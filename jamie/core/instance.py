from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .plugin_api import ActionResult, Backend, LifecycleState
from .records import Platform, Suite


logger = logging.getLogger("jamie.instance")

LIFECYCLE_ACTIONS = ("create", "converge", "verify", "destroy")
ACTIONS = LIFECYCLE_ACTIONS + ("test",)


@dataclass(frozen=True)
class _Step:
    gerund: str
    noun: str
    state: LifecycleState


_STEPS: Dict[str, _Step] = {
    "create": _Step("Creating", "Creation", LifecycleState.CREATED),
    "converge": _Step("Converging", "Convergence", LifecycleState.CONVERGED),
    "verify": _Step("Verifying", "Verification", LifecycleState.VERIFIED),
    "destroy": _Step("Destroying", "Destruction", LifecycleState.DESTROYED),
}

ResultHook = Callable[["Instance", ActionResult], None]


def instance_name(suite_name: str, platform_name: str) -> str:
    return f"{suite_name}-{platform_name}".replace("_", "").replace(".", "")


def target_state(action: str) -> LifecycleState:
    if action == "test":
        return LifecycleState.VERIFIED
    return _STEPS[action].state


@dataclass(frozen=True, eq=False)
class Instance:
    """One suite on one platform, driven through its lifecycle by a backend.

    Every action blocks until the backend finishes and returns the instance
    so calls can be chained: ``instance.destroy().create()``.
    """

    suite: Suite
    platform: Platform
    backend: Backend
    on_result: Optional[ResultHook] = None

    @property
    def name(self) -> str:
        return instance_name(self.suite.name, self.platform.name)

    def create(self) -> "Instance":
        return self._perform("create")

    def converge(self) -> "Instance":
        return self._perform("converge")

    def verify(self) -> "Instance":
        return self._perform("verify")

    def destroy(self) -> "Instance":
        return self._perform("destroy")

    def test(self) -> "Instance":
        logger.info("-----> Cleaning up any prior instances of %s", self.name)
        self.destroy()
        logger.info("-----> Testing instance %s", self.name)
        self.create().converge().verify()
        logger.info("       Testing of instance %s complete.", self.name)
        return self

    def _perform(self, action: str) -> "Instance":
        step = _STEPS[action]
        logger.info("-----> %s instance %s", step.gerund, self.name)
        result = getattr(self.backend, action)(self)
        if result is None:
            result = ActionResult(action=action, instance_name=self.name)
        logger.info("       %s of instance %s complete.", step.noun, self.name)
        if self.on_result is not None:
            self.on_result(self, result)
        return self

    def __repr__(self) -> str:
        return f"<Instance {self.name} backend={self.backend.name}>"
