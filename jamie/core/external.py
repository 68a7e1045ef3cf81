from __future__ import annotations

import os
import shlex
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Sequence, Union

from .diagnostics import CommandExecutionError


DEFAULT_TIMEOUT = 60000
# Seconds to wait for buffered output once the process itself is gone.
OUTPUT_GRACE = 5.0

OutputSink = Callable[[str], None]


@dataclass(frozen=True)
class CommandResult:
    cmd: str
    returncode: int
    output: str
    elapsed_s: float

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def error(self) -> None:
        """Raise CommandExecutionError unless the command exited with status 0."""
        if self.ok:
            return
        raise CommandExecutionError(
            f"Expected process to exit with [0], but received '{self.returncode}'\n"
            f"---- Begin output of {self.cmd} ----\n"
            f"{self.output}"
            f"---- End output of {self.cmd} ----\n"
            f"Ran {self.cmd} returned {self.returncode}",
            cmd=self.cmd,
            returncode=self.returncode,
        )


def run_command(
    cmd: Union[str, Sequence[str]],
    *,
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    live_stream: Optional[OutputSink] = None,
    log_path: Optional[Path] = None,
) -> CommandResult:
    """Run ``cmd`` with stdout and stderr combined.

    Each output line is handed to ``live_stream`` as it arrives. The full
    output is kept on the result and, when ``log_path`` is given, written
    there too. A process that cannot be started or outlives ``timeout`` raises
    CommandExecutionError; a non-zero exit status does not (see
    ``CommandResult.error``).
    """
    if isinstance(cmd, str):
        display = cmd
        argv = shlex.split(cmd)
    else:
        argv = [str(part) for part in cmd]
        display = shlex.join(argv)
    if not argv:
        raise CommandExecutionError("Empty command", cmd=display)

    run_env = dict(env) if env is not None else os.environ.copy()
    lines: List[str] = []
    start = time.monotonic()
    try:
        proc = subprocess.Popen(
            argv,
            cwd=cwd,
            env=run_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
            start_new_session=True,
        )
    except OSError as exc:
        raise CommandExecutionError(f"Failed to run {display}: {exc}", cmd=display) from exc

    reader = threading.Thread(target=_pump, args=(proc, lines, live_stream), daemon=True)
    reader.start()
    try:
        returncode = proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired as exc:
        _kill_group(proc)
        proc.wait()
        reader.join(timeout=OUTPUT_GRACE)
        raise CommandExecutionError(
            f"Command timed out after {timeout} seconds: {display}\n{''.join(lines)}",
            cmd=display,
        ) from exc
    # Background children may keep the pipe open after the process exits.
    reader.join(timeout=OUTPUT_GRACE)
    elapsed = time.monotonic() - start

    output = "".join(list(lines))
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_path.write_text(output, encoding="utf-8")
    return CommandResult(cmd=display, returncode=returncode, output=output, elapsed_s=elapsed)


def _kill_group(proc: subprocess.Popen) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        proc.kill()


def _pump(proc: subprocess.Popen, lines: List[str], sink: Optional[OutputSink]) -> None:
    assert proc.stdout is not None
    with proc.stdout:
        for line in proc.stdout:
            lines.append(line)
            if sink is not None:
                sink(line.rstrip("\n"))
