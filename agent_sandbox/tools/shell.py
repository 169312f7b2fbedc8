"""Shell command execution.

Runs caller-supplied command lines in the workspace:
- /bin/sh -c, so shell syntax (pipes, redirects, globs) is honoured
- Deadline per command; on expiry the whole process group is killed
- stdout and stderr captured separately, then merged
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import time
from pathlib import Path

from agent_sandbox.errors import ExecutionFailedError


logger = logging.getLogger(__name__)

SHELL = "/bin/sh"

# Seconds to wait for pipes to drain after a timed-out command is killed
KILL_GRACE = 1.0


def _decode(data: bytes | None) -> str:
    return data.decode("utf-8", errors="replace") if data else ""


def combine_output(stdout: str, stderr: str) -> str:
    """stdout, then stderr, newline-separated only when both are non-empty."""
    if stdout and stderr:
        return f"{stdout}\n{stderr}"
    return stdout or stderr


class ShellService:
    """Executes commands with a timeout inside ``workspace_dir``."""

    def __init__(self, default_timeout: float = 300, workspace_dir: str | Path = "."):
        self.default_timeout = default_timeout
        self.workspace_dir = Path(workspace_dir)

    def execute(self, command: str, timeout: float | None = None) -> str:
        """Run ``command`` and return its combined output.

        Args:
            command: Command line passed verbatim to the shell
            timeout: Seconds before the command is killed (default: service timeout)

        Returns:
            Combined stdout/stderr of a zero-exit run

        Raises:
            ExecutionFailedError: non-zero exit or timeout. ``output`` carries
                whatever was captured before the failure.
        """
        if timeout is None:
            timeout = self.default_timeout

        start = time.perf_counter()

        # New session so the timeout can take down the command's children too
        proc = subprocess.Popen(
            [SHELL, "-c", command],
            cwd=self.workspace_dir.resolve(),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            start_new_session=True,
        )

        try:
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            self._kill(proc)
            output = self._drain(proc, exc)
            logger.warning(f"Command timed out after {timeout} seconds: {command}")
            raise ExecutionFailedError(
                f"command execution failed: timed out after {timeout} seconds",
                output=output,
                timed_out=True,
            ) from None
        except BaseException:
            self._kill(proc)
            proc.wait()
            raise

        latency_ms = int((time.perf_counter() - start) * 1000)
        output = combine_output(_decode(stdout), _decode(stderr))

        if proc.returncode != 0:
            logger.debug(f"Command exited {proc.returncode} in {latency_ms}ms: {command}")
            raise ExecutionFailedError(
                f"command execution failed: exit status {proc.returncode}",
                output=output,
                exit_code=proc.returncode,
            )

        logger.debug(f"Command finished in {latency_ms}ms: {command}")
        return output

    @staticmethod
    def _kill(proc: subprocess.Popen) -> None:
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass

    @staticmethod
    def _drain(proc: subprocess.Popen, exc: subprocess.TimeoutExpired) -> str:
        """Collect output from a killed process without waiting on strays.

        Descendants that left the process group can keep the pipes open,
        so reading stops after ``KILL_GRACE`` seconds.
        """
        try:
            stdout, stderr = proc.communicate(timeout=KILL_GRACE)
        except subprocess.TimeoutExpired as again:
            stdout = again.stdout or exc.stdout
            stderr = again.stderr or exc.stderr
            for pipe in (proc.stdout, proc.stderr):
                if pipe is not None:
                    pipe.close()
            proc.wait()
        return combine_output(_decode(stdout), _decode(stderr))
