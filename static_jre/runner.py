"""
Thin wrapper around subprocess for the external programs the build drives.

All build steps take a CommandRunner so the commands they issue can be
recorded and scripted in tests.
"""

import os
import shlex
import shutil
import signal
import subprocess
from pathlib import Path
from typing import Mapping

from .errors import CommandError


class CommandRunner:
    """Run external commands with an optional wall-clock timeout."""

    def __init__(self, echo: bool = True):
        self.echo = echo

    def run(
        self,
        cmd: list[str],
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        check: bool = True,
        capture: bool = False,
    ) -> subprocess.CompletedProcess:
        """
        Run a command and wait for it to exit.

        Args:
            cmd: Command and arguments
            cwd: Working directory for the command
            env: Full environment for the child (inherits ours when None)
            timeout: Seconds before the child is killed and the run counts as failed
            check: Raise CommandError on non-zero exit or timeout
            capture: Capture stdout/stderr as text instead of passing them through

        Returns:
            The completed process. A timed-out run in non-check mode is reported
            with returncode 124, the exit status timeout(1) uses.
        """
        if self.echo:
            print(f"$ {shlex.join(cmd)}", flush=True)

        pipe = subprocess.PIPE if capture else None
        try:
            # Own session so a timeout or interrupt can kill the whole job tree
            proc = subprocess.Popen(
                cmd,
                cwd=str(cwd) if cwd is not None else None,
                env=dict(env) if env is not None else None,
                stdout=pipe,
                stderr=pipe,
                text=True,
                start_new_session=True,
            )
        except FileNotFoundError as e:
            if check:
                raise CommandError(cmd, 127, stderr=str(e)) from e
            return subprocess.CompletedProcess(cmd, 127, stdout="", stderr=str(e))

        try:
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            self._kill_group(proc)
            if check:
                raise CommandError(cmd, None, timed_out=True) from e
            return subprocess.CompletedProcess(cmd, 124, stdout="", stderr=f"timed out after {timeout}s")
        except KeyboardInterrupt:
            self._kill_group(proc)
            raise

        result = subprocess.CompletedProcess(cmd, proc.returncode, stdout=stdout, stderr=stderr)
        if check and result.returncode != 0:
            raise CommandError(cmd, result.returncode, stderr=result.stderr or "")
        return result

    @staticmethod
    def _kill_group(proc: subprocess.Popen) -> None:
        """SIGKILL the child's process group and reap the child."""
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        proc.communicate()

    def succeeds(self, cmd: list[str], **kwargs) -> bool:
        """Run a command without raising; True when it exits 0 in time."""
        kwargs["check"] = False
        return self.run(cmd, **kwargs).returncode == 0

    def output(self, cmd: list[str], **kwargs) -> str | None:
        """Return the stripped stdout of a successful command, or None."""
        kwargs["check"] = False
        kwargs["capture"] = True
        result = self.run(cmd, **kwargs)
        if result.returncode != 0:
            return None
        return (result.stdout or "").strip()

    def which(self, name: str) -> str | None:
        return shutil.which(name)
