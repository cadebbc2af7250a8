"""
Exceptions raised by the static JRE build steps.

Every fatal condition raises BuildError. Entry points catch it, print the
message and exit non-zero.
"""


class BuildError(RuntimeError):
    """A fatal, unrecoverable build failure."""


class CommandError(BuildError):
    """An external command exited non-zero or ran past its timeout."""

    def __init__(self, cmd: list[str], returncode: int | None, timed_out: bool = False, stderr: str = ""):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.timed_out = timed_out
        self.stderr = stderr

        command = " ".join(self.cmd)
        if timed_out:
            message = f"Command timed out: {command}"
        else:
            message = f"Command failed with exit code {returncode}: {command}"
        if stderr:
            message += f"\n{stderr.strip()}"
        super().__init__(message)
