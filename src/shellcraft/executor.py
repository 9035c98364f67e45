"""Run a generated command as a single shell invocation."""

import logging
import platform
import subprocess
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)


class SpawnError(Exception):
    """Raised when the shell process could not be started at all."""
    pass


@dataclass
class ExecutionResult:
    """Result of one command run."""
    succeeded: bool
    output: str  # stdout on success, stderr on failure
    exit_code: int


def shell_argv_for(platform_name: str) -> List[str]:
    """Shell prefix for a platform.system() name."""
    if platform_name.lower().startswith("windows"):
        return ["cmd", "/C"]
    return ["sh", "-c"]


class CommandExecutor:
    """Runs command text through the host shell.

    The shell is picked once, at construction, from the host platform
    (or from ``platform_name`` when given).
    """

    def __init__(self, platform_name: Optional[str] = None):
        self.platform_name = platform_name or platform.system()
        self.shell_argv = shell_argv_for(self.platform_name)

    def execute(self, command: str) -> ExecutionResult:
        """
        Run the command and wait for it to exit.

        A non-zero exit status is a normal failed result, not an error.

        Raises:
            SpawnError: If the shell could not be started
        """
        argv = [*self.shell_argv, command]
        logger.debug("Spawning %s", argv)
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise SpawnError(f"Failed to execute command: {e}") from e

        succeeded = result.returncode == 0
        output = result.stdout if succeeded else result.stderr
        logger.debug("Command exited with %d", result.returncode)

        return ExecutionResult(
            succeeded=succeeded,
            output=output or "",
            exit_code=result.returncode,
        )
