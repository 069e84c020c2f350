"""Fire-and-forget launcher for browser commands."""

from __future__ import annotations

import logging
import subprocess
import sys

logger = logging.getLogger(__name__)


def run_detached_command(command: list[str]) -> int:
    """Start a command without waiting for it or capturing its output.

    The child gets its own session (or a detached console on Windows) so it
    outlives the request and the server.

    Args:
        command: argv to execute

    Returns:
        PID of the spawned process

    Raises:
        OSError: If the command could not be started
    """
    if not command:
        raise ValueError("Command is empty")

    kwargs: dict = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.DEVNULL,
        "stderr": subprocess.DEVNULL,
        "close_fds": True,
    }
    if sys.platform == "win32":
        kwargs["creationflags"] = subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
    else:
        kwargs["start_new_session"] = True

    process = subprocess.Popen(command, **kwargs)
    logger.info(f"Launched detached command: {command} (pid {process.pid})")
    return process.pid
