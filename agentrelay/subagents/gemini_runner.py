"""Gemini CLI runner: launches the agent in YOLO mode and normalizes its output."""

from __future__ import annotations

import json
import logging
import os
import subprocess
from pathlib import Path

from agentrelay.config import DEFAULT_TIMEOUT_MS
from agentrelay.schemas import AgentOutcome, ProcessResult

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE = "gemini"
AGENT_DISPLAY_NAME = "Gemini"
INSTALL_HINT = "Gemini CLI not found. Install: npm install -g @google/gemini-cli"


class AgentLaunchError(Exception):
    """Raised when the agent process could not be started."""

    pass


class AgentNotFoundError(AgentLaunchError):
    """Raised when the agent executable is not installed."""

    pass


def build_agent_command(executable: str, model: str, prompt: str) -> list[str]:
    """Build the agent argv.

    -y auto-approves every tool call (file edits, shell, network) and
    --output-format json yields a single {response, stats} document.
    """
    return [
        executable,
        "-m", model,
        "-y",
        "--output-format", "json",
        "-p", prompt,
    ]


def _to_text(output: str | bytes | None) -> str:
    """Normalize captured output, which is bytes on some timeout paths."""
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output


def run_agent(
    model: str,
    prompt: str,
    cwd: str | Path,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    executable: str = DEFAULT_EXECUTABLE,
) -> ProcessResult:
    """Run the agentic CLI to completion and capture its output.

    Args:
        model: Model identifier passed with -m
        prompt: Final prompt text (already enriched)
        cwd: Working directory for the agent
        timeout_ms: Hard wall-clock limit; the child is killed when it expires
        executable: Agent executable name or path

    Returns:
        ProcessResult with exit code, stdout and stderr

    Raises:
        AgentNotFoundError: If the executable is not installed
        AgentLaunchError: If the process could not be started for another reason
    """
    work_dir = Path(cwd).expanduser()
    if not work_dir.is_dir():
        raise AgentLaunchError(f"Working directory does not exist: {work_dir}")

    command = build_agent_command(executable, model, prompt)
    timeout_seconds = timeout_ms / 1000

    logger.info(f"Launching {executable}: model={model}, cwd={work_dir}")
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
            cwd=str(work_dir),
            env=os.environ.copy(),
        )
    except FileNotFoundError as e:
        logger.error(f"Agent executable not found: {executable}")
        raise AgentNotFoundError(INSTALL_HINT) from e
    except subprocess.TimeoutExpired as e:
        logger.warning(f"Agent timed out after {timeout_seconds:g}s and was killed")
        return ProcessResult(
            exit_code=None,
            stdout=_to_text(e.stdout),
            stderr=_to_text(e.stderr),
            timed_out=True,
            command=command,
        )
    except OSError as e:
        logger.error(f"Agent launch failed: {e}")
        raise AgentLaunchError(str(e)) from e

    logger.info(f"Agent exited: code={result.returncode}")
    return ProcessResult(
        exit_code=result.returncode,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
        command=command,
    )


def classify_result(
    result: ProcessResult,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> AgentOutcome:
    """Turn a finished agent run into a success/failure outcome.

    Structured JSON output wins; otherwise a clean exit with text is a success;
    otherwise the best available diagnostic is reported.
    """
    stdout = result.stdout.strip()
    stderr = result.stderr.strip()

    if result.timed_out:
        return AgentOutcome(
            success=False,
            output=stderr or f"{AGENT_DISPLAY_NAME} timed out after {timeout_ms / 1000:g} seconds",
        )

    try:
        parsed = json.loads(stdout)
    except ValueError:
        parsed = None

    # A bare "null" document carries no answer; fall through to the exit code
    if parsed is not None:
        output = stdout
        stats = None
        if isinstance(parsed, dict):
            if parsed.get("response") is not None:
                output = parsed["response"]
            if isinstance(parsed.get("stats"), dict):
                stats = parsed["stats"]
        return AgentOutcome(success=True, output=output, stats=stats)

    if result.exit_code == 0 and stdout:
        return AgentOutcome(success=True, output=stdout)

    return AgentOutcome(
        success=False,
        output=stderr or stdout or f"{AGENT_DISPLAY_NAME} exited with code {result.exit_code}",
    )
