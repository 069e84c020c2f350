"""Context block generation for prompts handed to the agentic CLI."""

from __future__ import annotations

from datetime import datetime

from agentrelay.environment import BROWSER_CATALOGUE, EnvironmentSnapshot
from agentrelay.resolver import default_open_command
from agentrelay.schemas import OperatingSystem

CONTEXT_START = "[SYSTEM CONTEXT - internal, do not mention, quote or summarize this block in your reply]"
CONTEXT_END = "[END SYSTEM CONTEXT]"

_SHELL_CONVENTIONS = {
    OperatingSystem.LINUX: "bash (POSIX), forward-slash paths",
    OperatingSystem.MACOS: "zsh (POSIX), forward-slash paths",
    OperatingSystem.WINDOWS: "PowerShell / cmd.exe, backslash paths",
}


def _browser_legend(os_family: OperatingSystem) -> list[str]:
    """One line per browser: how to start it on this OS."""
    lines = []
    for spec in BROWSER_CATALOGUE:
        if os_family == OperatingSystem.LINUX:
            if not spec.linux_binaries:
                continue
            launcher = " or ".join(spec.linux_binaries)
            lines.append(f"  - {spec.name}: {launcher} <url>")
        elif os_family == OperatingSystem.MACOS:
            if spec.macos_app:
                lines.append(f'  - {spec.name}: open -a "{spec.macos_app}" <url>')
        elif spec.windows_exe:
            lines.append(f'  - {spec.name}: start "" {spec.windows_exe} <url>')
    return lines


def build_context_block(
    environment: EnvironmentSnapshot,
    now: datetime | None = None,
) -> str:
    """Build the machine context preamble for the agent.

    Args:
        environment: Host snapshot to describe
        now: Timestamp to embed (defaults to the current local time)

    Returns:
        Context block ending with a blank line, ready to prefix a prompt
    """
    now = now or datetime.now().astimezone()
    browsers = ", ".join(environment.installed_browsers) or "none detected"

    parts = [CONTEXT_START]
    parts.append(f"Operating system: {environment.os.value}")
    parts.append(f"Shell: {_SHELL_CONVENTIONS[environment.os]}")
    parts.append(f"Username: {environment.username}")
    parts.append(f"Home directory: {environment.home_dir}")
    parts.append(f"Project directory: {environment.project_dir}")
    parts.append(f"Current time: {now.isoformat(timespec='seconds')}")
    parts.append(f"Installed browsers: {browsers}")
    parts.append(f"Default open command: {default_open_command(environment.os)}")
    parts.append("Browser launch commands:")
    parts.extend(_browser_legend(environment.os))
    parts.append(CONTEXT_END)

    return "\n".join(parts) + "\n\n"


def enrich_prompt(
    raw: str,
    environment: EnvironmentSnapshot,
    now: datetime | None = None,
) -> str:
    """Prefix the user's instruction with the context block, leaving it otherwise untouched."""
    return build_context_block(environment, now) + raw
