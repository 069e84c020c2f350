"""CLI for AgentRelay - run the bridge server and talk to it."""

from __future__ import annotations

import sys

import click

from agentrelay import __version__

DEFAULT_SERVER = "http://127.0.0.1:3001"


@click.group()
@click.version_option(version=__version__, prog_name="agentrelay")
def main() -> None:
    """AgentRelay - HTTP bridge from a browser UI to the Gemini CLI.

    Serve the bridge, inspect the detected environment, or send prompts
    to a running server.
    """
    pass


@main.command()
@click.option("--port", default=None, type=int, help="Port to run the server on (default: 3001)")
@click.option("--host", default=None, help="Host to bind to (default: 127.0.0.1)")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(port: int | None, host: str | None, reload: bool) -> None:
    """Start the AgentRelay HTTP server."""
    import uvicorn

    from agentrelay.config import get_settings

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port

    click.echo(f"Starting AgentRelay on http://{host}:{port}")
    uvicorn.run(
        "agentrelay.server:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output raw JSON instead of formatted text")
def env(as_json: bool) -> None:
    """Show the detected environment (OS, user, paths, browsers)."""
    from agentrelay.environment import get_environment

    snapshot = get_environment()

    if as_json:
        import json

        click.echo(json.dumps({
            "os": snapshot.os.value,
            "username": snapshot.username,
            "homeDir": str(snapshot.home_dir),
            "projectDir": str(snapshot.project_dir),
            "browsers": list(snapshot.installed_browsers),
        }, indent=2))
        return

    click.echo(f"OS:          {snapshot.os.value}")
    click.echo(f"User:        {snapshot.username}")
    click.echo(f"Home:        {snapshot.home_dir}")
    click.echo(f"Project:     {snapshot.project_dir}")
    browsers = ", ".join(snapshot.installed_browsers) or "none detected"
    click.echo(f"Browsers:    {browsers}")


def _post(server: str, path: str, payload: dict, timeout: float) -> dict:
    """POST JSON to the server and return the decoded body; exit on transport errors."""
    import httpx

    try:
        response = httpx.post(f"{server.rstrip('/')}{path}", json=payload, timeout=timeout)
    except httpx.HTTPError as e:
        click.echo(f"Could not reach AgentRelay at {server}: {e}", err=True)
        sys.exit(1)

    try:
        return response.json()
    except ValueError:
        click.echo(f"Unexpected response ({response.status_code}): {response.text}", err=True)
        sys.exit(1)


@main.command()
@click.argument("prompt")
@click.option("--model", "-m", default=None, help="Model identifier (server default if omitted)")
@click.option("--cwd", "-C", default=None, help="Working directory for the agent")
@click.option("--auto", "auto_mode", is_flag=True, help="Open browser-style prompts directly")
@click.option("--server", "-s", default=DEFAULT_SERVER, show_default=True, help="AgentRelay base URL")
@click.option("--timeout", default=150.0, show_default=True, help="HTTP timeout in seconds")
def ask(
    prompt: str,
    model: str | None,
    cwd: str | None,
    auto_mode: bool,
    server: str,
    timeout: float,
) -> None:
    """Send a prompt to the agent through a running server.

    \b
    Example:
        agentrelay ask "list the files in this directory"
        agentrelay ask "open youtube" --auto
    """
    options = {"prompt": prompt}
    if model:
        options["model"] = model
    if cwd:
        options["cwd"] = cwd
    if auto_mode:
        options["mode"] = "auto"

    data = _post(server, "/do-something", {"action": "launch_gemini", "options": options}, timeout)

    output = data.get("output", "")
    if not isinstance(output, str):
        import json

        output = json.dumps(output, indent=2)
    click.echo(output)
    if not data.get("success"):
        sys.exit(1)


@main.command("open")
@click.argument("prompt")
@click.option("--server", "-s", default=DEFAULT_SERVER, show_default=True, help="AgentRelay base URL")
def open_browser(prompt: str, server: str) -> None:
    """Open a site in a browser through a running server.

    \b
    Example:
        agentrelay open "my github profile in firefox"
    """
    data = _post(server, "/open-browser", {"prompt": prompt}, timeout=10.0)

    click.echo(data.get("output", ""))
    if data.get("success"):
        click.echo(f"Command: {data.get('command')}")
    else:
        sys.exit(1)


if __name__ == "__main__":
    main()
