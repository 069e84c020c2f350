"""HTTP server bridging the browser UI to the agentic CLI and the local browser."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from agentrelay import __version__
from agentrelay.config import get_settings
from agentrelay.environment import get_environment
from agentrelay.prompt_engine import enrich_prompt
from agentrelay.resolver import (
    BrowserLaunch,
    BrowserNotFoundError,
    is_browser_intent,
    plan_browser_launch,
)
from agentrelay.schemas import (
    LAUNCH_GEMINI_ACTION,
    ActionRequest,
    ActionResponse,
    EnvInfoResponse,
    ErrorResponse,
    HealthResponse,
    OpenBrowserRequest,
    OpenBrowserResponse,
    RelayMode,
)
from agentrelay.subagents.browser_launcher import run_detached_command
from agentrelay.subagents.gemini_runner import AgentLaunchError, classify_result, run_agent

logger = logging.getLogger(__name__)

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

_START_TIME = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Capture the environment snapshot once, before serving requests."""
    environment = get_environment()
    settings = get_settings()
    logger.info(f"AgentRelay {__version__} ready on {settings.host}:{settings.port}")
    logger.info(f"Agentic endpoint: POST /do-something (project dir {environment.project_dir})")
    yield


app = FastAPI(
    title="AgentRelay",
    description="HTTP bridge from a browser UI to an agentic CLI and the local browser",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2025-01-01T00:00:00.000Z."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _respond(body: BaseModel, status_code: int = 200, exclude_none: bool = True) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=exclude_none),
    )


def _describe_launch(launch: BrowserLaunch) -> str:
    target = launch.browser or "the default browser"
    return f"Opening {launch.url} in {target}"


def _launch_browser(prompt: str) -> BrowserLaunch:
    """Resolve and start a browser launch; errors propagate to the caller."""
    settings = get_settings()
    launch = plan_browser_launch(prompt, get_environment(), search_url=settings.search_url)
    run_detached_command(list(launch.command))
    return launch


# --- HTTP Endpoints ---


@app.post("/do-something")
def do_something(request: ActionRequest) -> JSONResponse:
    """Run an action; launch_gemini hands the prompt to the agentic CLI.

    Declared sync so FastAPI runs it on the threadpool: a long agent run
    holds its own request only.
    """
    timestamp = utc_timestamp()
    action = request.action
    options = request.options
    logger.info(f"POST /do-something action={action} options={options.model_dump(exclude_none=True)}")

    if action != LAUNCH_GEMINI_ACTION:
        return _respond(ActionResponse(
            success=True,
            output=f'Action "{action}" received at {timestamp}',
            timestamp=timestamp,
            action=action,
        ))

    settings = get_settings()
    environment = get_environment()
    prompt = options.prompt or settings.default_prompt
    model = options.model or settings.default_model
    work_dir = options.cwd or str(environment.project_dir)

    if options.mode == RelayMode.AUTO and is_browser_intent(prompt):
        try:
            launch = _launch_browser(prompt)
        except Exception as e:
            logger.warning(f"Browser launch failed: {e}")
            return _respond(
                ActionResponse(success=False, output=str(e), timestamp=timestamp, action=action),
                status_code=400,
            )
        return _respond(ActionResponse(
            success=True,
            output=_describe_launch(launch),
            timestamp=timestamp,
            action=action,
            mode="browser",
            url=launch.url,
            browser=launch.browser,
            command=launch.command_line,
        ))

    logger.info(f"Prompt: {prompt}")
    final_prompt = enrich_prompt(prompt, environment) if settings.enrich_prompts else prompt

    try:
        result = run_agent(
            model=model,
            prompt=final_prompt,
            cwd=work_dir,
            timeout_ms=settings.agent_timeout_ms,
            executable=settings.agent_executable,
        )
    except AgentLaunchError as e:
        return _respond(
            ActionResponse(success=False, output=str(e), timestamp=timestamp, action=action),
            status_code=500,
        )

    outcome = classify_result(result, timeout_ms=settings.agent_timeout_ms)
    if not outcome.success:
        return _respond(
            ActionResponse(success=False, output=outcome.output, timestamp=timestamp, action=action),
            status_code=500,
        )

    return _respond(ActionResponse(
        success=True,
        output=outcome.output,
        stats=outcome.stats,
        timestamp=timestamp,
        action=action,
        cwd=work_dir,
    ))


@app.post("/open-browser")
def open_browser(request: OpenBrowserRequest) -> JSONResponse:
    """Open a URL (resolved from free text) in the requested or default browser."""
    timestamp = utc_timestamp()
    prompt = request.prompt.strip()
    logger.info(f"POST /open-browser prompt={prompt!r}")

    if not prompt:
        return _respond(
            OpenBrowserResponse(success=False, output="No prompt provided", timestamp=timestamp),
            status_code=400,
        )

    try:
        launch = _launch_browser(prompt)
    except BrowserNotFoundError as e:
        logger.warning(f"Browser not found: {e}")
        return _respond(
            OpenBrowserResponse(success=False, output=str(e), timestamp=timestamp),
            status_code=400,
        )
    except Exception as e:
        logger.error(f"Browser launch failed: {e}", exc_info=True)
        return _respond(
            OpenBrowserResponse(success=False, output=str(e) or type(e).__name__, timestamp=timestamp),
            status_code=400,
        )

    return _respond(OpenBrowserResponse(
        success=True,
        output=_describe_launch(launch),
        url=launch.url,
        browser=launch.browser,
        command=launch.command_line,
        timestamp=timestamp,
    ), exclude_none=False)


@app.get("/env-info", response_model=EnvInfoResponse)
async def env_info() -> EnvInfoResponse:
    """Expose the environment snapshot to the UI."""
    environment = get_environment()
    return EnvInfoResponse(
        os=environment.os,
        username=environment.username,
        project_dir=str(environment.project_dir),
        browsers=list(environment.installed_browsers),
        timestamp=utc_timestamp(),
    )


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness check with process uptime in seconds."""
    return HealthResponse(
        uptime=max(0.0, time.monotonic() - _START_TIME),
        timestamp=utc_timestamp(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return _respond(
        ErrorResponse(output=str(exc) or type(exc).__name__, timestamp=utc_timestamp()),
        status_code=500,
    )


# Static UI last so API routes take precedence
_static_dir = Path(get_settings().static_dir)
if _static_dir.is_dir():
    app.mount("/", StaticFiles(directory=str(_static_dir), html=True), name="static")
else:
    logger.warning(f"Static directory not found, UI disabled: {_static_dir}")
