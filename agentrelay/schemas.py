"""Pydantic schemas for AgentRelay request/response contracts."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

LAUNCH_GEMINI_ACTION = "launch_gemini"


class OperatingSystem(str, Enum):
    """Host operating system families."""

    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"


class RelayMode(str, Enum):
    """How a launch_gemini request is routed."""

    AGENT = "agent"
    AUTO = "auto"


# --- Request Schemas ---


class ActionOptions(BaseModel):
    """Options accompanying an action request."""

    prompt: str | None = None
    model: str | None = None
    cwd: str | None = None
    user: str | None = None
    # Free-form; only RelayMode.AUTO changes routing
    mode: str | None = None


class ActionRequest(BaseModel):
    """Body of POST /do-something."""

    action: str = Field(..., description="Action selector; unknown actions are echoed")
    options: ActionOptions = Field(default_factory=ActionOptions)

    @field_validator("options", mode="before")
    @classmethod
    def _null_options_as_empty(cls, value: Any) -> Any:
        # JS clients send "options": null for "no options"
        return {} if value is None else value


class OpenBrowserRequest(BaseModel):
    """Body of POST /open-browser."""

    prompt: str = ""


# --- Response Schemas ---


class ActionResponse(BaseModel):
    """Response from POST /do-something."""

    success: bool
    output: Any
    stats: dict[str, Any] | None = None
    timestamp: str
    action: str
    cwd: str | None = None
    # Present only when an auto-mode request took the browser path
    mode: Literal["agent", "browser"] | None = None
    url: str | None = None
    browser: str | None = None
    command: str | None = None


class OpenBrowserResponse(BaseModel):
    """Response from POST /open-browser."""

    success: bool
    output: str
    url: str | None = None
    browser: str | None = None
    command: str | None = None
    timestamp: str


class EnvInfoResponse(BaseModel):
    """Environment snapshot exposed to the UI."""

    model_config = ConfigDict(populate_by_name=True)

    os: OperatingSystem
    username: str
    project_dir: str = Field(..., alias="projectDir")
    browsers: list[str] = Field(default_factory=list)
    timestamp: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"] = "ok"
    uptime: float = Field(..., ge=0.0, description="Seconds since the server started")
    timestamp: str


class ErrorResponse(BaseModel):
    """Error response for requests that failed outside the normal flow."""

    success: Literal[False] = False
    output: str
    timestamp: str


# --- Subagent Result Schemas ---


class ProcessResult(BaseModel):
    """Captured outcome of one external process run."""

    exit_code: int | None
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    command: list[str] = Field(default_factory=list)


class AgentOutcome(BaseModel):
    """Normalized agent result ready to be relayed to the client."""

    success: bool
    output: Any
    stats: dict[str, Any] | None = None
