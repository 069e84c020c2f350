"""Subagents for AgentRelay: the agentic CLI runner and the browser launcher."""

from agentrelay.subagents.browser_launcher import run_detached_command
from agentrelay.subagents.gemini_runner import classify_result, run_agent

__all__ = ["run_agent", "classify_result", "run_detached_command"]
