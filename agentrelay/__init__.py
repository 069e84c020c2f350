"""AgentRelay HTTP bridge.

A small HTTP service that takes natural-language instructions from a browser UI
and either opens a browser at the right page or hands the instruction to an
agentic command-line tool (the Gemini CLI), relaying its output back as JSON.
"""

__version__ = "0.1.0"
