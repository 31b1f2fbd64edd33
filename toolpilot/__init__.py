"""toolpilot - LLM-driven task agent with a pluggable tool registry."""

__version__ = "0.1.0"
