"""agent-deck - normalized chat state for multiple CLI coding agents."""

__version__ = "0.3.0"
