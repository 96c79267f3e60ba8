"""CLI module for agent-deck."""
