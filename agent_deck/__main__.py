"""Entry point for running agent-deck as a module: python -m agent_deck"""

from agent_deck.cli.commands import app

if __name__ == "__main__":
    app()
