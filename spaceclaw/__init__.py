"""spaceclaw - personal AI agent core."""

__version__ = "0.4.0"
__logo__ = "🦀"
