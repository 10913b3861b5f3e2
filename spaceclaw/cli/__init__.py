"""CLI module for spaceclaw."""
