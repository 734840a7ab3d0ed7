"""Core infrastructure shared by services and the CLI."""
