"""Typer applications: ``autoflow``, ``learn_patterns`` and ``smartschedule``."""
