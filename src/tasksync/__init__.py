"""Role-scoped task tracking client with live updates."""

__version__ = "0.1.0"
