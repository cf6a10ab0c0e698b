"""runjar: run a JAR against an automatically fetched Java runtime."""

__version__ = "1.0.0"
