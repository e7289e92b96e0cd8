"""Browser-facing development server exports."""

from .dev_server import DevServer, ListenAddress

__all__ = ["DevServer", "ListenAddress"]
