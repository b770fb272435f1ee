"""HTTP API for editor and dev-server integrations."""

from depwatch.web.app import create_app

__all__ = ["create_app"]
