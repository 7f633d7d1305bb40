"""HTTP API for autobot."""

from autobot.api.app import create_app

__all__ = ["create_app"]
