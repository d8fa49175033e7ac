"""MatchedCover HTTP API."""

from matchedcover.api.routes import create_app

__all__ = ["create_app"]
