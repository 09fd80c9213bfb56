"""HTTP API: FastAPI app, middleware, routers and schemas."""

from bizcore.api.app import create_app

__all__ = ["create_app"]
