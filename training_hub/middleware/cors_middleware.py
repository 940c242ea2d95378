"""
CORS Middleware
App-wide CORS with an open policy for public browser endpoints
"""

from typing import Sequence

from fastapi.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send


class RouteCORSMiddleware:
    """
    Apply the configured CORS policy everywhere except `public_paths`

    Public paths answer any origin with `*` and a fixed header list, so
    browser clients outside the configured origins can still preflight them.
    """

    def __init__(
        self,
        app: ASGIApp,
        public_paths: Sequence[str] = (),
        public_allow_headers: Sequence[str] = (),
        **cors_options
    ):
        self.public_paths = tuple(public_paths)
        self.default_cors = CORSMiddleware(app, **cors_options)
        self.public_cors = CORSMiddleware(
            app,
            allow_origins=["*"],
            allow_methods=["POST", "OPTIONS"],
            allow_headers=list(public_allow_headers),
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"] in self.public_paths:
            await self.public_cors(scope, receive, send)
        else:
            await self.default_cors(scope, receive, send)
