from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send


class PublicPathCORSMiddleware:
    """
    CORSMiddleware that lets any origin reach public_paths (with public_methods).
    Every other path uses the configured allow_origins.
    """

    def __init__(
        self,
        app: ASGIApp,
        public_paths: tuple = (),
        public_methods: tuple = ("GET", "POST", "PUT", "DELETE", "OPTIONS"),
        **cors_options,
    ):
        self.public_paths = frozenset(public_paths)
        self.default = CORSMiddleware(app, **cors_options)
        self.public = CORSMiddleware(
            app,
            **{**cors_options, "allow_origins": ["*"], "allow_methods": list(public_methods)},
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"] in self.public_paths:
            await self.public(scope, receive, send)
        else:
            await self.default(scope, receive, send)
