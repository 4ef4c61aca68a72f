from starlette.middleware.cors import CORSMiddleware
from starlette.types import Receive, Scope, Send

FUNCTIONS_PATH = "/functions"


class APICORSMiddleware(CORSMiddleware):
    """CORS for the REST API.

    Requests under /functions pass straight through: the functions answer
    their own preflights and send the permissive headers on every response.
    """

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        path = scope.get("path", "")
        if scope["type"] == "http" and (path == FUNCTIONS_PATH or path.startswith(FUNCTIONS_PATH + "/")):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)
