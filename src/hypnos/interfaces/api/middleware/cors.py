"""CORS middleware for the dashboard origins."""

import falcon
import falcon.asgi

ALLOWED_METHODS = "GET, POST, DELETE, OPTIONS"
ALLOWED_HEADERS = "Authorization, Content-Type, X-Principal"


class CORSMiddleware:
    """Echoes an allowed Origin back and answers OPTIONS preflight itself.

    A ``*`` entry allows any origin.
    """

    def __init__(self, origins: list[str]) -> None:
        self._origins = origins
        self._any = "*" in origins

    def _allowed(self, origin: str | None) -> bool:
        return bool(origin) and (self._any or origin in self._origins)

    async def process_request(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response
    ) -> None:
        if req.method == "OPTIONS":
            resp.status = falcon.HTTP_204
            resp.complete = True

    async def process_response(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, resource, req_succeeded
    ) -> None:
        origin = req.get_header("Origin")
        resp.set_header("Vary", "Origin")
        if not self._allowed(origin):
            return
        resp.set_header("Access-Control-Allow-Origin", origin)
        resp.set_header("Access-Control-Allow-Methods", ALLOWED_METHODS)
        resp.set_header("Access-Control-Allow-Headers", ALLOWED_HEADERS)
        resp.set_header("Access-Control-Max-Age", "86400")
