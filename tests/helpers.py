import inspect
from typing import Callable, Dict, List, Tuple

import httpx


def json_response(payload, status_code: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status_code, json=payload)


class FakeUpstream:
    """Routes outbound requests by host and path prefix and records them"""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Callable] = {}
        self.requests: List[httpx.Request] = []

    def add(self, host: str, path_prefix: str, handler: Callable) -> None:
        self.routes[(host, path_prefix)] = handler

    def calls_to(self, host: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.host == host]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for (host, path_prefix), handler in self.routes.items():
            if request.url.host == host and request.url.path.startswith(path_prefix):
                response = handler(request)
                if inspect.isawaitable(response):
                    response = await response
                return response
        return httpx.Response(404, json={"error": "no route"})
