import json
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from memory_mcp.gateway import Gateway
from memory_mcp.handler import Handler
from memory_mcp.settings import Settings

BACKEND_URL = "http://memory.test/api/v1/mcp/memory"
TOKEN = "token-user-a"


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests/unit/** as unit and everything else under tests/ as integration."""
    for item in items:
        normalized = str(getattr(item, "fspath", "")).replace("\\", "/")
        if "/tests/unit/" in normalized:
            item.add_marker(pytest.mark.unit)
        elif "/tests/" in normalized:
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def make_settings(token: str | None = TOKEN, url: str = BACKEND_URL) -> Settings:
    # _env_file=None keeps a developer's .env out of the tests
    return Settings(_env_file=None, memory_url=url, memory_token=token)


def build_backend() -> FastAPI:
    """In-process stand-in for the memory backend.

    Scopes every memory to the user encoded in the bearer token, the way the
    real backend does, so tests can tell which credential was sent.
    """
    app = FastAPI()
    memories = [
        {"user_id": "user-a", "current_content": "User A Secret"},
        {"user_id": "user-b", "current_content": "User B Secret"},
    ]

    @app.post("/api/v1/mcp/memory")
    async def rpc(request: Request) -> JSONResponse:
        auth = request.headers.get("authorization", "")
        token = auth[len("Bearer "):] if auth.startswith("Bearer ") else ""
        if not token:
            return JSONResponse({"message": "Unauthenticated."}, status_code=401)
        user_id = token.removeprefix("token-") or "me"

        payload = await request.json()
        rpc_id = payload.get("id")
        method = payload.get("method")
        params = payload.get("params") or {}

        if method == "resources/read":
            if params.get("uri") != "memory://index":
                return JSONResponse(
                    {"jsonrpc": "2.0", "id": rpc_id, "error": {"code": -32002, "message": "Resource not found"}}
                )
            index = [m for m in memories if m["user_id"] == user_id]
            return JSONResponse(
                {
                    "jsonrpc": "2.0",
                    "id": rpc_id,
                    "result": {
                        "contents": [
                            {"uri": "memory://index", "mimeType": "application/json", "text": json.dumps(index)}
                        ]
                    },
                }
            )

        if method != "tools/call":
            return JSONResponse(
                {"jsonrpc": "2.0", "id": rpc_id, "error": {"code": -32601, "message": "Method not found"}}
            )

        name = params.get("name")
        args = params.get("arguments") or {}
        if name == "memory-write":
            stored = {
                "user_id": user_id,
                "current_content": args.get("current_content"),
                "organization": args.get("organization"),
                "scope_type": args.get("scope_type"),
                "memory_type": args.get("memory_type"),
            }
            text = json.dumps(stored)
        elif name == "memory-search":
            wanted = (args.get("filters") or {}).get("user", user_id)
            text = json.dumps([m for m in memories if m["user_id"] == user_id == wanted])
        elif name == "memory-delete":
            text = "Deleted"
        else:
            return JSONResponse(
                {"jsonrpc": "2.0", "id": rpc_id, "error": {"code": -32602, "message": f"Unknown tool: {name}"}}
            )
        return JSONResponse(
            {"jsonrpc": "2.0", "id": rpc_id, "result": {"content": [{"type": "text", "text": text}]}}
        )

    return app


@pytest.fixture
async def backend_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=build_backend())) as client:
        yield client


@pytest.fixture
def handler(backend_client: httpx.AsyncClient) -> Handler:
    return Handler(Gateway(make_settings(), backend_client))


class Recorder:
    """httpx.MockTransport handler that records requests and replays a canned reply."""

    def __init__(self, reply: Callable[[httpx.Request], httpx.Response]):
        self.requests: list[httpx.Request] = []
        self._reply = reply

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._reply(request)

    def body(self, index: int = -1) -> dict[str, Any]:
        return json.loads(self.requests[index].content)


@pytest.fixture
def recorder_client() -> Callable[..., tuple[Recorder, httpx.AsyncClient]]:
    def factory(reply: Callable[[httpx.Request], httpx.Response]) -> tuple[Recorder, httpx.AsyncClient]:
        recorder = Recorder(reply)
        return recorder, httpx.AsyncClient(transport=httpx.MockTransport(recorder))

    return factory
