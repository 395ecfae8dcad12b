"""
stdio <-> HTTP JSON-RPC adapter.

An MCP client spawns this process and talks JSON-RPC over stdin/stdout, one
message per line. Handshake and discovery are answered locally; everything
else is POSTed to the memory backend and its reply relayed back.

Only protocol messages are written to stdout. Diagnostics go to stderr.
"""
import asyncio
import logging
import sys
from collections.abc import AsyncIterable
from typing import Protocol

import anyio
import httpx
from pydantic import ValidationError

from memory_mcp.gateway import Gateway
from memory_mcp.handler import Handler
from memory_mcp.protocol import INTERNAL_ERROR, Request, dumps, err, parse_line
from memory_mcp.settings import TOKEN_ENV, Settings

logger = logging.getLogger(__name__)


class LineWriter(Protocol):
    async def write(self, data: str) -> object: ...

    async def flush(self) -> object: ...


async def serve(lines: AsyncIterable[str], out: LineWriter, handler: Handler) -> None:
    """Process inbound lines one at a time until the input is exhausted."""
    async for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            request = parse_line(line)
        except ValidationError as exc:
            logger.error("Parse error, dropping line: %s", exc.errors(include_url=False))
            continue

        try:
            messages = await handler.handle(request)
        except Exception as exc:
            logger.exception("Unhandled error while processing %s", request.method)
            if request.is_notification:
                continue
            messages = (err(request.id, INTERNAL_ERROR, f"internal error: {exc}"),)

        for message in messages:
            await out.write(_encode(message, request) + "\n")
        await out.flush()


def _encode(message: dict, request: Request) -> str:
    try:
        return dumps(message)
    except ValueError as exc:
        logger.error("Cannot serialize reply to %s: %s", request.method, exc)
        return dumps(err(request.id, INTERNAL_ERROR, f"internal error: {exc}"))


async def main(settings: Settings | None = None) -> None:
    settings = settings or Settings()
    logger.info("memory backend url=%s", settings.memory_url)
    if not settings.memory_token:
        logger.warning("%s is not set; forwarded calls will fail", TOKEN_ENV)

    # closefd=False: closing these must not close the process-wide descriptors
    stdin = anyio.wrap_file(open(sys.stdin.fileno(), encoding="utf-8", errors="replace", closefd=False))
    stdout = anyio.wrap_file(open(sys.stdout.fileno(), "w", encoding="utf-8", closefd=False))

    async with stdin, stdout, httpx.AsyncClient() as client:
        handler = Handler(Gateway(settings, client))
        await serve(stdin, stdout, handler)
    logger.info("stdin closed, exiting")


def run() -> None:
    settings = Settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s:%(name)s: %(message)s",
        stream=sys.stderr,
    )
    asyncio.run(main(settings))


if __name__ == "__main__":
    run()
