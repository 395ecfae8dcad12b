import json
import logging
from typing import Any

import httpx

from memory_mcp.protocol import (
    INTERNAL_ERROR,
    JSONRPC_VERSION,
    MISSING_CREDENTIAL,
    PARSE_ERROR,
    err,
    ok,
)
from memory_mcp.settings import TOKEN_ENV, Settings

logger = logging.getLogger(__name__)

_UNSET = object()


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _same_id(left: Any, right: Any) -> bool:
    # 1 == 1.0 == True in Python; JSON-RPC ids must match in kind as well
    return type(left) is type(right) and left == right


def _is_envelope(payload: Any, expected_id: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    if payload.get("jsonrpc") != JSONRPC_VERSION or "id" not in payload:
        return False
    if not _same_id(payload["id"], expected_id):
        return False
    return ("result" in payload) != ("error" in payload)


class Gateway:
    """Forwards one JSON-RPC call to the memory backend and relays its reply.

    The backend's envelope is passed through untouched; the gateway only
    synthesizes an envelope itself when there is nothing valid to relay.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self._url = settings.memory_url
        self._token = settings.memory_token
        self._client = client

    async def forward(
        self,
        method: str,
        params: Any = _UNSET,
        id: Any = None,
        *,
        notification: bool = False,
    ) -> dict[str, Any] | None:
        """Send ``method`` to the backend.

        Returns the envelope to write to stdout, or None for a notification.
        """
        if not self._token:
            message = f"{TOKEN_ENV} is required but missing from environment"
            logger.critical("FATAL: %s (method=%s)", message, method)
            return None if notification else err(id, MISSING_CREDENTIAL, message)

        body: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": method}
        if params is not _UNSET:
            body["params"] = params
        if not notification:
            body["id"] = id

        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {self._token}",
        }

        logger.info("Forwarding %s  url=%s", method, self._url)
        try:
            response = await self._client.post(self._url, content=json.dumps(body), headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            cause = str(exc) or type(exc).__name__
            logger.error("Backend call failed  method=%s  cause=%s", method, cause)
            return None if notification else err(id, INTERNAL_ERROR, f"internal error: {cause}")

        logger.info("Backend answered %s  status=%d", method, response.status_code)
        if notification:
            return None
        return self._relay(response.text, id)

    def _relay(self, text: str, id: Any) -> dict[str, Any]:
        try:
            payload = json.loads(text, parse_constant=_reject_constant)
        except ValueError as exc:
            logger.error("Backend returned a body that is not JSON: %s", exc)
            return err(id, PARSE_ERROR, f"parse error: {exc}")

        if _is_envelope(payload, id):
            return payload

        logger.warning("Backend reply is not a JSON-RPC envelope for id=%r; wrapping it as result", id)
        return ok(id, payload)
