import logging
from enum import Enum
from typing import Any

from memory_mcp import catalog
from memory_mcp.gateway import Gateway
from memory_mcp.protocol import PROTOCOL_VERSION, Request, notification, ok

logger = logging.getLogger(__name__)


class Method(str, Enum):
    INITIALIZE = "initialize"
    INITIALIZED = "notifications/initialized"
    TOOLS_LIST = "tools/list"
    RESOURCES_LIST = "resources/list"
    RESOURCE_TEMPLATES_LIST = "resources/templates/list"
    RESOURCES_READ = "resources/read"
    PROMPTS_LIST = "prompts/list"
    PROMPTS_GET = "prompts/get"


class State(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class Handler:
    """Answers the MCP handshake and discovery methods, forwards the rest.

    ``handle`` returns the ordered messages to write for one inbound
    envelope: none for a notification, one for an ordinary request, and
    the (response, notification) pair for ``initialize``.
    """

    def __init__(self, gateway: Gateway):
        self._gateway = gateway
        self.state = State.UNINITIALIZED
        self._routes = {
            Method.INITIALIZE: self._initialize,
            Method.INITIALIZED: self._peer_initialized,
            Method.TOOLS_LIST: self._tools_list,
            Method.RESOURCES_LIST: self._resources_list,
            Method.RESOURCE_TEMPLATES_LIST: self._resource_templates_list,
            Method.RESOURCES_READ: self._resources_read,
            Method.PROMPTS_LIST: self._prompts_list,
            Method.PROMPTS_GET: self._prompts_get,
        }

    async def handle(self, request: Request) -> tuple[dict[str, Any], ...]:
        try:
            route = self._routes[Method(request.method)]
        except ValueError:
            return await self._forward(request)

        if request.method != Method.INITIALIZED and self.state is State.UNINITIALIZED:
            logger.warning("%s received before initialize", request.method)
        return await route(request)

    async def _forward(self, request: Request) -> tuple[dict[str, Any], ...]:
        kwargs: dict[str, Any] = {}
        if "params" in request.model_fields_set:
            kwargs["params"] = request.params
        if request.is_notification:
            await self._gateway.forward(request.method, notification=True, **kwargs)
            return ()
        response = await self._gateway.forward(request.method, id=request.id, **kwargs)
        return (response,)

    async def _initialize(self, request: Request) -> tuple[dict[str, Any], ...]:
        self.state = State.READY
        if request.is_notification:
            return ()
        result = {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": catalog.capabilities(),
            "serverInfo": catalog.server_info(),
        }
        return ok(request.id, result), notification(Method.INITIALIZED.value)

    async def _peer_initialized(self, request: Request) -> tuple[dict[str, Any], ...]:
        return ()

    async def _tools_list(self, request: Request) -> tuple[dict[str, Any], ...]:
        return self._local(request, {"tools": catalog.list_tools()})

    async def _resources_list(self, request: Request) -> tuple[dict[str, Any], ...]:
        return self._local(request, {"resources": catalog.list_resources()})

    async def _resource_templates_list(self, request: Request) -> tuple[dict[str, Any], ...]:
        return self._local(request, {"resourceTemplates": catalog.list_resource_templates()})

    async def _prompts_list(self, request: Request) -> tuple[dict[str, Any], ...]:
        return self._local(request, {"prompts": catalog.list_prompts()})

    async def _resources_read(self, request: Request) -> tuple[dict[str, Any], ...]:
        params = request.params or {}
        result = catalog.read_resource(params.get("uri"))
        if result is None:
            logger.debug("No static resource for %r, forwarding", params.get("uri"))
            return await self._forward(request)
        return self._local(request, result)

    async def _prompts_get(self, request: Request) -> tuple[dict[str, Any], ...]:
        params = request.params or {}
        arguments = params.get("arguments")
        result = catalog.get_prompt(
            params.get("name"), arguments if isinstance(arguments, dict) else None
        )
        if result is None:
            logger.debug("No static prompt named %r, forwarding", params.get("name"))
            return await self._forward(request)
        return self._local(request, result)

    @staticmethod
    def _local(request: Request, result: dict[str, Any]) -> tuple[dict[str, Any], ...]:
        if request.is_notification:
            return ()
        return (ok(request.id, result),)
