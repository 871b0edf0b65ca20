"""JSON-RPC method surface shared by every transport.

Incoming messages are validated into ``RpcRequest`` / ``ToolCall`` before
dispatch; anything that is not a JSON-RPC object is rejected with an
Invalid Request error instead of being guessed at.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from .codec import decode_body
from .config import VERSION
from .core import DialogResolution
from .errors import INVALID_REQUEST, METHOD_NOT_FOUND, DialogUnavailable, RpcError

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "chat-hitl"
TOOL_NAME = "chat_hitl"
NOTIFICATIONS = ("initialized", "notifications/initialized")

TOOL_DESCRIPTOR = {
    "name": TOOL_NAME,
    "description": (
        "Call this tool whenever you are about to end the conversation or stop working, "
        "to ask the user whether to continue and get their next instructions."
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "reason": {
                "type": "string",
                "description": "Why you want to end the conversation",
            },
            "workspace": {
                "type": "string",
                "description": "Absolute path of the current workspace",
            },
        },
        "required": ["reason", "workspace"],
    },
}

CONTINUE_TEMPLATE = (
    "The user chose to continue and gave new instructions:\n{user_input}\n\n"
    "Carry out the user's new instructions now."
)
STOP_DIRECTIVE = (
    "The user chose to end the conversation. "
    "Stop all actions immediately and do not continue with any task."
)


class DialogSink(Protocol):
    async def request_dialog(self, reason: str, workspace: str) -> DialogResolution: ...


@dataclass
class RpcRequest:
    method: str
    id: Any = None
    params: dict = field(default_factory=dict)
    is_notification: bool = False


@dataclass
class ToolCall:
    name: str
    reason: str = ""
    workspace: str = ""


def parse_request(message: Any) -> RpcRequest:
    if not isinstance(message, dict):
        raise RpcError(INVALID_REQUEST, "Invalid Request")
    request_id = message.get("id")
    method = message.get("method")
    params = message.get("params")
    if not isinstance(method, str) or not method:
        raise RpcError(INVALID_REQUEST, "Invalid Request", request_id)
    if params is None:
        params = {}
    if not isinstance(params, dict):
        raise RpcError(INVALID_REQUEST, "Invalid params", request_id)
    return RpcRequest(
        method=method,
        id=request_id,
        params=params,
        is_notification="id" not in message,
    )


def parse_tool_call(params: dict) -> ToolCall:
    arguments = params.get("arguments")
    if not isinstance(arguments, dict):
        arguments = {}
    return ToolCall(
        name=str(params.get("name") or ""),
        reason=str(arguments.get("reason") or ""),
        workspace=str(arguments.get("workspace") or ""),
    )


def format_resolution(resolution: DialogResolution) -> str:
    """Render a human decision as the directive text returned to the agent."""
    if not resolution.should_continue:
        return STOP_DIRECTIVE

    text = CONTINUE_TEMPLATE.format(user_input=resolution.user_input)
    if resolution.attachments:
        text += "\n\nAttachments:\n"
        for att in resolution.attachments:
            if att.kind == "image":
                text += f"- [Image] {att.name}\n"
                if att.content.startswith("data:"):
                    text += f"Image data (base64): {att.content}\n"
            elif att.kind == "file":
                text += f"- [File] {att.name}\nContent:\n{att.content}\n"
            elif att.kind == "code":
                text += f"- [Code] {att.name}\n```\n{att.content}\n```\n"
    return text


class RpcHandler:
    """Dispatch JSON-RPC messages; tools/call waits on the dialog sink."""

    def __init__(self, sink: DialogSink, version: str = VERSION) -> None:
        self.sink = sink
        self.version = version
        self._methods = {
            "initialize": self._initialize,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
        }

    async def handle_body(self, body: bytes | str) -> dict | None:
        """Handle one raw message body; malformed JSON yields a parse error."""
        try:
            message = decode_body(body)
        except RpcError as e:
            logger.warning("Unparseable JSON-RPC message: %r", body[:200])
            return e.to_response()
        return await self.handle(message)

    async def handle(self, message: Any) -> dict | None:
        """Return the response for a message, or None for notifications."""
        try:
            request = parse_request(message)
        except RpcError as e:
            return e.to_response()

        if request.method in NOTIFICATIONS:
            return None
        if request.is_notification:
            logger.debug("Dropping notification %s", request.method)
            return None

        method = self._methods.get(request.method)
        if method is None:
            return RpcError(
                METHOD_NOT_FOUND, f"Method not found: {request.method}", request.id
            ).to_response()

        try:
            result = await method(request)
        except RpcError as e:
            e.request_id = request.id
            return e.to_response()
        return {"jsonrpc": "2.0", "id": request.id, "result": result}

    async def _initialize(self, request: RpcRequest) -> dict:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": SERVER_NAME, "version": self.version},
        }

    async def _tools_list(self, request: RpcRequest) -> dict:
        return {"tools": [TOOL_DESCRIPTOR]}

    async def _tools_call(self, request: RpcRequest) -> dict:
        call = parse_tool_call(request.params)
        if call.name != TOOL_NAME:
            raise RpcError(METHOD_NOT_FOUND, f"Unknown tool: {call.name}")

        try:
            resolution = await self.sink.request_dialog(call.reason, call.workspace)
        except DialogUnavailable as e:
            logger.error("Dialog for %s could not be shown: %s", call.workspace or "<none>", e)
            return {
                "content": [{"type": "text", "text": f"Failed to show dialog: {e}"}],
                "isError": True,
            }
        return {"content": [{"type": "text", "text": format_resolution(resolution)}]}
