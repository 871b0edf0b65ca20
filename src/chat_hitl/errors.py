"""Exception types shared across chat-hitl."""

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601


class ChatHitlError(Exception):
    """Base class for chat-hitl errors."""


class RpcError(ChatHitlError):
    """A JSON-RPC level failure that still gets a response."""

    def __init__(self, code: int, message: str, request_id=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.request_id = request_id

    def to_response(self) -> dict:
        return {
            "jsonrpc": "2.0",
            "id": self.request_id,
            "error": {"code": self.code, "message": self.message},
        }


class DialogUnavailable(ChatHitlError):
    """The process that should show the dialog cannot be reached."""
