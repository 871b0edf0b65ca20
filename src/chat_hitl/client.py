"""HTTP client for the Leader's coordination endpoint."""

import logging

import httpx

from .core import DialogRequest, DialogResolution
from .errors import DialogUnavailable

logger = logging.getLogger(__name__)

# /dialog blocks until a human answers, so only connecting is bounded.
DIALOG_TIMEOUT = httpx.Timeout(None, connect=5.0)
POLL_TIMEOUT = httpx.Timeout(2.0)


class LeaderClient:
    """Talks to whichever process owns the coordination port.

    Used by the stdio bridge (``request_dialog``) and by Followers
    (``list_pending`` / ``respond``).
    """

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None) -> None:
        self.base_url = base_url
        self._client = client or httpx.AsyncClient(base_url=base_url)
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def request_dialog(self, reason: str, workspace: str) -> DialogResolution:
        try:
            resp = await self._client.post(
                "/dialog",
                json={"reason": reason, "workspace": workspace},
                timeout=DIALOG_TIMEOUT,
            )
            resp.raise_for_status()
            return DialogResolution.from_dict(resp.json())
        except (httpx.HTTPError, ValueError, AttributeError, TypeError) as e:
            raise DialogUnavailable(
                f"{str(e) or type(e).__name__}. Make sure a chat-hitl front-end is running on {self.base_url}"
            ) from e

    async def list_pending(self, workspace: str | None = None) -> list[DialogRequest]:
        params = {"workspace": workspace} if workspace else None
        resp = await self._client.get("/pending", params=params, timeout=POLL_TIMEOUT)
        resp.raise_for_status()
        return [DialogRequest.from_dict(d) for d in resp.json().get("dialogs", [])]

    async def respond(self, dialog_id: str, resolution: DialogResolution) -> bool:
        """Relay a resolution; False when the Leader no longer knows the id."""
        payload = {"id": dialog_id, **resolution.to_dict()}
        resp = await self._client.post("/respond", json=payload, timeout=POLL_TIMEOUT)
        if resp.status_code == 404:
            return False
        resp.raise_for_status()
        return bool(resp.json().get("success"))

    async def health(self) -> dict:
        resp = await self._client.get("/health", timeout=POLL_TIMEOUT)
        resp.raise_for_status()
        return resp.json()
