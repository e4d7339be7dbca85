"""
WhatsApp client adapter
Narrow driver interface over a WhatsApp Web automation bridge. Nothing else
in the application touches the automation library or its types.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx
from pydantic import BaseModel

from bubblenotes.utils.errors import WhatsAppError
from bubblenotes.utils.logger import logger


class DriverState(BaseModel):
    """What the automation session currently reports"""

    ready: bool = False
    qr: Optional[str] = None
    phone_number: Optional[str] = None


class WhatsAppDriver(ABC):
    """Operations the application needs from a WhatsApp Web session"""

    @abstractmethod
    async def start(self, session_id: str, data_path: str) -> None:
        """Start a session; QR and ready state arrive later through state()"""

    @abstractmethod
    async def state(self, session_id: str) -> DriverState:
        pass

    @abstractmethod
    async def logout(self, session_id: str) -> None:
        pass

    @abstractmethod
    async def destroy(self, session_id: str) -> None:
        pass

    @abstractmethod
    async def send_sticker_to_self(self, session_id: str, webp_base64: str) -> None:
        pass

    async def close(self) -> None:
        pass


class WhatsAppBridgeDriver(WhatsAppDriver):
    """
    Driver for a whatsapp-web automation bridge reachable over HTTP.

    Bridge contract:
        POST   /sessions                  {sessionId, dataPath}
        GET    /sessions/{id}/state    -> {ready, qr, phoneNumber}
        POST   /sessions/{id}/logout
        DELETE /sessions/{id}
        POST   /sessions/{id}/sticker     {mimetype, data, filename}
    """

    def __init__(self, client: httpx.AsyncClient, bridge_url: str):
        """
        Args:
            client: shared HTTP client, owned by the caller
            bridge_url: base URL of the bridge process
        """
        self.client = client
        self.bridge_url = bridge_url.rstrip("/")

    async def _call(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, f"{self.bridge_url}{path}", **kwargs)
        except httpx.HTTPError as e:
            raise WhatsAppError(f"WhatsApp bridge unreachable: {e}") from e
        if response.status_code >= 400:
            logger.error(f"WhatsApp bridge {method} {path} failed: {response.status_code} {response.text[:200]}")
            raise WhatsAppError(f"WhatsApp bridge returned {response.status_code}")
        return response

    async def start(self, session_id: str, data_path: str) -> None:
        await self._call("POST", "/sessions", json={"sessionId": session_id, "dataPath": data_path})
        logger.info(f"WhatsApp session starting: {session_id}")

    async def state(self, session_id: str) -> DriverState:
        data = (await self._call("GET", f"/sessions/{session_id}/state")).json()
        return DriverState(
            ready=bool(data.get("ready")),
            qr=data.get("qr") or None,
            phone_number=data.get("phoneNumber") or None,
        )

    async def logout(self, session_id: str) -> None:
        await self._call("POST", f"/sessions/{session_id}/logout")

    async def destroy(self, session_id: str) -> None:
        await self._call("DELETE", f"/sessions/{session_id}")
        logger.info(f"WhatsApp session destroyed: {session_id}")

    async def send_sticker_to_self(self, session_id: str, webp_base64: str) -> None:
        await self._call(
            "POST",
            f"/sessions/{session_id}/sticker",
            json={"mimetype": "image/webp", "data": webp_base64, "filename": "sticker.webp"},
        )
