from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import quote

import httpx

from ticket_router.logging_config import get_logger
from ticket_router.schemas.provider import MediaPayload, ProviderChat, ProviderContact, ProviderMessage

logger = get_logger("provider_session")


class ProviderError(Exception):
    """Provider call failed (network error or non-success status)."""

    def __init__(self, method: str, detail: str):
        self.method = method
        self.detail = detail
        super().__init__(f"Provider call {method} failed: {detail}")


class ProviderSession(ABC):
    """Calls the router needs from a connected chat-provider session."""

    @abstractmethod
    async def get_contact(self, jid: str) -> ProviderContact:
        pass

    @abstractmethod
    async def get_profile_pic_url(self, jid: str) -> Optional[str]:
        pass

    @abstractmethod
    async def get_chat(self, jid: str) -> ProviderChat:
        pass

    @abstractmethod
    async def download_media(self, message_id: str) -> Optional[MediaPayload]:
        pass

    @abstractmethod
    async def send_message(self, jid: str, body: str) -> ProviderMessage:
        """Send a text message and return the provider's record of it."""
        pass

    @abstractmethod
    async def get_state(self) -> str:
        pass

    async def aclose(self) -> None:
        return None


class HttpProviderSession(ProviderSession):
    """Provider session exposed by a REST bridge in front of the phone connection."""

    def __init__(
        self,
        base_url: str,
        session_name: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.session_name = session_name
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/sessions/{quote(session_name, safe='')}",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> httpx.Response:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            raise ProviderError(f"{method} {path}", str(e)) from e
        if response.status_code >= 400 and response.status_code != 404:
            raise ProviderError(f"{method} {path}", f"status={response.status_code} body={response.text[:200]}")
        return response

    async def _get_json(self, path: str) -> dict:
        response = await self._request("GET", path)
        if response.status_code == 404:
            raise ProviderError(f"GET {path}", "not found")
        return response.json()

    async def get_contact(self, jid: str) -> ProviderContact:
        data = await self._get_json(f"/contacts/{quote(jid, safe='')}")
        return ProviderContact.model_validate(data)

    async def get_profile_pic_url(self, jid: str) -> Optional[str]:
        response = await self._request("GET", f"/contacts/{quote(jid, safe='')}/profile-pic")
        if response.status_code == 404:
            return None
        return response.json().get("url")

    async def get_chat(self, jid: str) -> ProviderChat:
        data = await self._get_json(f"/chats/{quote(jid, safe='')}")
        return ProviderChat.model_validate(data)

    async def download_media(self, message_id: str) -> Optional[MediaPayload]:
        response = await self._request("GET", f"/messages/{quote(message_id, safe='')}/media")
        if response.status_code == 404:
            return None
        data = response.json()
        if not data or not data.get("data"):
            return None
        return MediaPayload.model_validate(data)

    async def send_message(self, jid: str, body: str) -> ProviderMessage:
        response = await self._request("POST", "/messages", json={"chatId": jid, "content": body})
        if response.status_code == 404:
            raise ProviderError("POST /messages", f"chat {jid} not found")
        logger.info(
            "Provider message sent",
            extra={"context": {"session": self.session_name, "jid": jid}},
        )
        return ProviderMessage.model_validate(response.json())

    async def get_state(self) -> str:
        data = await self._get_json("/state")
        return data.get("state") or "UNKNOWN"

    async def aclose(self) -> None:
        await self._client.aclose()
