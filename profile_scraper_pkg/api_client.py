import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .config import API_BASE_URL, API_TIMEOUT_S
from .models import Outcome, ProfileRecord


logger = logging.getLogger(__name__)


@dataclass
class CreateResult:
    outcome: Outcome
    profile_id: Optional[int] = None
    message: str = ""


def _as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}


class ProfileApiClient:
    """Thin client for the profile backend.

    Classifies responses instead of raising, so a backend failure is just
    another per-URL outcome for the batch.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: float = API_TIMEOUT_S,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def create_profile(self, record: ProfileRecord) -> CreateResult:
        try:
            response = await self._http().post(f"{self.base_url}/profiles", json=record.to_payload())
        except httpx.HTTPError as e:
            logger.error("❌ API unreachable: %s", e)
            return CreateResult(Outcome.ERROR, message=f"API unreachable: {e}")

        try:
            body = _as_dict(response.json())
        except ValueError:
            body = {}
        error = _as_dict(body.get("error"))
        message = body.get("message") or error.get("message") or f"HTTP {response.status_code}"

        if response.is_success and body.get("success"):
            profile = _as_dict(_as_dict(body.get("data")).get("profile"))
            return CreateResult(Outcome.CREATED, profile.get("id"), message)
        if response.status_code == 409 or "already exists" in message.lower():
            existing = _as_dict(error.get("existingProfile"))
            return CreateResult(Outcome.DUPLICATE, existing.get("id"), message)
        return CreateResult(Outcome.ERROR, message=message)

    async def check_health(self) -> dict:
        try:
            response = await self._http().get(f"{self.base_url}/health")
        except httpx.HTTPError as e:
            return {"status": "offline", "error": str(e)}
        if not response.is_success:
            return {"status": "offline", "error": f"HTTP {response.status_code}"}
        try:
            body = _as_dict(response.json())
        except ValueError:
            body = {}
        return {**_as_dict(body.get("data")), "status": "online"}

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ProfileApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
