# onboard_bot/infrastructure/external/leadsie_client.py
"""Leadsie access-request invitations (one-click ad account access for clients)."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from onboard_bot.core.config import settings
from onboard_bot.domain.collaborators import Invitation

logger = logging.getLogger("leadsie_client")

_TIMEOUT = 15.0


class LeadsieError(Exception):
    """Raised when the Leadsie API returns an error."""

    def __init__(self, message: str, status_code: int = 0, response: dict | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response or {}


class LeadsieClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.LEADSIE_API_KEY
        self.base = (base_url or settings.LEADSIE_BASE_URL).rstrip("/")
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise LeadsieError("LEADSIE_API_KEY is not configured")
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, json_body: dict | None = None) -> dict[str, Any]:
        url = f"{self.base}{path}"
        logger.info("Leadsie %s %s", method, path)
        async with httpx.AsyncClient(timeout=_TIMEOUT, transport=self._transport) as client:
            try:
                r = await client.request(method, url, headers=self._headers(), json=json_body)
                r.raise_for_status()
            except httpx.HTTPStatusError as exc:
                try:
                    body = exc.response.json()
                except ValueError:
                    body = {"raw": exc.response.text[:500]}
                logger.error(
                    "Leadsie HTTP error: %s %s -> %d %s",
                    method, path, exc.response.status_code, body,
                )
                raise LeadsieError(
                    f"Leadsie API error: {exc.response.status_code}",
                    status_code=exc.response.status_code,
                    response=body,
                ) from exc
            except httpx.HTTPError as exc:
                logger.error("Leadsie request failed: %s %s (%s)", method, path, exc)
                raise LeadsieError(f"Leadsie request failed: {exc}") from exc
        return r.json()

    async def create_invitation(
        self,
        client_name: str,
        contact: str,
        platforms: Sequence[str],
        message: str,
    ) -> Invitation:
        if not client_name:
            raise LeadsieError("Client name is required")
        data = await self._request(
            "POST",
            "/invites",
            {
                "client_name": client_name,
                "client_email": contact or "",
                "platforms": list(platforms),
                "message": message,
            },
        )
        logger.info("Leadsie invite created: id=%s platforms=%s", data.get("id"), list(platforms))
        return Invitation(
            invite_id=str(data["id"]),
            invite_url=data["invite_url"],
            platforms=list(platforms),
            status=data.get("status") or "pending",
        )

