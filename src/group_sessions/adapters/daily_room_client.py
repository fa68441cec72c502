"""Daily.co live-room API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class RoomClient(Protocol):
    """Interface for live-room provisioning."""

    async def delete_room(self, room_name: str) -> None:
        """Delete a live room; raise when the provider refuses."""


@dataclass
class DailyRoomClient(RoomClient):
    """Daily.co REST client implemented with httpx."""

    api_key: str
    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, api_key: str, base_url: str) -> "DailyRoomClient":
        """Create a room client with a managed httpx session."""
        return cls(api_key=api_key, base_url=base_url, http_client=httpx.AsyncClient())

    async def delete_room(self, room_name: str) -> None:
        """Delete a room; a missing room counts as already deleted."""
        url = f"{self.base_url}/rooms/{room_name}"
        response = await self.http_client.delete(
            url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=10,
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
