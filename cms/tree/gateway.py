"""Passerelle de persistance de l'éditeur d'arborescence."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import httpx

from cms.core.config import settings
from cms.core.errors import PersistenceError
from cms.tree.engine import MoveKind, MoveResult, OrderUpdate
from cms.tree.store import PageId, PageRecord

logger = logging.getLogger(__name__)


class PersistenceGateway(ABC):
    """Opérations atomiques côté serveur utilisées par l'éditeur.

    Toute implémentation lève PersistenceError en cas d'échec ; un appel
    qui échoue n'a rien appliqué.
    """

    @abstractmethod
    async def reorder(self, updates: List[OrderUpdate]) -> None: ...

    @abstractmethod
    async def move(self, page_id: PageId, new_parent_id: Optional[PageId], new_order_index: int) -> None: ...

    @abstractmethod
    async def fetch_pages(self) -> List[PageRecord]: ...

    @abstractmethod
    async def toggle_active(self, page_id: PageId) -> None: ...

    @abstractmethod
    async def delete_page(self, page_id: PageId, with_descendants: bool = False) -> None: ...

    async def persist(self, result: MoveResult) -> None:
        if result.kind == MoveKind.REORDER:
            await self.reorder(result.assignments)
        else:
            await self.move(result.page_id, result.new_parent_id, result.new_order_index)


class HttpPersistenceGateway(PersistenceGateway):
    """Client httpx de l'API /pages."""

    def __init__(self, base_url: str = None, token: str = None, timeout: float = None,
                 client: httpx.AsyncClient = None):
        self.base_url = base_url or settings.API_BASE_URL
        self.token = token
        self.timeout = timeout or settings.API_TIMEOUT
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpPersistenceGateway":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    @staticmethod
    def _handle_response(response: httpx.Response) -> Any:
        if response.status_code >= 400:
            try:
                message = response.json().get("detail", "API request failed")
            except (json.JSONDecodeError, AttributeError):
                message = f"API error: {response.status_code}"
            raise PersistenceError(f"{response.status_code}: {message}", status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except json.JSONDecodeError as err:
            raise PersistenceError("Invalid response format from API") from err

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = await self.client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as err:
            logger.error("%s %s failed: %s", method, url, err)
            raise PersistenceError(f"{method} {url} failed: {err}") from err
        return self._handle_response(response)

    async def reorder(self, updates: List[OrderUpdate]) -> None:
        await self._request("POST", "/pages/reorder", json={"updates": [u.to_dict() for u in updates]})

    async def move(self, page_id: PageId, new_parent_id: Optional[PageId], new_order_index: int) -> None:
        await self._request(
            "POST",
            f"/pages/{page_id}/move",
            json={"new_parent_id": new_parent_id, "new_order_index": new_order_index},
        )

    async def fetch_pages(self) -> List[PageRecord]:
        data = await self._request("GET", "/pages")
        return [PageRecord.from_dict(item) for item in data or []]

    async def toggle_active(self, page_id: PageId) -> None:
        await self._request("POST", f"/pages/{page_id}/toggle")

    async def delete_page(self, page_id: PageId, with_descendants: bool = False) -> None:
        params = {"with_descendants": "true" if with_descendants else "false"}
        await self._request("DELETE", f"/pages/{page_id}", params=params)
