"""Shared plumbing for store-backed services."""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Optional, TypeVar

from ..config import Settings, get_settings
from ..models.campaign import Campaign
from ..models.core import utc_now
from ..models.order import InsertionOrder
from ..storage.base import StorageBackend

T = TypeVar("T")

STORE_TIMEOUT_REASON = "Timed out waiting for data store"
CONFLICT_REASON = "Order was modified concurrently, retry"


class ConcurrentUpdateError(RuntimeError):
    """Raised when a versioned order write loses to another writer."""


class StoreBackedService:
    """Base for services that read and write documents through a StorageBackend.

    Every store round trip goes through `_call`, which applies the
    configured timeout.
    """

    def __init__(
        self,
        store: StorageBackend,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the service.

        Args:
            store: Connected storage backend
            settings: Application settings (defaults to cached settings)
            clock: Returns the current time; injected for deterministic tests
        """
        self._store = store
        self._settings = settings or get_settings()
        self._clock = clock

    async def _call(self, awaitable: Awaitable[T]) -> T:
        """Run one store round trip under the configured timeout."""
        return await asyncio.wait_for(awaitable, timeout=self._settings.store_timeout_seconds)

    async def _load_order(self, order_id: str) -> Optional[InsertionOrder]:
        """Load a live (not soft-deleted) order."""
        document = await self._call(self._store.get_order(order_id))
        if not document:
            return None
        order = InsertionOrder.from_document(document)
        if order.is_deleted:
            return None
        if order.id is None:
            order.id = order_id
        return order

    async def _load_campaign(self, campaign_ref: str) -> Optional[Campaign]:
        """Load a campaign by storage id or campaign id."""
        document = await self._call(self._store.get_campaign(campaign_ref))
        if not document:
            return None
        return Campaign.from_document(document)

    async def _save_order(self, original: InsertionOrder, updated: InsertionOrder) -> None:
        """Write `updated` back, provided nobody has written since `original` was read.

        Raises:
            ConcurrentUpdateError: If the stored version moved on
        """
        saved = await self._call(
            self._store.save_order(original.id, updated.to_document(), original.version)
        )
        if not saved:
            raise ConcurrentUpdateError(
                f"Order {original.id} changed since version {original.version}"
            )
