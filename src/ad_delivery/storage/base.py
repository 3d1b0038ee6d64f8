# Author: AgentRange Inc.
# Donated to IAB Tech Lab

"""Base storage backend interface."""

from abc import ABC, abstractmethod
from typing import Any, Optional


class StorageBackend(ABC):
    """Abstract base class for storage backends.

    Backends implement a small key-value core; the document operations the
    delivery services need (campaigns, orders, performance entries, proofs)
    are built on top of it here.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Establish connection to storage backend."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to storage backend."""
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Retrieve a value by key."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store a value with optional TTL (seconds)."""
        pass

    @abstractmethod
    async def set_if_version(self, key: str, value: dict, expected_version: int) -> bool:
        """Replace a document only if its stored `version` equals `expected_version`.

        Returns False when the key is missing or the version has moved on.
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key. Returns True if key existed."""
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if key exists."""
        pass

    @abstractmethod
    async def keys(self, pattern: str = "*") -> list[str]:
        """List keys matching pattern."""
        pass

    # Higher-level operations for the delivery documents

    async def _list(self, pattern: str) -> list[dict]:
        keys = await self.keys(pattern)
        documents = []
        for key in sorted(keys):
            document = await self.get(key)
            if document is not None:
                documents.append(document)
        return documents

    async def get_campaign(self, campaign_ref: str) -> Optional[dict]:
        """Get a campaign by storage id or by external campaign id."""
        campaign = await self.get(f"campaign:{campaign_ref}")
        if campaign is not None:
            return campaign

        storage_id = await self.get(f"campaign_ref:{campaign_ref}")
        if storage_id is None:
            return None
        return await self.get(f"campaign:{storage_id}")

    async def set_campaign(self, storage_id: str, campaign_data: dict) -> None:
        """Store a campaign and index its external campaign id."""
        await self.set(f"campaign:{storage_id}", campaign_data)
        campaign_id = campaign_data.get("campaignId")
        if campaign_id:
            await self.set(f"campaign_ref:{campaign_id}", storage_id)

    async def list_campaigns(self) -> list[dict]:
        """List all campaigns."""
        return await self._list("campaign:*")

    async def get_order(self, order_id: str) -> Optional[dict]:
        """Get an insertion order by ID."""
        return await self.get(f"order:{order_id}")

    async def create_order(self, order_id: str, order_data: dict) -> None:
        """Store a new insertion order."""
        await self.set(f"order:{order_id}", order_data)

    async def delete_order(self, order_id: str) -> bool:
        """Remove an insertion order outright."""
        return await self.delete(f"order:{order_id}")

    async def save_order(self, order_id: str, order_data: dict, expected_version: int) -> bool:
        """Write an order back if nobody else has written it since it was read."""
        return await self.set_if_version(f"order:{order_id}", order_data, expected_version)

    async def list_orders(self, campaign_id: Optional[str] = None) -> list[dict]:
        """List insertion orders, optionally for one campaign."""
        orders = await self._list("order:*")
        if campaign_id is None:
            return orders
        return [order for order in orders if order.get("campaignId") == campaign_id]

    async def add_performance_entry(self, order_id: str, entry_id: str, entry_data: dict) -> None:
        """Append a performance entry to the delivery ledger."""
        await self.set(f"performance:{order_id}:{entry_id}", entry_data)

    async def list_performance_entries(
        self,
        order_id: str,
        item_path: Optional[str] = None,
    ) -> list[dict]:
        """List live performance entries for an order, optionally for one placement."""
        entries = await self._list(f"performance:{order_id}:*")
        return [
            entry
            for entry in entries
            if not entry.get("deletedAt")
            and (item_path is None or entry.get("itemPath") == item_path)
        ]

    async def sum_impressions(self, order_id: str, item_path: str) -> float:
        """Total delivered impressions for a placement."""
        entries = await self.list_performance_entries(order_id, item_path)
        return sum((entry.get("metrics") or {}).get("impressions") or 0 for entry in entries)

    async def add_proof(self, order_id: str, proof_id: str, proof_data: dict) -> None:
        """Store a proof of performance."""
        await self.set(f"proof:{order_id}:{proof_id}", proof_data)

    async def list_proofs(self, order_id: str) -> list[dict]:
        """List live proofs for an order."""
        proofs = await self._list(f"proof:{order_id}:*")
        return [proof for proof in proofs if not proof.get("deletedAt")]

    async def count_proofs(
        self,
        order_id: str,
        item_path: str,
        include_order_level: bool = True,
    ) -> int:
        """Count proofs for a placement.

        Args:
            order_id: Insertion order ID
            item_path: Placement path
            include_order_level: Also count proofs with no placement path
        """
        count = 0
        for proof in await self.list_proofs(order_id):
            path = proof.get("itemPath")
            if path == item_path or (include_order_level and not path):
                count += 1
        return count
