"""Publication insertion order and delivery ledger models."""

from typing import Optional

from pydantic import Field

from .core import DocumentModel, OrderStatus, PlacementStatus, UtcDatetime
from .inventory import InventoryItemBase, PublicationSelection, SelectedInventory


class StatusHistoryEntry(DocumentModel):
    """One order-level status change."""

    status: OrderStatus
    timestamp: UtcDatetime
    changed_by: str
    notes: Optional[str] = None


class PlacementStatusHistoryEntry(DocumentModel):
    """One placement-level status change."""

    placement_id: str
    status: PlacementStatus
    timestamp: UtcDatetime
    changed_by: str
    notes: Optional[str] = None


class DeliveryGoal(DocumentModel):
    """Delivery target for a digital placement."""

    goal_type: str = "impressions"
    goal_value: float = 0
    description: Optional[str] = None


class InsertionOrder(DocumentModel):
    """The order one publication receives for one campaign.

    Placement statuses live only in `placement_statuses`, keyed by the
    placement path. `version` is bumped on every write and used for
    optimistic concurrency.
    """

    id: Optional[str] = Field(default=None, alias="_id")
    campaign_id: str
    campaign_object_id: Optional[str] = None
    campaign_name: Optional[str] = None
    hub_id: Optional[str] = None
    publication_id: Optional[int] = None
    publication_name: Optional[str] = None

    status: OrderStatus = OrderStatus.DRAFT
    generated_at: Optional[UtcDatetime] = None
    sent_at: Optional[UtcDatetime] = None
    confirmation_date: Optional[UtcDatetime] = None

    selected_inventory: Optional[SelectedInventory] = None
    order_total: float = 0

    placement_statuses: dict[str, PlacementStatus] = Field(default_factory=dict)
    placement_status_history: list[PlacementStatusHistoryEntry] = Field(default_factory=list)
    status_history: list[StatusHistoryEntry] = Field(default_factory=list)
    delivery_goals: dict[str, DeliveryGoal] = Field(default_factory=dict)

    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None
    deleted_at: Optional[UtcDatetime] = None
    version: int = 0

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def publication(self) -> Optional[PublicationSelection]:
        """The publication selection copied onto this order."""
        if not self.selected_inventory or not self.selected_inventory.publications:
            return None
        return self.selected_inventory.publications[0]

    def inventory_items(self) -> list[InventoryItemBase]:
        """All placements on the order, excluded ones included."""
        publication = self.publication
        return list(publication.inventory_items) if publication else []

    def find_placement(self, placement_id: str) -> Optional[InventoryItemBase]:
        """Look up a placement by its item or source path."""
        for item in self.inventory_items():
            if item.placement_id == placement_id:
                return item
        return None


class DeliveryMetrics(DocumentModel):
    impressions: float = 0
    clicks: Optional[float] = None


class PerformanceEntry(DocumentModel):
    """A dated delivery-metric record for one placement."""

    id: Optional[str] = Field(default=None, alias="_id")
    order_id: str
    item_path: str
    date: Optional[UtcDatetime] = None
    metrics: DeliveryMetrics = Field(default_factory=DeliveryMetrics)
    created_at: Optional[UtcDatetime] = None
    deleted_at: Optional[UtcDatetime] = None


class ProofOfPerformance(DocumentModel):
    """Uploaded evidence that a placement ran.

    Proofs without an `item_path` are order-level.
    """

    id: Optional[str] = Field(default=None, alias="_id")
    order_id: str
    item_path: Optional[str] = None
    proof_type: str = "tear_sheet"
    file_name: Optional[str] = None
    file_url: Optional[str] = None
    uploaded_by: Optional[str] = None
    uploaded_at: Optional[UtcDatetime] = None
    deleted_at: Optional[UtcDatetime] = None

    @property
    def is_order_level(self) -> bool:
        return not self.item_path
