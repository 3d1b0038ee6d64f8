"""Store-backed services for campaigns, insertion orders and placement completion."""

from .base import CONFLICT_REASON, STORE_TIMEOUT_REASON, ConcurrentUpdateError, StoreBackedService
from .campaigns import CampaignService, generate_campaign_id
from .insertion_orders import InsertionOrderService
from .placement_completion import PlacementCompletionService

__all__ = [
    "CONFLICT_REASON",
    "CampaignService",
    "ConcurrentUpdateError",
    "InsertionOrderService",
    "PlacementCompletionService",
    "STORE_TIMEOUT_REASON",
    "StoreBackedService",
    "generate_campaign_id",
]
