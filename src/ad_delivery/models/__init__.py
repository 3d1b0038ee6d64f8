"""Document and result models for the Ad Delivery System."""

from .campaign import (
    Approval,
    BasicInfo,
    Campaign,
    CampaignMetadata,
    CampaignPricing,
    EstimatedPerformance,
    Execution,
    ReachRange,
    Timeline,
)
from .core import (
    SYSTEM_ACTOR,
    CampaignStatus,
    Channel,
    CompletionRuleType,
    DocumentModel,
    OrderStatus,
    PlacementStatus,
    PricingModel,
    ProofScope,
    ensure_utc,
    utc_now,
)
from .inventory import (
    AudienceMetrics,
    InventoryItem,
    InventoryItemBase,
    ItemPricing,
    PerformanceMetrics,
    PublicationSelection,
    SelectedInventory,
)
from .order import (
    DeliveryGoal,
    DeliveryMetrics,
    InsertionOrder,
    PerformanceEntry,
    PlacementStatusHistoryEntry,
    ProofOfPerformance,
    StatusHistoryEntry,
)
from .results import (
    CampaignEndSweepResult,
    CompletionCheckResult,
    CompletionProgress,
    CompletionRule,
    OperationResult,
    OrderCheckSummary,
    PlacementTransition,
    PricingValidationResult,
    ReachValidationResult,
    RecalculatedMetrics,
    TransitionValidation,
)

__all__ = [
    "Approval",
    "AudienceMetrics",
    "BasicInfo",
    "Campaign",
    "CampaignEndSweepResult",
    "CampaignMetadata",
    "CampaignPricing",
    "CampaignStatus",
    "Channel",
    "CompletionCheckResult",
    "CompletionProgress",
    "CompletionRule",
    "CompletionRuleType",
    "DeliveryGoal",
    "DeliveryMetrics",
    "DocumentModel",
    "EstimatedPerformance",
    "Execution",
    "InsertionOrder",
    "InventoryItem",
    "InventoryItemBase",
    "ItemPricing",
    "OperationResult",
    "OrderCheckSummary",
    "OrderStatus",
    "PerformanceEntry",
    "PerformanceMetrics",
    "PlacementStatus",
    "PlacementStatusHistoryEntry",
    "PlacementTransition",
    "PricingModel",
    "PricingValidationResult",
    "ProofOfPerformance",
    "ProofScope",
    "PublicationSelection",
    "ReachRange",
    "ReachValidationResult",
    "RecalculatedMetrics",
    "SYSTEM_ACTOR",
    "SelectedInventory",
    "StatusHistoryEntry",
    "Timeline",
    "TransitionValidation",
    "ensure_utc",
    "utc_now",
]
