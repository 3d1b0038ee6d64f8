# Author: Green Mountain Systems AI Inc.
# Donated to IAB Tech Lab

"""Insertion Order Service - Generating and updating publication orders.

One insertion order is generated per publication once a campaign is
approved. Order status changes go through the order status guard, and
manual placement changes go through the placement transition table.
Performance entries and proofs recorded here feed the completion engine.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Callable, Optional, Union

from ..config import Settings
from ..engines.completion_rules import compute_delivery_goals
from ..engines.order_status import validate_placement_transition, validate_status_transition
from ..engines.placement_state_machine import (
    StaleTransitionError,
    apply_order_status,
    apply_transition,
    plan_manual_change,
    within_campaign_window,
)
from ..engines.pricing_calculator import publication_total
from ..models.campaign import Campaign
from ..models.core import CampaignStatus, OrderStatus, PlacementStatus, utc_now
from ..models.inventory import PublicationSelection, SelectedInventory
from ..models.order import (
    DeliveryMetrics,
    InsertionOrder,
    PerformanceEntry,
    ProofOfPerformance,
    StatusHistoryEntry,
)
from ..models.results import OperationResult, TransitionValidation
from ..storage.base import StorageBackend
from .base import CONFLICT_REASON, STORE_TIMEOUT_REASON, ConcurrentUpdateError, StoreBackedService
from .placement_completion import PlacementCompletionService

logger = logging.getLogger(__name__)

ORDER_SENT_NOTES = "Order sent to publication"

# Campaign statuses that allow order generation
_ORDERABLE_CAMPAIGN_STATUSES = (CampaignStatus.APPROVED, CampaignStatus.ACTIVE)


def _failure(context: str, error: Exception) -> OperationResult:
    """Log an exception caught at a public boundary and turn it into a result."""
    if isinstance(error, asyncio.TimeoutError):
        logger.warning(f"Store timeout {context}")
        return OperationResult(success=False, error=STORE_TIMEOUT_REASON)
    if isinstance(error, (ConcurrentUpdateError, StaleTransitionError)):
        logger.warning(f"Concurrent update {context}: {error}")
        return OperationResult(success=False, error=CONFLICT_REASON)
    logger.exception(f"Error {context}: {error}")
    return OperationResult(success=False, error=str(error) or "Unknown error")


class InsertionOrderService(StoreBackedService):
    """Store-backed operations on publication insertion orders.

    When a `completion_service` is given, recording performance data or a
    proof immediately re-checks the affected placement.
    """

    def __init__(
        self,
        store: StorageBackend,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
        completion_service: Optional[PlacementCompletionService] = None,
    ) -> None:
        super().__init__(store, settings, clock)
        self._completion = completion_service

    def validate_status_transition(
        self,
        current: Union[OrderStatus, str],
        new: Union[OrderStatus, str],
    ) -> TransitionValidation:
        """Check whether an order may move from `current` to `new`."""
        return validate_status_transition(current, new)

    async def get_order(self, order_id: str) -> Optional[InsertionOrder]:
        """Get a live insertion order by ID."""
        return await self._load_order(order_id)

    async def get_orders_for_campaign(self, *campaign_refs: str) -> list[InsertionOrder]:
        """Live orders for a campaign, matched by campaign id or storage id."""
        refs = {ref for ref in campaign_refs if ref}
        documents = await self._call(self._store.list_orders())
        orders = []
        for document in documents:
            order = InsertionOrder.from_document(document)
            if order.is_deleted:
                continue
            if order.campaign_id in refs or order.campaign_object_id in refs:
                orders.append(order)
        return orders

    async def update_order_status(
        self,
        order_id: str,
        new_status: Union[OrderStatus, str],
        user_id: str,
        notes: Optional[str] = None,
    ) -> OperationResult:
        """Move an order to a new status if the transition is legal.

        Args:
            order_id: Insertion order ID
            new_status: Requested order status
            user_id: Who made the change (recorded in the status history)
            notes: Optional history notes

        Returns:
            OperationResult with the updated order document under `order`
        """
        try:
            order = await self._load_order(order_id)
            if order is None:
                return OperationResult(success=False, error="Insertion order not found")

            validation = self.validate_status_transition(order.status, new_status)
            if not validation.valid:
                return OperationResult(success=False, error=validation.error)

            updated = apply_order_status(order, new_status, self._clock(), user_id, notes)
            await self._save_order(order, updated)
            logger.info(f"Order {order_id} status {order.status.value} -> {updated.status.value}")
            return OperationResult(success=True, data={"order": updated.to_document()})
        except Exception as e:
            return _failure(f"updating status of order {order_id}", e)

    async def update_placement_status(
        self,
        order_id: str,
        placement_id: str,
        status: Union[PlacementStatus, str],
        user_id: str,
        notes: Optional[str] = None,
    ) -> OperationResult:
        """Manually change a placement's status.

        Accepting the last outstanding placement of a sent order confirms
        the order. The result's `order_confirmed` flag reports that.
        """
        try:
            order = await self._load_order(order_id)
            if order is None:
                return OperationResult(success=False, error="Order not found")

            if order.find_placement(placement_id) is None:
                return OperationResult(success=False, error="Placement not found in order")

            current = order.placement_statuses.get(placement_id)
            validation = validate_placement_transition(current, status)
            if not validation.valid:
                return OperationResult(success=False, error=validation.error)

            now = self._clock()
            if PlacementStatus(status) == PlacementStatus.IN_PRODUCTION:
                campaign = await self._load_campaign(order.campaign_id)
                if campaign is not None and not within_campaign_window(
                    campaign, now, self._settings.grace_period_days
                ):
                    return OperationResult(
                        success=False,
                        error="Placement cannot go into production before the campaign window opens",
                    )

            transition = plan_manual_change(order, placement_id, PlacementStatus(status), notes)
            updated = apply_transition(order, transition, now, user_id)
            await self._save_order(order, updated)

            order_confirmed = OrderStatus.CONFIRMED in transition.order_steps
            if order_confirmed:
                logger.info(f"Order {order_id} auto-confirmed: all placements accepted")
            return OperationResult(
                success=True,
                data={"order_confirmed": order_confirmed, "order": updated.to_document()},
            )
        except Exception as e:
            return _failure(f"updating placement {placement_id} on order {order_id}", e)

    def _build_order(
        self,
        campaign: Campaign,
        publication: PublicationSelection,
        user_id: str,
        now: datetime,
    ) -> InsertionOrder:
        duration_months = campaign.timeline.duration_months or self._settings.default_duration_months
        total = publication.publication_total
        if total is None:
            total = publication_total(publication, duration_months)

        placement_statuses = {
            item.placement_id: PlacementStatus.PENDING
            for item in publication.inventory_items
            if item.placement_id
        }

        return InsertionOrder(
            id=str(uuid.uuid4()),
            campaign_id=campaign.campaign_id,
            campaign_object_id=campaign.id,
            campaign_name=campaign.basic_info.name,
            hub_id=campaign.hub_id,
            publication_id=publication.publication_id,
            publication_name=publication.publication_name,
            status=OrderStatus.SENT,
            generated_at=now,
            sent_at=now,
            selected_inventory=SelectedInventory(
                publications=[publication.model_copy(deep=True)],
                total=total,
            ),
            order_total=total,
            placement_statuses=placement_statuses,
            delivery_goals=compute_delivery_goals(publication.inventory_items, duration_months),
            status_history=[
                StatusHistoryEntry(
                    status=OrderStatus.SENT,
                    timestamp=now,
                    changed_by=user_id,
                    notes=ORDER_SENT_NOTES,
                )
            ],
            created_at=now,
            updated_at=now,
        )

    async def generate_orders_for_campaign(self, campaign_id: str, user_id: str) -> OperationResult:
        """Create and send one insertion order per publication in a campaign.

        If orders already exist, any drafts among them are sent instead.
        Fails when every existing order has already been sent.

        Returns:
            OperationResult with `orders_generated` count
        """
        try:
            campaign = await self._load_campaign(campaign_id)
            if campaign is None or campaign.is_deleted:
                return OperationResult(success=False, error="Campaign not found", data={"orders_generated": 0})

            if campaign.status not in _ORDERABLE_CAMPAIGN_STATUSES:
                return OperationResult(
                    success=False,
                    error=(
                        f"Campaign status is {campaign.status.value}, "
                        "must be approved or active to generate orders"
                    ),
                    data={"orders_generated": 0},
                )

            now = self._clock()
            existing = await self.get_orders_for_campaign(campaign.campaign_id, campaign.id)

            if existing:
                drafts = [order for order in existing if order.status == OrderStatus.DRAFT]
                if not drafts:
                    return OperationResult(
                        success=False,
                        error="Orders already sent for this campaign",
                        data={"orders_generated": 0},
                    )
                for order in drafts:
                    sent = apply_order_status(order, OrderStatus.SENT, now, user_id, ORDER_SENT_NOTES)
                    await self._save_order(order, sent)
                logger.info(f"Sent {len(drafts)} draft orders for campaign {campaign.campaign_id}")
                return OperationResult(success=True, data={"orders_generated": len(drafts)})

            publications = campaign.selected_inventory.publications if campaign.selected_inventory else []
            orders = [self._build_order(campaign, publication, user_id, now) for publication in publications]
            written: list[str] = []
            try:
                for order in orders:
                    # A timed-out write may still land, so it is rolled back too.
                    written.append(order.id)
                    await self._call(self._store.create_order(order.id, order.to_document()))
            except Exception:
                await self._discard_orders(written)
                raise

            logger.info(f"Generated {len(publications)} orders for campaign {campaign.campaign_id}")
            return OperationResult(success=True, data={"orders_generated": len(publications)})
        except Exception as e:
            result = _failure(f"generating orders for campaign {campaign_id}", e)
            result.data["orders_generated"] = 0
            return result

    async def _discard_orders(self, order_ids: list[str]) -> None:
        """Remove orders from a generation run that did not finish."""
        for order_id in order_ids:
            try:
                await self._call(self._store.delete_order(order_id))
            except Exception as e:
                logger.error(f"Could not roll back order {order_id}: {e}")
        logger.warning(f"Rolled back {len(order_ids)} partially generated orders")

    async def delete_orders_for_campaign(self, campaign_id: str) -> OperationResult:
        """Soft-delete every live order of a campaign so they can be regenerated."""
        try:
            now = self._clock()
            deleted = 0
            for order in await self.get_orders_for_campaign(campaign_id):
                updated = order.model_copy(deep=True)
                updated.deleted_at = now
                updated.updated_at = now
                updated.version = order.version + 1
                await self._save_order(order, updated)
                deleted += 1
            return OperationResult(success=True, data={"deleted_count": deleted})
        except Exception as e:
            result = _failure(f"deleting orders for campaign {campaign_id}", e)
            result.data["deleted_count"] = 0
            return result

    async def record_performance(
        self,
        order_id: str,
        item_path: str,
        impressions: float,
        clicks: Optional[float] = None,
        date: Optional[datetime] = None,
    ) -> OperationResult:
        """Append a performance entry for a placement.

        Returns:
            OperationResult with the entry id and, when a completion service
            is attached, the completion check result
        """
        try:
            order = await self._load_order(order_id)
            if order is None:
                return OperationResult(success=False, error="Order not found")
            if order.find_placement(item_path) is None:
                return OperationResult(success=False, error="Placement not found in order")

            now = self._clock()
            entry = PerformanceEntry(
                id=uuid.uuid4().hex,
                order_id=order_id,
                item_path=item_path,
                date=date or now,
                metrics=DeliveryMetrics(impressions=impressions, clicks=clicks),
                created_at=now,
            )
            await self._call(self._store.add_performance_entry(order_id, entry.id, entry.to_document()))
            return await self._after_activity(order, item_path, {"entry_id": entry.id})
        except Exception as e:
            return _failure(f"recording performance for order {order_id}", e)

    async def record_proof(
        self,
        order_id: str,
        item_path: Optional[str] = None,
        proof_type: str = "tear_sheet",
        file_name: Optional[str] = None,
        file_url: Optional[str] = None,
        uploaded_by: Optional[str] = None,
    ) -> OperationResult:
        """Store a proof of performance. Proofs without `item_path` are order-level."""
        try:
            order = await self._load_order(order_id)
            if order is None:
                return OperationResult(success=False, error="Order not found")
            if item_path and order.find_placement(item_path) is None:
                return OperationResult(success=False, error="Placement not found in order")

            proof = ProofOfPerformance(
                id=uuid.uuid4().hex,
                order_id=order_id,
                item_path=item_path,
                proof_type=proof_type,
                file_name=file_name,
                file_url=file_url,
                uploaded_by=uploaded_by,
                uploaded_at=self._clock(),
            )
            await self._call(self._store.add_proof(order_id, proof.id, proof.to_document()))
            return await self._after_activity(order, item_path, {"proof_id": proof.id})
        except Exception as e:
            return _failure(f"recording proof for order {order_id}", e)

    async def _after_activity(
        self,
        order: InsertionOrder,
        item_path: Optional[str],
        data: dict,
    ) -> OperationResult:
        if self._completion is None:
            return OperationResult(success=True, data=data)

        if item_path:
            placement = order.find_placement(item_path)
            check = await self._completion.check_and_complete_if_ready(
                order.id, item_path, placement.channel if placement else "other"
            )
            data["completion"] = check.model_dump(mode="json")
        else:
            summary = await self._completion.check_all_placements_in_order(order.id)
            data["completion"] = summary.model_dump(mode="json")
        return OperationResult(success=True, data=data)
