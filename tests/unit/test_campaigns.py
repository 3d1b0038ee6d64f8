"""Unit tests for the campaign service."""

import logging
import re
from datetime import timedelta

import pytest

from ad_delivery.models.core import CampaignStatus
from ad_delivery.services.campaigns import CampaignService, generate_campaign_id


@pytest.fixture
def service(store, settings, clock):
    """Create a campaign service over the in-memory store."""
    return CampaignService(store, settings=settings, clock=clock)


@pytest.fixture
def new_campaign(make_campaign):
    """A campaign document as submitted, before identifiers are assigned."""
    document = make_campaign(status="draft")
    del document["_id"]
    del document["campaignId"]
    return document


class TestCampaignId:
    """Tests for generate_campaign_id."""

    def test_format(self, now):
        """Test ids carry a base-36 timestamp and a random suffix."""
        campaign_id = generate_campaign_id(now)

        assert re.fullmatch(r"campaign-[0-9a-z]+-[0-9a-z]{6}", campaign_id)
        timestamp = campaign_id.split("-")[1]
        assert int(timestamp, 36) == int(now.timestamp() * 1000)

    def test_unique(self, now):
        """Test ids generated at the same instant differ."""
        assert len({generate_campaign_id(now) for _ in range(20)}) == 20


class TestCreate:
    """Tests for campaign creation."""

    @pytest.mark.asyncio
    async def test_create_assigns_identifiers_and_duration(self, service, store, new_campaign, now):
        """Test ids, derived duration and metadata are set on creation."""
        campaign = await service.create(new_campaign, "planner")

        assert campaign.id
        assert campaign.campaign_id.startswith("campaign-")
        assert campaign.timeline.duration_weeks == 9
        assert campaign.timeline.duration_months == 2
        assert campaign.metadata.created_by == "planner"
        assert campaign.metadata.created_at == now
        assert campaign.metadata.version == 1

        stored = await store.get_campaign(campaign.campaign_id)
        assert stored["_id"] == campaign.id

    @pytest.mark.asyncio
    async def test_create_logs_drift_without_blocking(self, service, new_campaign, caplog):
        """Test a stale pricing snapshot is logged as a warning and still stored."""
        new_campaign["pricing"] = {"subtotal": 5000}

        with caplog.at_level(logging.INFO):
            campaign = await service.create(new_campaign, "planner")

        assert await service.get(campaign.id) is not None
        assert "Pricing discrepancy" in caplog.text
        assert "pricing=WARN, reach=PASS" in caplog.text

    @pytest.mark.asyncio
    async def test_create_short_campaign(self, service, new_campaign, now):
        """Test a two week flight is half a month."""
        new_campaign["timeline"] = {
            "startDate": now.isoformat(),
            "endDate": (now + timedelta(days=14)).isoformat(),
        }

        campaign = await service.create(new_campaign, "planner")

        assert campaign.timeline.duration_weeks == 2
        assert campaign.timeline.duration_months == 0.5


class TestLifecycle:
    """Tests for reads, updates and status changes."""

    @pytest.mark.asyncio
    async def test_get_by_either_id(self, service, store, make_campaign):
        """Test lookup by storage id and by campaign id."""
        await store.set_campaign("cmp-0001", make_campaign())

        assert (await service.get("cmp-0001")).campaign_id == "campaign-test-0001"
        assert (await service.get("campaign-test-0001")).id == "cmp-0001"
        assert await service.get("missing") is None

    @pytest.mark.asyncio
    async def test_update_recomputes_duration(self, service, store, make_campaign, now):
        """Test updating flight dates refreshes the duration and bumps the version."""
        await store.set_campaign("cmp-0001", make_campaign())

        updated = await service.update(
            "cmp-0001",
            {
                "timeline": {
                    "startDate": now.isoformat(),
                    "endDate": (now + timedelta(days=90)).isoformat(),
                }
            },
            "planner",
        )

        assert updated.timeline.duration_months == 3
        assert updated.metadata.updated_by == "planner"
        assert updated.metadata.version == 2

    @pytest.mark.asyncio
    async def test_approve(self, service, store, make_campaign, now):
        """Test approval stamps who approved and when."""
        await store.set_campaign("cmp-0001", make_campaign(status="pending_approval"))

        campaign = await service.update_status("cmp-0001", "approved", "planner", approved_by="manager")

        assert campaign.status == CampaignStatus.APPROVED
        assert campaign.approval.approved_by == "manager"
        assert campaign.approval.approved_at == now
        stored = await store.get_campaign("cmp-0001")
        assert stored["status"] == "approved"

    @pytest.mark.asyncio
    async def test_reject(self, service, store, make_campaign, now):
        """Test rejection records the reason."""
        await store.set_campaign("cmp-0001", make_campaign(status="pending_approval"))

        campaign = await service.update_status(
            "cmp-0001", "draft", "planner", rejected_by="manager", rejection_reason="Over budget"
        )

        assert campaign.approval.rejected_by == "manager"
        assert campaign.approval.rejection_reason == "Over budget"

    @pytest.mark.asyncio
    async def test_activate_and_complete(self, service, store, make_campaign, now):
        """Test launch and completion dates are stamped."""
        await store.set_campaign("cmp-0001", make_campaign())

        active = await service.update_status("cmp-0001", CampaignStatus.ACTIVE, "planner")
        completed = await service.update_status("cmp-0001", CampaignStatus.COMPLETED, "planner")

        assert active.execution.launch_date == now
        assert completed.execution.launch_date == now
        assert completed.execution.completion_date == now

    @pytest.mark.asyncio
    async def test_update_status_missing(self, service):
        """Test status changes on a missing campaign."""
        assert await service.update_status("missing", "active", "planner") is None

    @pytest.mark.asyncio
    async def test_delete_is_soft(self, service, store, make_campaign):
        """Test deleted campaigns disappear from reads but stay in storage."""
        await store.set_campaign("cmp-0001", make_campaign())

        assert await service.delete("cmp-0001", "planner") is True
        assert await service.get("cmp-0001") is None
        assert await service.delete("cmp-0001", "planner") is False
        assert (await store.get_campaign("cmp-0001"))["deletedBy"] == "planner"

    @pytest.mark.asyncio
    async def test_list_and_count(self, service, store, make_campaign):
        """Test listing by hub and counting by status."""
        await store.set_campaign("cmp-0001", make_campaign())
        await store.set_campaign(
            "cmp-0002",
            make_campaign(_id="cmp-0002", campaignId="campaign-test-0002", status="draft"),
        )
        await store.set_campaign(
            "cmp-0003",
            make_campaign(_id="cmp-0003", campaignId="campaign-test-0003", hubId="other-hub"),
        )

        assert len(await service.list_campaigns()) == 3
        assert len(await service.list_campaigns("chicago-hub")) == 2

        counts = await service.count_by_status("chicago-hub")
        assert counts["approved"] == 1
        assert counts["draft"] == 1
        assert counts["completed"] == 0


class TestRefreshMetrics:
    """Tests for refresh_metrics."""

    @pytest.mark.asyncio
    async def test_refresh_overwrites_snapshot(self, service, store, make_campaign):
        """Test fresh pricing and reach replace a stale snapshot."""
        stale = make_campaign(
            pricing={"subtotal": 1},
            estimatedPerformance={"reach": {"min": 1, "max": 2}},
        )
        await store.set_campaign("cmp-0001", stale)

        campaign = await service.refresh_metrics("cmp-0001")

        assert campaign.pricing.subtotal == pytest.approx(7000)
        assert campaign.pricing.publication_totals == {
            "101": pytest.approx(6000),
            "102": pytest.approx(1000),
        }
        assert campaign.estimated_performance.reach.min == 56250
        assert campaign.estimated_performance.reach.max == 75000
        assert campaign.metadata.updated_by == "system"

        stored = await store.get_campaign("cmp-0001")
        assert stored["estimatedPerformance"]["estimatedUniqueReach"] == 56250

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_snapshot(self, service, store, make_campaign, monkeypatch, caplog):
        """Test a failed recalculation leaves the stored snapshot untouched."""
        await store.set_campaign("cmp-0001", make_campaign(pricing={"subtotal": 1}))

        def broken_reach(publications):
            raise ZeroDivisionError("bad overlap")

        monkeypatch.setattr(
            "ad_delivery.engines.campaign_validator.calculate_package_reach", broken_reach
        )

        campaign = await service.refresh_metrics("cmp-0001")

        assert campaign.pricing.subtotal == 1
        assert (await store.get_campaign("cmp-0001"))["pricing"]["subtotal"] == 1
        assert "Metrics not refreshed" in caplog.text

    @pytest.mark.asyncio
    async def test_refresh_missing(self, service):
        """Test refreshing a missing campaign."""
        assert await service.refresh_metrics("missing") is None
