"""Unit tests for the geographic plausibility agent."""

from datetime import timedelta

import pytest

from src.domains.fraud.agents import AnalysisContext, GeographicAgent, haversine
from src.domains.fraud.models import RecentLocation
from tests.conftest import LONDON, NEW_YORK, NOW, UNKNOWN, make_store, make_transaction


def _seen(location, hours_ago: float) -> RecentLocation:
    return RecentLocation(
        city=location.city,
        country=location.country,
        lat=location.lat,
        lon=location.lon,
        timestamp=NOW - timedelta(hours=hours_ago),
    )


class TestHaversine:
    def test_same_point(self):
        assert haversine(40.7128, -74.0060, 40.7128, -74.0060) == 0.0

    def test_known_distance(self):
        # NYC to London ~5570 km
        d = haversine(40.7128, -74.0060, 51.5074, -0.1278)
        assert 5500 < d < 5650


class TestGeographicAgent:
    agent = GeographicAgent()

    def _context(self, embedder, config, recent) -> AnalysisContext:
        return AnalysisContext(
            store=make_store(recent_locations=recent), embedder=embedder, config=config
        )

    @pytest.mark.asyncio
    async def test_familiar_location_is_normal(self, context):
        result = await self.agent.score(make_transaction(), context)
        assert result.risk_score == 0.0
        assert result.reason == "Normal location: New York, US"

    @pytest.mark.asyncio
    async def test_same_place_same_time_no_travel_flag(self, embedder, config):
        ctx = self._context(embedder, config, [_seen(NEW_YORK, 0)])
        result = await self.agent.score(make_transaction(), ctx)
        assert result.risk_score == 0.0
        assert result.details["distance_from_last_km"] == 0.0

    @pytest.mark.asyncio
    async def test_impossible_travel(self, embedder, config):
        ctx = self._context(embedder, config, [_seen(NEW_YORK, 0.5)])
        result = await self.agent.score(make_transaction(location=LONDON), ctx)
        # impossible travel + first transaction in GB
        assert result.risk_score == pytest.approx(0.70)
        assert result.reason.startswith("Impossible travel:")
        assert "First transaction in GB" in result.reason

    @pytest.mark.asyncio
    async def test_unlikely_travel(self, embedder, config):
        ctx = self._context(embedder, config, [_seen(NEW_YORK, 2)])
        result = await self.agent.score(make_transaction(location=LONDON), ctx)
        assert result.risk_score == pytest.approx(0.50)
        assert result.reason.startswith("Unlikely travel pattern:")

    @pytest.mark.asyncio
    async def test_distant_but_slow_travel(self, embedder, config):
        ctx = self._context(embedder, config, [_seen(NEW_YORK, 8)])
        result = await self.agent.score(make_transaction(location=LONDON), ctx)
        assert result.risk_score == pytest.approx(0.20)

    @pytest.mark.asyncio
    async def test_only_most_recent_location_used_for_travel(self, embedder, config):
        recent = [_seen(LONDON, 0.25), _seen(NEW_YORK, 48)]
        ctx = self._context(embedder, config, recent)
        result = await self.agent.score(make_transaction(location=LONDON), ctx)
        assert result.risk_score == 0.0

    @pytest.mark.asyncio
    async def test_unknown_location(self, embedder, config):
        ctx = self._context(embedder, config, [])
        result = await self.agent.score(make_transaction(location=UNKNOWN), ctx)
        # sentinel location, country XX never seen
        assert result.risk_score == pytest.approx(0.60)
        assert "Unknown or suspicious location" in result.reason

    @pytest.mark.asyncio
    async def test_first_ever_transaction_counts_as_new_country(self, embedder, config):
        ctx = self._context(embedder, config, [])
        result = await self.agent.score(make_transaction(), ctx)
        assert result.risk_score == pytest.approx(0.20)
        assert result.details["distance_from_last_km"] is None
