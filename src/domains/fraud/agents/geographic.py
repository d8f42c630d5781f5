"""Geographic plausibility agent."""

import math
from datetime import timedelta

from ..models import AgentScore, Transaction
from .base import AnalysisContext, FraudAgent

EARTH_RADIUS_KM = 6371.0


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance in km between two lat/lon points."""
    lat1_r, lon1_r = math.radians(lat1), math.radians(lon1)
    lat2_r, lon2_r = math.radians(lat2), math.radians(lon2)
    dlat = lat2_r - lat1_r
    dlon = lon2_r - lon1_r
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


class GeographicAgent(FraudAgent):
    """Checks the transaction location against the user's recent locations."""

    name = "geographic"

    def _normal_reason(self, transaction: Transaction) -> str:
        loc = transaction.location
        return f"Normal location: {loc.city}, {loc.country}"

    async def score(self, transaction: Transaction, context: AnalysisContext) -> AgentScore:
        cfg = context.config.geo
        now = transaction.timestamp
        location = transaction.location
        recent = await context.store.recent_locations(
            transaction.user_id,
            now,
            window=timedelta(days=cfg.lookback_days),
            limit=cfg.history_limit,
        )

        risk_score = 0.0
        reasons: list[str] = []

        if location.is_unknown:
            risk_score += cfg.unknown_location_score
            reasons.append("Unknown or suspicious location")

        distance_km: float | None = None
        hours: float | None = None
        if recent:
            last = recent[0]
            distance_km = haversine(last.lat, last.lon, location.lat, location.lon)
            hours = (now - last.timestamp).total_seconds() / 3600

            if distance_km > cfg.impossible_distance_km and hours < cfg.impossible_within_hours:
                risk_score += cfg.impossible_travel_score
                reasons.append(f"Impossible travel: {distance_km:.0f}km in {hours:.1f} hours")
            elif distance_km > cfg.unlikely_distance_km and hours < cfg.unlikely_within_hours:
                risk_score += cfg.unlikely_travel_score
                reasons.append(f"Unlikely travel pattern: {distance_km:.0f}km in {hours:.1f} hours")

        known_countries = sorted({loc.country for loc in recent})
        if location.country not in known_countries:
            risk_score += cfg.new_country_score
            reasons.append(f"First transaction in {location.country}")

        return self._result(
            transaction,
            risk_score,
            reasons,
            details={
                "current_location": {"city": location.city, "country": location.country},
                "recent_countries": known_countries,
                "distance_from_last_km": None if distance_km is None else round(distance_km, 1),
                "hours_since_last": None if hours is None else round(hours, 3),
            },
        )
