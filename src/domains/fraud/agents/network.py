"""Device and merchant network agent for fraud-ring detection."""

from datetime import timedelta

from ..models import AgentScore, Transaction
from .base import AnalysisContext, FraudAgent


class NetworkAgent(FraudAgent):
    """Detects coordinated activity across user identities.

    A ring finding is reported through ``AgentScore.ring_detected``; the
    human-readable reason also carries the ring marker as a prefix.
    """

    name = "network"
    normal_reason = "No fraud ring indicators"

    async def score(self, transaction: Transaction, context: AnalysisContext) -> AgentScore:
        cfg = context.config.network
        store = context.store
        now = transaction.timestamp

        risk_score = 0.0
        reasons: list[str] = []
        ring_detected = False

        users_sharing_device = await store.distinct_device_users(
            transaction.device_fingerprint,
            transaction.user_id,
            now,
            window=timedelta(days=cfg.device_lookback_days),
        )
        if users_sharing_device > cfg.ring_device_users:
            risk_score += cfg.ring_device_score
            ring_detected = True
            reasons.append(f"Device shared by {users_sharing_device} users (fraud ring)")
        elif users_sharing_device > cfg.shared_device_users:
            risk_score += cfg.shared_device_score
            reasons.append(f"Device used by {users_sharing_device} users")

        coordinated = await store.coordinated_users(
            transaction.merchant,
            now,
            window=timedelta(seconds=cfg.coordination_window_seconds),
        )
        if coordinated > cfg.coordinated_users:
            risk_score += cfg.coordinated_score
            ring_detected = True
            reasons.append(f"{coordinated} coordinated transactions at same merchant")

        device_velocity = await store.device_transaction_count(
            transaction.device_fingerprint,
            now,
            window=timedelta(minutes=cfg.velocity_window_minutes),
        )
        if device_velocity > cfg.device_velocity_count:
            risk_score += cfg.device_velocity_score
            ring_detected = True
            reasons.append(f"{device_velocity} rapid transactions from this device")

        if ring_detected:
            reasons[0] = f"{cfg.ring_marker}: {reasons[0]}"

        return self._result(
            transaction,
            risk_score,
            reasons,
            details={
                "fraud_ring_detected": ring_detected,
                "users_sharing_device": users_sharing_device,
                "coordinated_transactions": coordinated,
                "device_transactions_last_hour": device_velocity,
            },
            ring_detected=ring_detected,
        )
