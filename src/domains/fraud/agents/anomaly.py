"""Velocity and timing anomaly agent."""

from datetime import timedelta

from ..models import AgentScore, Transaction
from .base import AnalysisContext, FraudAgent


class AnomalyAgent(FraudAgent):
    """Flags bursts of activity, odd hours, rapid repeats and amount spikes.

    Works on the user's most recent transactions in the trailing window,
    newest first.
    """

    name = "anomaly"
    normal_reason = "Normal transaction timing and frequency"

    async def score(self, transaction: Transaction, context: AnalysisContext) -> AgentScore:
        cfg = context.config.anomaly
        now = transaction.timestamp
        recent = await context.store.recent_transactions(
            transaction.user_id,
            now,
            window=timedelta(hours=cfg.lookback_hours),
            limit=cfg.history_limit,
        )

        minutes_ago = [(now - t.timestamp).total_seconds() / 60 for t in recent]
        risk_score = 0.0
        reasons: list[str] = []

        # Velocity
        txns_last_hour = sum(1 for m in minutes_ago if m <= cfg.velocity_window_minutes)
        if txns_last_hour >= cfg.high_velocity_count:
            risk_score += cfg.high_velocity_score
            reasons.append(f"{txns_last_hour} transactions in last hour (high velocity)")
        elif txns_last_hour >= cfg.elevated_velocity_count:
            risk_score += cfg.elevated_velocity_score
            reasons.append(f"{txns_last_hour} transactions in last hour (elevated velocity)")

        # Odd hour (UTC)
        hour = now.hour
        if cfg.odd_hour_start <= hour <= cfg.odd_hour_end:
            risk_score += cfg.odd_hour_score
            reasons.append(f"Transaction at unusual hour: {hour}:00")

        # Rapid succession
        if minutes_ago and minutes_ago[0] < cfg.rapid_succession_minutes:
            risk_score += cfg.rapid_succession_score
            reasons.append(f"Transaction only {minutes_ago[0]:.0f} minutes after previous")

        # Amount spike
        avg_amount = 0.0
        if recent:
            avg_amount = sum(t.amount for t in recent) / len(recent)
            if transaction.amount > avg_amount * cfg.amount_spike_multiplier:
                risk_score += cfg.amount_spike_score
                reasons.append(
                    f"Amount ${transaction.amount:.2f} is "
                    f"{cfg.amount_spike_multiplier:g}x recent average ${avg_amount:.2f}"
                )

        return self._result(
            transaction,
            risk_score,
            reasons,
            details={
                "transactions_last_hour": txns_last_hour,
                "hour_of_day": hour,
                "recent_transaction_count": len(recent),
                "recent_average_amount": round(avg_amount, 2),
            },
        )
