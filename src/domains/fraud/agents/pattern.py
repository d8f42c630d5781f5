"""Spending-pattern agent: deviation from the user's historical baseline."""

from datetime import timedelta

import structlog

from ..models import AgentScore, BaselineSource, SimilarTransaction, Transaction, UserBaseline
from .base import AnalysisContext, FraudAgent

logger = structlog.get_logger()


def amount_deviation(amount: float, baseline_average: float) -> float:
    """Relative distance of ``amount`` from the baseline average (0 without a baseline)."""
    if baseline_average <= 0:
        return 0.0
    return abs(amount - baseline_average) / baseline_average


def fraud_fraction(similar: list[SimilarTransaction]) -> float:
    """Share of the neighbours that are labelled as fraud. Unlabelled counts as clean."""
    if not similar:
        return 0.0
    return sum(1 for s in similar if s.fraud_label) / len(similar)


class PatternAgent(FraudAgent):
    """Compares the transaction with the user's baseline and with the outcomes
    of the user's most similar past transactions.

    Scoring:
    - amount deviation above the high/elevated thresholds,
    - a merchant category the baseline has never seen,
    - ``similar_fraud_weight`` times the fraud share among the nearest
      neighbours by embedding distance (continuous, not tiered).
    """

    name = "pattern"
    normal_reason = "Normal spending pattern"

    async def score(self, transaction: Transaction, context: AnalysisContext) -> AgentScore:
        cfg = context.config.pattern
        store = context.store

        baseline: UserBaseline = await store.user_baseline(
            transaction.user_id,
            transaction.timestamp,
            window=timedelta(days=cfg.baseline_days),
        )
        deviation = amount_deviation(transaction.amount, baseline.average_amount)
        category_familiar = transaction.merchant_category in baseline.categories

        logger.debug(
            "pattern_baseline",
            user_id=transaction.user_id,
            baseline_source=baseline.source.value,
            average_amount=baseline.average_amount,
            categories=baseline.categories,
            amount=transaction.amount,
            deviation=deviation,
        )

        embedding = await context.embedder.generate_embedding(transaction.description())
        similar = await store.similar_transactions(
            transaction.user_id, embedding, limit=cfg.similar_limit
        )
        fraud_in_similar = fraud_fraction(similar)

        risk_score = 0.0
        reasons: list[str] = []

        if deviation > cfg.high_deviation:
            risk_score += cfg.high_deviation_score
            reasons.append(
                f"Amount ${transaction.amount:.2f} is "
                f"{transaction.amount / baseline.average_amount:.1f}x user's average "
                f"${baseline.average_amount:.2f}"
            )
        elif deviation > cfg.elevated_deviation:
            risk_score += cfg.elevated_deviation_score
            reasons.append(
                f"Amount ${transaction.amount:.2f} deviates {deviation:.1f}x from user's "
                f"average ${baseline.average_amount:.2f}"
            )

        if not category_familiar:
            risk_score += cfg.new_category_score
            reasons.append(f"New category '{transaction.merchant_category}'")

        risk_score += fraud_in_similar * cfg.similar_fraud_weight
        if fraud_in_similar > cfg.similar_fraud_note_ratio:
            reasons.append(f"{fraud_in_similar * 100:.0f}% of similar transactions were fraud")

        return self._result(
            transaction,
            risk_score,
            reasons,
            details={
                "baseline_source": baseline.source.value,
                "baseline_average": baseline.average_amount,
                "amount_deviation": deviation,
                "category_familiar": category_familiar,
                "fraud_in_similar": fraud_in_similar,
                "similar_count": len(similar),
                "has_history": baseline.source != BaselineSource.NO_HISTORY,
            },
        )
