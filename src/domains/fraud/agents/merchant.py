"""Merchant reputation agent."""

from ..models import AgentScore, Transaction
from .base import AnalysisContext, FraudAgent


class MerchantAgent(FraudAgent):
    """Scores the merchant from its fraud rate, volume, fraud narratives and
    similarity to known high-risk merchants."""

    name = "merchant"

    def _normal_reason(self, transaction: Transaction) -> str:
        return f"Trusted merchant: {transaction.merchant}"

    async def score(self, transaction: Transaction, context: AnalysisContext) -> AgentScore:
        cfg = context.config.merchant
        store = context.store

        risk_score = 0.0
        reasons: list[str] = []

        profile = await store.merchant_profile(transaction.merchant)
        if profile is None:
            risk_score += cfg.unrecognized_score
            reasons.append("Unrecognized merchant")
        else:
            if profile.fraud_rate > cfg.high_fraud_rate:
                risk_score += cfg.high_fraud_rate_score
                reasons.append(f"High-risk merchant: {profile.fraud_rate * 100:.0f}% fraud rate")
            elif profile.fraud_rate > cfg.elevated_fraud_rate:
                risk_score += cfg.elevated_fraud_rate_score
                reasons.append(
                    f"Elevated risk merchant: {profile.fraud_rate * 100:.0f}% fraud rate"
                )

            if profile.total_transactions < cfg.min_transactions:
                risk_score += cfg.new_merchant_score
                reasons.append("New/unknown merchant")

        narrative_matches = await store.fraud_narrative_matches(
            transaction.merchant,
            transaction.merchant_category,
            keywords=cfg.fraud_keywords,
        )
        if narrative_matches > 0:
            risk_score += cfg.narrative_match_score
            reasons.append(f"Found {narrative_matches} similar fraud cases via text search")

        similar_risky = 0
        if profile is not None and profile.has_embedding:
            similar_risky = await store.similar_risky_merchants(
                transaction.merchant,
                min_fraud_rate=cfg.high_fraud_rate,
                min_similarity=cfg.similarity_threshold,
                limit=cfg.similar_merchant_limit,
            )
            if similar_risky > 0:
                risk_score += cfg.similar_risky_score
                reasons.append(f"{similar_risky} similar high-risk merchants found")

        return self._result(
            transaction,
            risk_score,
            reasons,
            details={
                "merchant": transaction.merchant,
                "category": transaction.merchant_category,
                "merchant_known": profile is not None,
                "fraud_rate": None if profile is None else profile.fraud_rate,
                "total_transactions": None if profile is None else profile.total_transactions,
                "fraud_patterns_found": narrative_matches,
                "similar_risky_merchants": similar_risky,
            },
        )
