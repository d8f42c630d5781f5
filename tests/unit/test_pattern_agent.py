"""Unit tests for the spending-pattern agent."""

from datetime import timedelta

import pytest

from src.domains.fraud.agents import AnalysisContext, PatternAgent
from src.domains.fraud.agents.pattern import amount_deviation, fraud_fraction
from src.domains.fraud.models import SimilarTransaction, UserBaseline
from tests.conftest import NOW, make_store, make_transaction


def _similar(fraud: int, total: int = 10) -> list[SimilarTransaction]:
    return [
        SimilarTransaction(transaction_id=f"txn-{i}", fraud_label=i < fraud, similarity=0.8)
        for i in range(total)
    ]


class TestHelpers:
    def test_amount_deviation(self):
        assert amount_deviation(300.0, 100.0) == pytest.approx(2.0)
        assert amount_deviation(50.0, 100.0) == pytest.approx(0.5)

    def test_amount_deviation_without_baseline(self):
        assert amount_deviation(300.0, 0.0) == 0.0

    def test_fraud_fraction(self):
        assert fraud_fraction(_similar(3)) == pytest.approx(0.3)

    def test_fraud_fraction_empty(self):
        assert fraud_fraction([]) == 0.0

    def test_unlabelled_counts_as_clean(self):
        similar = [
            SimilarTransaction(transaction_id="a", fraud_label=None),
            SimilarTransaction(transaction_id="b", fraud_label=True),
        ]
        assert fraud_fraction(similar) == pytest.approx(0.5)


class TestPatternAgent:
    agent = PatternAgent()

    def _context(self, embedder, config, **store_values) -> AnalysisContext:
        return AnalysisContext(store=make_store(**store_values), embedder=embedder, config=config)

    @pytest.mark.asyncio
    async def test_normal_pattern(self, context):
        result = await self.agent.score(make_transaction(), context)
        assert result.risk_score == 0.0
        assert result.reason == "Normal spending pattern"
        assert result.details["has_history"] is True

    @pytest.mark.asyncio
    async def test_baseline_window(self, context, store):
        await self.agent.score(make_transaction(), context)
        store.user_baseline.assert_awaited_once_with("user-1", NOW, window=timedelta(days=90))

    @pytest.mark.asyncio
    async def test_embeds_description_and_searches_neighbours(self, context, store, embedder):
        txn = make_transaction()
        await self.agent.score(txn, context)
        assert embedder.calls == [txn.description()]
        store.similar_transactions.assert_awaited_once()
        args, kwargs = store.similar_transactions.await_args
        assert args[0] == "user-1"
        assert kwargs["limit"] == 10

    @pytest.mark.asyncio
    async def test_no_history(self, embedder, config):
        ctx = self._context(
            embedder,
            config,
            user_baseline=UserBaseline.no_history(),
            similar_transactions=[],
        )
        result = await self.agent.score(make_transaction(amount=5000.0), ctx)
        # no baseline average, so only the unfamiliar category scores
        assert result.details["amount_deviation"] == 0.0
        assert result.details["has_history"] is False
        assert result.details["baseline_source"] == "no_history"
        assert result.risk_score == pytest.approx(0.20)

    @pytest.mark.asyncio
    async def test_high_deviation(self, context):
        result = await self.agent.score(make_transaction(amount=400.0), context)
        assert result.risk_score == pytest.approx(0.30)
        assert "4.4x user's average $90.00" in result.reason

    @pytest.mark.asyncio
    async def test_elevated_deviation(self, context):
        result = await self.agent.score(make_transaction(amount=250.0), context)
        assert result.risk_score == pytest.approx(0.15)
        assert "deviates 1.8x" in result.reason

    @pytest.mark.asyncio
    async def test_deviation_of_exactly_three_is_elevated(self, context):
        result = await self.agent.score(make_transaction(amount=360.0), context)
        assert result.risk_score == pytest.approx(0.15)

    @pytest.mark.asyncio
    async def test_new_category(self, context):
        result = await self.agent.score(make_transaction(merchant_category="electronics"), context)
        assert result.risk_score == pytest.approx(0.20)
        assert "New category 'electronics'" in result.reason

    @pytest.mark.asyncio
    async def test_similar_fraud_contributes_continuously(self, embedder, config):
        ctx = self._context(embedder, config, similar_transactions=_similar(2))
        result = await self.agent.score(make_transaction(), ctx)
        assert result.risk_score == pytest.approx(0.10)
        # below the note threshold
        assert result.reason == "Normal spending pattern"

    @pytest.mark.asyncio
    async def test_similar_fraud_note(self, embedder, config):
        ctx = self._context(embedder, config, similar_transactions=_similar(4))
        result = await self.agent.score(make_transaction(), ctx)
        assert result.risk_score == pytest.approx(0.20)
        assert "40% of similar transactions were fraud" in result.reason

    @pytest.mark.asyncio
    async def test_embedding_failure_propagates(self, store, config):
        class BrokenEmbedder:
            async def generate_embedding(self, text: str) -> list[float]:
                raise RuntimeError("model offline")

        ctx = AnalysisContext(store=store, embedder=BrokenEmbedder(), config=config)
        with pytest.raises(RuntimeError, match="model offline"):
            await self.agent.score(make_transaction(), ctx)
