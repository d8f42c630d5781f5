"""Unit tests for score aggregation and the decision policy."""

import itertools
import random

import pytest

from src.domains.fraud.config import AgentWeights, DecisionPolicy
from src.domains.fraud.decision import aggregate_scores, build_reasoning, decide
from src.domains.fraud.models import AgentScore, Decision

WEIGHTS = AgentWeights()
POLICY = DecisionPolicy()
AGENTS = ("pattern", "anomaly", "geographic", "merchant", "network")

_rng = random.Random(20260115)
RANDOM_QUINTUPLES = [tuple(_rng.random() for _ in AGENTS) for _ in range(200)]
GRID_QUINTUPLES = list(itertools.product((0.0, 0.5, 1.0), repeat=5))


def _scores(**overrides) -> dict[str, float]:
    scores = {"pattern": 0.0, "anomaly": 0.0, "geographic": 0.0, "merchant": 0.0, "network": 0.0}
    scores.update(overrides)
    return scores


class TestAggregateScores:
    def test_weighted_sum(self):
        score = aggregate_scores(
            _scores(pattern=0.1, anomaly=0.0, geographic=0.2, merchant=0.0, network=0.0),
            WEIGHTS,
        )
        assert score == pytest.approx(0.055, abs=1e-9)

    def test_all_max(self):
        score = aggregate_scores(
            _scores(pattern=1.0, anomaly=1.0, geographic=1.0, merchant=1.0, network=1.0), WEIGHTS
        )
        assert score == pytest.approx(1.0, abs=1e-9)

    def test_order_independent(self):
        forward = _scores(pattern=0.3, anomaly=0.6, geographic=0.1, merchant=0.9, network=0.2)
        backward = dict(reversed(list(forward.items())))
        assert aggregate_scores(forward, WEIGHTS) == pytest.approx(
            aggregate_scores(backward, WEIGHTS), abs=1e-12
        )

    @pytest.mark.parametrize("quintuple", RANDOM_QUINTUPLES + GRID_QUINTUPLES)
    def test_matches_weighted_formula(self, quintuple):
        pattern, anomaly, geographic, merchant, network = quintuple
        expected = (
            0.25 * pattern + 0.20 * anomaly + 0.15 * geographic + 0.25 * merchant + 0.15 * network
        )
        score = aggregate_scores(dict(zip(AGENTS, quintuple)), WEIGHTS)
        assert abs(score - expected) < 1e-9
        assert 0.0 <= score <= 1.0 + 1e-9

    def test_missing_agent_rejected(self):
        scores = _scores()
        del scores["network"]
        with pytest.raises(ValueError, match="network"):
            aggregate_scores(scores, WEIGHTS)


class TestDecide:
    def test_low_score_approves(self):
        assert decide(0.055, False, POLICY) == (Decision.APPROVE, 0.85)

    def test_challenge_threshold_is_strict(self):
        assert decide(0.40, False, POLICY) == (Decision.APPROVE, 0.85)
        assert decide(0.400001, False, POLICY) == (Decision.CHALLENGE, 0.75)

    def test_block_threshold_is_strict(self):
        assert decide(0.70, False, POLICY) == (Decision.CHALLENGE, 0.75)
        assert decide(0.700001, False, POLICY) == (Decision.BLOCK, 0.90)

    def test_fraud_ring_overrides_low_score(self):
        assert decide(0.05, True, POLICY) == (Decision.BLOCK, 0.95)

    def test_fraud_ring_overrides_high_score(self):
        assert decide(0.99, True, POLICY) == (Decision.BLOCK, 0.95)


class TestBuildReasoning:
    def test_fixed_order(self):
        scores = {
            name: AgentScore(agent=name, risk_score=0.0, reason=f"{name} ok")
            for name in ("network", "merchant", "geographic", "anomaly", "pattern")
        }
        assert build_reasoning(scores) == (
            "Pattern: pattern ok | Anomaly: anomaly ok | Geographic: geographic ok"
            " | Merchant: merchant ok | Network: network ok"
        )
