"""Score aggregation and the accept/challenge/block decision policy."""

from collections.abc import Mapping

from .config import AgentWeights, DecisionPolicy
from .models import AgentScore, Decision

REASONING_ORDER = ("pattern", "anomaly", "geographic", "merchant", "network")
REASONING_SEPARATOR = " | "


def aggregate_scores(scores: Mapping[str, float], weights: AgentWeights) -> float:
    """Weighted sum of per-agent risk scores. Every weighted agent must be present."""
    weight_map = weights.as_dict()
    missing = set(weight_map) - set(scores)
    if missing:
        raise ValueError(f"Missing agent scores: {', '.join(sorted(missing))}")
    return sum(weight_map[name] * scores[name] for name in weight_map)


def decide(
    weighted_score: float,
    fraud_ring_detected: bool,
    policy: DecisionPolicy,
) -> tuple[Decision, float]:
    """Map the weighted score and ring flag to ``(decision, confidence)``.

    Rules are ordered and the first match wins. Thresholds are strict.
    """
    if fraud_ring_detected:
        return Decision.BLOCK, policy.ring_confidence
    if weighted_score > policy.block_threshold:
        return Decision.BLOCK, policy.block_confidence
    if weighted_score > policy.challenge_threshold:
        return Decision.CHALLENGE, policy.challenge_confidence
    return Decision.APPROVE, policy.approve_confidence


def build_reasoning(scores: Mapping[str, AgentScore]) -> str:
    """Concatenate agent reasons in fixed order, e.g. ``Pattern: ... | Anomaly: ...``."""
    return REASONING_SEPARATOR.join(
        f"{name.capitalize()}: {scores[name].reason}" for name in REASONING_ORDER if name in scores
    )
