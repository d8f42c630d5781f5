"""Fraud scoring configuration with sensible defaults."""

import math
import os
from dataclasses import dataclass, field


@dataclass
class AnomalyThresholds:
    lookback_hours: int = 24
    history_limit: int = 20
    velocity_window_minutes: float = 60.0
    high_velocity_count: int = 5
    elevated_velocity_count: int = 3
    odd_hour_start: int = 2
    odd_hour_end: int = 5
    rapid_succession_minutes: float = 5.0
    amount_spike_multiplier: float = 3.0
    high_velocity_score: float = 0.30
    elevated_velocity_score: float = 0.15
    odd_hour_score: float = 0.20
    rapid_succession_score: float = 0.25
    amount_spike_score: float = 0.25


@dataclass
class GeoThresholds:
    lookback_days: int = 7
    history_limit: int = 10
    impossible_distance_km: float = 500.0
    impossible_within_hours: float = 1.0
    unlikely_distance_km: float = 1000.0
    unlikely_within_hours: float = 3.0
    unknown_location_score: float = 0.40
    impossible_travel_score: float = 0.50
    unlikely_travel_score: float = 0.30
    new_country_score: float = 0.20


@dataclass
class MerchantThresholds:
    high_fraud_rate: float = 0.30
    elevated_fraud_rate: float = 0.10
    min_transactions: int = 10
    similarity_threshold: float = 0.70
    similar_merchant_limit: int = 10
    fraud_keywords: tuple[str, ...] = ("fraud", "scam", "suspicious")
    unrecognized_score: float = 0.30
    high_fraud_rate_score: float = 0.50
    elevated_fraud_rate_score: float = 0.25
    new_merchant_score: float = 0.20
    narrative_match_score: float = 0.25
    similar_risky_score: float = 0.20


@dataclass
class NetworkThresholds:
    device_lookback_days: int = 30
    ring_device_users: int = 3
    shared_device_users: int = 1
    coordination_window_seconds: int = 3600
    coordinated_users: int = 5
    velocity_window_minutes: int = 60
    device_velocity_count: int = 10
    ring_device_score: float = 0.40
    shared_device_score: float = 0.20
    coordinated_score: float = 0.30
    device_velocity_score: float = 0.30
    ring_marker: str = "FRAUD RING DETECTED"


@dataclass
class PatternThresholds:
    baseline_days: int = 90
    high_deviation: float = 3.0
    elevated_deviation: float = 1.5
    similar_limit: int = 10
    similar_fraud_note_ratio: float = 0.30
    high_deviation_score: float = 0.30
    elevated_deviation_score: float = 0.15
    new_category_score: float = 0.20
    similar_fraud_weight: float = 0.50


@dataclass
class AgentWeights:
    pattern: float = 0.25
    anomaly: float = 0.20
    geographic: float = 0.15
    merchant: float = 0.25
    network: float = 0.15

    def __post_init__(self) -> None:
        total = self.pattern + self.anomaly + self.geographic + self.merchant + self.network
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Agent weights must sum to 1.0, got {total}")

    def as_dict(self) -> dict[str, float]:
        return {
            "pattern": self.pattern,
            "anomaly": self.anomaly,
            "geographic": self.geographic,
            "merchant": self.merchant,
            "network": self.network,
        }


@dataclass
class DecisionPolicy:
    block_threshold: float = 0.70
    challenge_threshold: float = 0.40
    ring_confidence: float = 0.95
    block_confidence: float = 0.90
    challenge_confidence: float = 0.75
    approve_confidence: float = 0.85


@dataclass
class TimeoutSettings:
    agent_timeout_seconds: float | None = 5.0
    analysis_timeout_seconds: float | None = 10.0


@dataclass
class FraudConfig:
    anomaly: AnomalyThresholds = field(default_factory=AnomalyThresholds)
    geo: GeoThresholds = field(default_factory=GeoThresholds)
    merchant: MerchantThresholds = field(default_factory=MerchantThresholds)
    network: NetworkThresholds = field(default_factory=NetworkThresholds)
    pattern: PatternThresholds = field(default_factory=PatternThresholds)
    weights: AgentWeights = field(default_factory=AgentWeights)
    decision: DecisionPolicy = field(default_factory=DecisionPolicy)
    timeouts: TimeoutSettings = field(default_factory=TimeoutSettings)

    @classmethod
    def from_env(cls) -> "FraudConfig":
        """Load config with env var overrides. Env vars use FRAUD_ prefix.

        Scoring constants and decision thresholds are fixed policy and are not
        overridable; only timeouts and lookback windows are.
        """
        config = cls()

        if v := os.getenv("FRAUD_AGENT_TIMEOUT_SECONDS"):
            config.timeouts.agent_timeout_seconds = float(v) if float(v) > 0 else None
        if v := os.getenv("FRAUD_ANALYSIS_TIMEOUT_SECONDS"):
            config.timeouts.analysis_timeout_seconds = float(v) if float(v) > 0 else None

        if v := os.getenv("FRAUD_ANOMALY_LOOKBACK_HOURS"):
            config.anomaly.lookback_hours = int(v)
        if v := os.getenv("FRAUD_GEO_LOOKBACK_DAYS"):
            config.geo.lookback_days = int(v)
        if v := os.getenv("FRAUD_DEVICE_LOOKBACK_DAYS"):
            config.network.device_lookback_days = int(v)
        if v := os.getenv("FRAUD_BASELINE_DAYS"):
            config.pattern.baseline_days = int(v)

        return config


# Module-level default instance
default_config = FraudConfig()
