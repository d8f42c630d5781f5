"""Unit tests for service settings and fraud scoring configuration."""

import pytest

from src.config import Settings
from src.domains.fraud.config import AgentWeights, FraudConfig


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        monkeypatch.delenv("EMBEDDING_DIMENSION", raising=False)
        s = Settings()
        assert s.app_name == "fraud-mesh"
        assert s.port == 2008
        assert s.embedding_dimension == 768

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PORT", "9000")
        monkeypatch.setenv("EMBEDDING_MODEL_PATH", "/models/other")
        s = Settings()
        assert s.port == 9000
        assert s.embedding_model_path == "/models/other"


class TestAgentWeights:
    def test_default_weights_sum_to_one(self):
        weights = AgentWeights()
        assert sum(weights.as_dict().values()) == pytest.approx(1.0)

    def test_default_weights(self):
        assert AgentWeights().as_dict() == {
            "pattern": 0.25,
            "anomaly": 0.20,
            "geographic": 0.15,
            "merchant": 0.25,
            "network": 0.15,
        }

    def test_weights_not_summing_to_one_rejected(self):
        with pytest.raises(ValueError, match="sum to 1.0"):
            AgentWeights(pattern=0.5)


class TestFraudConfig:
    def test_defaults(self):
        config = FraudConfig()
        assert config.decision.block_threshold == 0.70
        assert config.decision.challenge_threshold == 0.40
        assert config.decision.ring_confidence == 0.95
        assert config.timeouts.agent_timeout_seconds == 5.0
        assert config.timeouts.analysis_timeout_seconds == 10.0
        assert config.network.ring_marker == "FRAUD RING DETECTED"

    def test_from_env_overrides(self, monkeypatch):
        monkeypatch.setenv("FRAUD_AGENT_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("FRAUD_ANOMALY_LOOKBACK_HOURS", "12")
        monkeypatch.setenv("FRAUD_BASELINE_DAYS", "30")
        config = FraudConfig.from_env()
        assert config.timeouts.agent_timeout_seconds == 2.5
        assert config.anomaly.lookback_hours == 12
        assert config.pattern.baseline_days == 30

    def test_non_positive_timeout_disables_it(self, monkeypatch):
        monkeypatch.setenv("FRAUD_ANALYSIS_TIMEOUT_SECONDS", "0")
        config = FraudConfig.from_env()
        assert config.timeouts.analysis_timeout_seconds is None

    def test_from_env_does_not_touch_default_instance(self, monkeypatch):
        monkeypatch.setenv("FRAUD_GEO_LOOKBACK_DAYS", "3")
        FraudConfig.from_env()
        assert FraudConfig().geo.lookback_days == 7
