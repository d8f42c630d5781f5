"""Pydantic models for the fraud domain."""

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_COUNTRY = "XX"
UNKNOWN_CITY = "Unknown"


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Decision(StrEnum):
    APPROVE = "APPROVE"
    CHALLENGE = "CHALLENGE"
    BLOCK = "BLOCK"


class BaselineSource(StrEnum):
    HISTORY = "history"
    ALL_TRANSACTIONS = "all_transactions"
    NO_HISTORY = "no_history"


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    city: str
    country: str
    lat: float
    lon: float

    @property
    def is_unknown(self) -> bool:
        return (
            self.country == UNKNOWN_COUNTRY
            or self.city == UNKNOWN_CITY
            or (self.lat == 0.0 and self.lon == 0.0)
        )


class Transaction(BaseModel):
    """A transaction under analysis. Lives only for one analysis call."""

    model_config = ConfigDict(frozen=True)

    transaction_id: str
    user_id: str
    amount: float
    merchant: str
    merchant_category: str
    location: Location
    timestamp: datetime
    payment_method: str
    device_fingerprint: str

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)

    def description(self) -> str:
        """Synthetic narrative fed to the embedding model."""
        return (
            f"User {self.user_id} spending ${self.amount} at {self.merchant} "
            f"in category {self.merchant_category}"
        )


class TransactionRequest(BaseModel):
    user_id: str
    amount: float
    merchant: str
    merchant_category: str
    location: Location
    payment_method: str
    device_fingerprint: str

    def to_transaction(self, now: datetime | None = None) -> Transaction:
        return Transaction(
            transaction_id=str(uuid.uuid4()),
            timestamp=now or datetime.now(UTC),
            **self.model_dump(),
        )


class AgentScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    agent: str
    risk_score: float = Field(ge=0.0, le=1.0)
    reason: str
    ring_detected: bool = False
    details: dict = Field(default_factory=dict)

    @field_validator("risk_score", mode="before")
    @classmethod
    def clamp_risk_score(cls, value: float) -> float:
        return min(max(float(value), 0.0), 1.0)


class AgentScores(BaseModel):
    """Per-agent scores surfaced to callers.

    The network score contributes to the weighted score but is reported only
    through ``fraud_ring_detected``.
    """

    pattern: float
    anomaly: float
    geographic: float
    merchant: float


class AnalysisResult(BaseModel):
    transaction_id: str
    decision: Decision
    confidence: float = Field(ge=0.0, le=1.0)
    risk_score: float = Field(ge=0.0, le=1.0)
    latency_ms: int = Field(ge=0)
    agent_scores: AgentScores
    fraud_ring_detected: bool
    reasoning: str


# Rows read back from transaction history


class RecentTransaction(BaseModel):
    amount: float
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)


class RecentLocation(BaseModel):
    city: str = UNKNOWN_CITY
    country: str = "Unknown"
    lat: float = 0.0
    lon: float = 0.0
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)


class MerchantProfile(BaseModel):
    merchant_name: str
    category: str | None = None
    fraud_rate: float = 0.0
    total_transactions: int = 0
    has_embedding: bool = False


class SimilarTransaction(BaseModel):
    transaction_id: str
    fraud_label: bool | None = None
    similarity: float = 0.0


class UserBaseline(BaseModel):
    average_amount: float = 0.0
    categories: list[str] = []
    source: BaselineSource = BaselineSource.NO_HISTORY

    @classmethod
    def no_history(cls) -> "UserBaseline":
        return cls(average_amount=0.0, categories=[], source=BaselineSource.NO_HISTORY)
