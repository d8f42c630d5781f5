"""Abstract base class for the signal agents."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol

import structlog

from ..config import FraudConfig
from ..history import HistoryStore
from ..models import AgentScore, Transaction

logger = structlog.get_logger()

REASON_SEPARATOR = "; "


class Embedder(Protocol):
    async def generate_embedding(self, text: str) -> list[float]: ...


@dataclass(frozen=True)
class AnalysisContext:
    """Read-only collaborators shared by every agent in one analysis."""

    store: HistoryStore
    embedder: Embedder
    config: FraudConfig


class FraudAgent(ABC):
    """Base class for all signal agents.

    Agents are independent: each reads the transaction and history through the
    shared context and never sees another agent's output.
    """

    name: str
    normal_reason: str = "No risk factors"

    @abstractmethod
    async def score(self, transaction: Transaction, context: AnalysisContext) -> AgentScore:
        """Score one transaction and return this agent's AgentScore."""
        ...

    def _normal_reason(self, transaction: Transaction) -> str:
        return self.normal_reason

    def _result(
        self,
        transaction: Transaction,
        risk_score: float,
        reasons: list[str],
        details: dict | None = None,
        ring_detected: bool = False,
    ) -> AgentScore:
        """Clamp the score, join the reasons, and log the outcome."""
        reason = REASON_SEPARATOR.join(reasons) if reasons else self._normal_reason(transaction)
        result = AgentScore(
            agent=self.name,
            risk_score=risk_score,
            reason=reason,
            ring_detected=ring_detected,
            details=details or {},
        )

        logger.info(
            "agent_scored",
            agent=self.name,
            transaction_id=transaction.transaction_id,
            risk_score=result.risk_score,
            reason=result.reason,
            ring_detected=ring_detected,
        )
        return result
