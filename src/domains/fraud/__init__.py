"""Fraud detection domain."""

from .agents import ALL_AGENTS, AnalysisContext, FraudAgent
from .analyzer import FraudAnalyzer
from .embedding import EmbeddingModel
from .errors import (
    AgentFailedError,
    AgentTimeoutError,
    AnalysisTimeoutError,
    DataStoreError,
    EmbeddingError,
    FraudAnalysisError,
)
from .history import HistoryStore
from .models import (
    AgentScore,
    AgentScores,
    AnalysisResult,
    Decision,
    Location,
    Transaction,
    TransactionRequest,
)

__all__ = [
    "ALL_AGENTS",
    "AgentFailedError",
    "AgentScore",
    "AgentScores",
    "AgentTimeoutError",
    "AnalysisContext",
    "AnalysisResult",
    "AnalysisTimeoutError",
    "DataStoreError",
    "Decision",
    "EmbeddingError",
    "EmbeddingModel",
    "FraudAgent",
    "FraudAnalysisError",
    "FraudAnalyzer",
    "HistoryStore",
    "Location",
    "Transaction",
    "TransactionRequest",
]
