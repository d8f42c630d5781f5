"""Signal agents package.

Exports ALL_AGENTS (one instance of each agent, in reporting order) and the
individual agent classes for direct use.
"""

from .anomaly import AnomalyAgent
from .base import AnalysisContext, Embedder, FraudAgent
from .geographic import GeographicAgent, haversine
from .merchant import MerchantAgent
from .network import NetworkAgent
from .pattern import PatternAgent

# All agent instances in reporting order
ALL_AGENTS: list[FraudAgent] = [
    PatternAgent(),
    AnomalyAgent(),
    GeographicAgent(),
    MerchantAgent(),
    NetworkAgent(),
]

__all__ = [
    "ALL_AGENTS",
    "AnalysisContext",
    "Embedder",
    "FraudAgent",
    "haversine",
    "AnomalyAgent",
    "GeographicAgent",
    "MerchantAgent",
    "NetworkAgent",
    "PatternAgent",
]
