"""Fraud analysis pipeline: request -> agents (parallel) -> weighting -> decision."""

import time
from collections.abc import Sequence
from datetime import datetime
from functools import partial

import structlog

from .agents import ALL_AGENTS, AnalysisContext, Embedder, FraudAgent
from .config import FraudConfig, default_config
from .decision import aggregate_scores, build_reasoning, decide
from .errors import FraudAnalysisError
from .fanout import run_all
from .history import HistoryStore
from .models import AgentScore, AgentScores, AnalysisResult, TransactionRequest

logger = structlog.get_logger()


class FraudAnalyzer:
    """Orchestrates the signal agents for one transaction at a time."""

    def __init__(
        self,
        store: HistoryStore,
        embedder: Embedder,
        config: FraudConfig | None = None,
        agents: Sequence[FraudAgent] | None = None,
    ) -> None:
        self._config = config or default_config
        self._agents = list(agents if agents is not None else ALL_AGENTS)
        self._context = AnalysisContext(store=store, embedder=embedder, config=self._config)

    @property
    def agents(self) -> list[FraudAgent]:
        return list(self._agents)

    @property
    def config(self) -> FraudConfig:
        return self._config

    async def analyze_transaction(
        self,
        request: TransactionRequest,
        now: datetime | None = None,
    ) -> AnalysisResult:
        """Run every agent on the request and return the aggregated verdict.

        Raises a FraudAnalysisError subclass if any agent fails or the time
        budget runs out; no partial result is produced.
        """
        start = time.perf_counter()
        transaction = request.to_transaction(now)
        timeouts = self._config.timeouts

        logger.info(
            "transaction_analysis_started",
            transaction_id=transaction.transaction_id,
            user_id=transaction.user_id,
            agent_count=len(self._agents),
        )

        jobs = [
            (agent.name, partial(agent.score, transaction, self._context))
            for agent in self._agents
        ]
        try:
            results: list[AgentScore] = await run_all(
                jobs,
                timeout=timeouts.analysis_timeout_seconds,
                task_timeout=timeouts.agent_timeout_seconds,
            )
        except FraudAnalysisError as e:
            logger.exception(
                "transaction_analysis_failed",
                transaction_id=transaction.transaction_id,
                agent=e.agent,
            )
            raise

        scores = {result.agent: result for result in results}
        weighted_score = aggregate_scores(
            {name: s.risk_score for name, s in scores.items()}, self._config.weights
        )
        fraud_ring_detected = any(s.ring_detected for s in results)
        decision, confidence = decide(weighted_score, fraud_ring_detected, self._config.decision)
        latency_ms = int((time.perf_counter() - start) * 1000)

        logger.info(
            "transaction_analyzed",
            transaction_id=transaction.transaction_id,
            decision=decision.value,
            confidence=confidence,
            weighted_score=round(weighted_score, 4),
            agent_scores={name: s.risk_score for name, s in scores.items()},
            latency_ms=latency_ms,
        )
        if fraud_ring_detected:
            logger.warning(
                "fraud_ring_detected",
                transaction_id=transaction.transaction_id,
                user_id=transaction.user_id,
                merchant=transaction.merchant,
                device_fingerprint=transaction.device_fingerprint,
            )

        return AnalysisResult(
            transaction_id=transaction.transaction_id,
            decision=decision,
            confidence=confidence,
            risk_score=min(max(weighted_score, 0.0), 1.0),
            latency_ms=latency_ms,
            agent_scores=AgentScores(
                pattern=scores["pattern"].risk_score,
                anomaly=scores["anomaly"].risk_score,
                geographic=scores["geographic"].risk_score,
                merchant=scores["merchant"].risk_score,
            ),
            fraud_ring_detected=fraud_ring_detected,
            reasoning=build_reasoning(scores),
        )

    async def run_agent(
        self,
        name: str,
        request: TransactionRequest,
        now: datetime | None = None,
    ) -> AgentScore:
        """Run a single agent on a freshly derived transaction (diagnostics)."""
        agent = next((a for a in self._agents if a.name == name), None)
        if agent is None:
            raise LookupError(f"Unknown agent: {name}")

        transaction = request.to_transaction(now)
        (score,) = await run_all(
            [(agent.name, partial(agent.score, transaction, self._context))],
            task_timeout=self._config.timeouts.agent_timeout_seconds,
        )
        return score
