"""Transaction analysis endpoints."""

import structlog
from fastapi import APIRouter, Depends, Request

from src.domains.fraud.analyzer import FraudAnalyzer
from src.domains.fraud.models import AnalysisResult, TransactionRequest

logger = structlog.get_logger()
router = APIRouter(prefix="/api", tags=["analysis"])


def get_analyzer(request: Request) -> FraudAnalyzer:
    """The analyzer built at startup, shared by all requests."""
    analyzer = getattr(request.app.state, "analyzer", None)
    if analyzer is None:
        raise RuntimeError("Fraud analyzer is not initialized")
    return analyzer


@router.post("/analyze", response_model=AnalysisResult)
async def analyze_transaction(
    request: TransactionRequest,
    analyzer: FraudAnalyzer = Depends(get_analyzer),  # noqa: B008
) -> AnalysisResult:
    logger.info("analysis_requested", user_id=request.user_id, merchant=request.merchant)
    return await analyzer.analyze_transaction(request)


@router.post("/pattern")
async def analyze_pattern(
    request: TransactionRequest,
    analyzer: FraudAnalyzer = Depends(get_analyzer),  # noqa: B008
) -> dict:
    """Run only the spending-pattern agent, for diagnostics."""
    score = await analyzer.run_agent("pattern", request)
    return {
        "agent": "Pattern",
        "risk_score": score.risk_score,
        "reason": score.reason,
        "details": score.details,
    }


@router.get("/agents")
async def list_agents(analyzer: FraudAnalyzer = Depends(get_analyzer)) -> dict:  # noqa: B008
    """Return the agents, their weights and the decision thresholds."""
    config = analyzer.config
    weights = config.weights.as_dict()
    return {
        "agents": [
            {"name": agent.name, "weight": weights.get(agent.name, 0.0)}
            for agent in analyzer.agents
        ],
        "decision_thresholds": {
            "block": config.decision.block_threshold,
            "challenge": config.decision.challenge_threshold,
        },
        "confidences": {
            "fraud_ring": config.decision.ring_confidence,
            "block": config.decision.block_confidence,
            "challenge": config.decision.challenge_confidence,
            "approve": config.decision.approve_confidence,
        },
        "timeouts": {
            "agent_seconds": config.timeouts.agent_timeout_seconds,
            "analysis_seconds": config.timeouts.analysis_timeout_seconds,
        },
    }
