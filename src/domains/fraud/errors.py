"""Exceptions raised while scoring a transaction."""


class FraudAnalysisError(Exception):
    """Base class for every failure that aborts an analysis."""

    def __init__(self, message: str, agent: str | None = None) -> None:
        super().__init__(message)
        self.agent = agent


class DataStoreError(FraudAnalysisError):
    """Transaction history could not be read (connection, query or mapping)."""


class EmbeddingError(FraudAnalysisError):
    """The embedding model could not turn text into a vector."""


class AgentTimeoutError(FraudAnalysisError):
    """A single agent exceeded its time budget."""


class AnalysisTimeoutError(FraudAnalysisError):
    """The whole analysis exceeded its time budget."""


class AgentFailedError(FraudAnalysisError):
    """An agent failed; the analysis is discarded without a partial verdict."""

    def __init__(self, agent: str, cause: BaseException) -> None:
        super().__init__(f"{agent} agent failed: {cause}", agent=agent)
        self.cause = cause
