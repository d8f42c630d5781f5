"""Read-only queries against transaction and merchant history.

Every query opens its own session from the shared factory, so agents running
concurrently never share an ``AsyncSession``. All time windows are anchored on
the timestamp of the transaction being analyzed.
"""

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from typing import Any, TypeVar

import structlog
from pgvector.sqlalchemy import Vector
from sqlalchemy import String, cast, func, literal, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased

from src.db.models import EMBEDDING_DIMENSION, MerchantRecord, TransactionRecord

from .embedding import to_vector_literal
from .errors import DataStoreError
from .models import (
    BaselineSource,
    MerchantProfile,
    RecentLocation,
    RecentTransaction,
    SimilarTransaction,
    UserBaseline,
)

logger = structlog.get_logger()

T = TypeVar("T")


def _to_recent_location(row: Any) -> RecentLocation:
    loc = row.location or {}
    return RecentLocation(
        city=loc.get("city") or "Unknown",
        country=loc.get("country") or "Unknown",
        lat=float(loc.get("lat") or 0.0),
        lon=float(loc.get("lon") or 0.0),
        timestamp=row.timestamp,
    )


class HistoryStore:
    """Gateway for the history queries issued by the signal agents."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _rows(self, query: str, stmt) -> Sequence[Any]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return result.all()
        except (SQLAlchemyError, OSError) as e:
            logger.error("history_query_failed", query=query, error=str(e))
            raise DataStoreError(f"{query} query failed: {e}") from e

    async def _scalar(self, query: str, stmt) -> Any:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return result.scalar_one()
        except (SQLAlchemyError, OSError) as e:
            logger.error("history_query_failed", query=query, error=str(e))
            raise DataStoreError(f"{query} query failed: {e}") from e

    @staticmethod
    def _map(query: str, rows: Sequence[Any], mapper: Callable[[Any], T]) -> list[T]:
        """Convert rows to models; malformed stored values surface as DataStoreError."""
        try:
            return [mapper(row) for row in rows]
        except (TypeError, ValueError) as e:
            logger.error("history_row_mapping_failed", query=query, error=str(e))
            raise DataStoreError(f"{query} returned a malformed row: {e}") from e

    # ------------------------------------------------------------------ #
    # User history
    # ------------------------------------------------------------------ #

    async def recent_transactions(
        self,
        user_id: str,
        now: datetime,
        window: timedelta = timedelta(hours=24),
        limit: int = 20,
    ) -> list[RecentTransaction]:
        stmt = (
            select(TransactionRecord.amount, TransactionRecord.timestamp)
            .where(
                TransactionRecord.user_id == user_id,
                TransactionRecord.timestamp > now - window,
                TransactionRecord.timestamp <= now,
            )
            .order_by(TransactionRecord.timestamp.desc())
            .limit(limit)
        )
        rows = await self._rows("recent_transactions", stmt)
        return self._map(
            "recent_transactions",
            rows,
            lambda row: RecentTransaction(amount=float(row.amount), timestamp=row.timestamp),
        )

    async def recent_locations(
        self,
        user_id: str,
        now: datetime,
        window: timedelta = timedelta(days=7),
        limit: int = 10,
    ) -> list[RecentLocation]:
        stmt = (
            select(TransactionRecord.location, TransactionRecord.timestamp)
            .where(
                TransactionRecord.user_id == user_id,
                TransactionRecord.timestamp > now - window,
                TransactionRecord.timestamp <= now,
                TransactionRecord.location.isnot(None),
            )
            .order_by(TransactionRecord.timestamp.desc())
            .limit(limit)
        )
        rows = await self._rows("recent_locations", stmt)
        return self._map("recent_locations", rows, _to_recent_location)

    async def user_baseline(
        self,
        user_id: str,
        now: datetime,
        window: timedelta = timedelta(days=90),
    ) -> UserBaseline:
        """Average amount and habitual categories over the lookback window.

        Prefers rows not labelled as fraud; falls back to every row in the
        window; returns the ``no_history`` baseline when the user has none.
        """
        base_filter = (
            TransactionRecord.user_id == user_id,
            TransactionRecord.timestamp > now - window,
            TransactionRecord.timestamp <= now,
        )

        try:
            baseline = await self._baseline(
                "user_baseline",
                base_filter
                + (
                    or_(
                        TransactionRecord.fraud_label.is_(False),
                        TransactionRecord.fraud_label.is_(None),
                    ),
                ),
                BaselineSource.HISTORY,
            )
        except DataStoreError:
            logger.warning("baseline_query_failed_using_fallback", user_id=user_id)
            baseline = None

        if baseline is None:
            logger.info("baseline_fallback_all_transactions", user_id=user_id)
            baseline = await self._baseline(
                "user_baseline_fallback", base_filter, BaselineSource.ALL_TRANSACTIONS
            )

        if baseline is None:
            logger.info("baseline_no_history", user_id=user_id)
            return UserBaseline.no_history()
        return baseline

    async def _baseline(
        self,
        query: str,
        filters: tuple,
        source: BaselineSource,
    ) -> UserBaseline | None:
        stmt = select(
            func.count().label("cnt"),
            func.avg(TransactionRecord.amount).label("avg"),
            func.array_agg(func.distinct(TransactionRecord.merchant_category)).label("categories"),
        ).where(*filters)
        rows = await self._rows(query, stmt)
        if not rows or not rows[0].cnt:
            return None

        (baseline,) = self._map(
            query,
            rows[:1],
            lambda row: UserBaseline(
                average_amount=float(row.avg or 0.0),
                categories=sorted(c for c in (row.categories or []) if c is not None),
                source=source,
            ),
        )
        return baseline

    async def similar_transactions(
        self,
        user_id: str,
        embedding: Sequence[float],
        limit: int = 10,
    ) -> list[SimilarTransaction]:
        vector = cast(literal(to_vector_literal(embedding), String), Vector(EMBEDDING_DIMENSION))
        distance = TransactionRecord.transaction_embedding.cosine_distance(vector)
        stmt = (
            select(
                TransactionRecord.transaction_id,
                TransactionRecord.fraud_label,
                (1 - distance).label("similarity"),
            )
            .where(
                TransactionRecord.user_id == user_id,
                TransactionRecord.transaction_embedding.isnot(None),
            )
            .order_by(distance)
            .limit(limit)
        )
        rows = await self._rows("similar_transactions", stmt)
        return self._map(
            "similar_transactions",
            rows,
            lambda row: SimilarTransaction(
                transaction_id=row.transaction_id,
                fraud_label=row.fraud_label,
                similarity=float(row.similarity or 0.0),
            ),
        )

    # ------------------------------------------------------------------ #
    # Merchant reputation
    # ------------------------------------------------------------------ #

    async def merchant_profile(self, merchant_name: str) -> MerchantProfile | None:
        stmt = select(
            MerchantRecord.merchant_name,
            MerchantRecord.category,
            MerchantRecord.fraud_rate,
            MerchantRecord.total_transactions,
            MerchantRecord.merchant_embedding.isnot(None).label("has_embedding"),
        ).where(MerchantRecord.merchant_name == merchant_name)
        rows = await self._rows("merchant_profile", stmt)
        if not rows:
            return None

        (profile,) = self._map(
            "merchant_profile",
            rows[:1],
            lambda row: MerchantProfile(
                merchant_name=row.merchant_name,
                category=row.category,
                fraud_rate=float(row.fraud_rate or 0.0),
                total_transactions=int(row.total_transactions or 0),
                has_embedding=bool(row.has_embedding),
            ),
        )
        return profile

    async def fraud_narrative_matches(
        self,
        merchant: str,
        category: str,
        keywords: Sequence[str] = ("fraud", "scam", "suspicious"),
    ) -> int:
        """Count fraud-labelled rows whose text matches merchant, category and keywords."""
        search = " ".join([merchant, category, *keywords])
        stmt = (
            select(func.count())
            .select_from(TransactionRecord)
            .where(
                TransactionRecord.description_tsv.op("@@")(func.plainto_tsquery("english", search)),
                TransactionRecord.fraud_label.is_(True),
            )
        )
        return int(await self._scalar("fraud_narrative_matches", stmt))

    async def similar_risky_merchants(
        self,
        merchant_name: str,
        min_fraud_rate: float = 0.30,
        min_similarity: float = 0.70,
        limit: int = 10,
    ) -> int:
        """Count other high-fraud merchants whose embedding is close to this one."""
        current = (
            select(MerchantRecord.merchant_embedding)
            .where(
                MerchantRecord.merchant_name == merchant_name,
                MerchantRecord.merchant_embedding.isnot(None),
            )
            .scalar_subquery()
        )
        other = aliased(MerchantRecord)
        similarity = 1 - other.merchant_embedding.cosine_distance(current)
        matches = (
            select(other.merchant_id)
            .where(
                other.merchant_name != merchant_name,
                other.fraud_rate > min_fraud_rate,
                other.merchant_embedding.isnot(None),
                similarity > min_similarity,
            )
            .limit(limit)
            .subquery()
        )
        stmt = select(func.count()).select_from(matches)
        return int(await self._scalar("similar_risky_merchants", stmt))

    # ------------------------------------------------------------------ #
    # Device and merchant networks
    # ------------------------------------------------------------------ #

    async def distinct_device_users(
        self,
        device_fingerprint: str,
        exclude_user_id: str,
        now: datetime,
        window: timedelta = timedelta(days=30),
    ) -> int:
        stmt = select(func.count(func.distinct(TransactionRecord.user_id))).where(
            TransactionRecord.device_fingerprint == device_fingerprint,
            TransactionRecord.user_id != exclude_user_id,
            TransactionRecord.timestamp > now - window,
        )
        return int(await self._scalar("distinct_device_users", stmt))

    async def coordinated_users(
        self,
        merchant: str,
        at: datetime,
        window: timedelta = timedelta(seconds=3600),
    ) -> int:
        stmt = select(func.count(func.distinct(TransactionRecord.user_id))).where(
            TransactionRecord.merchant == merchant,
            TransactionRecord.timestamp > at - window,
            TransactionRecord.timestamp < at + window,
        )
        return int(await self._scalar("coordinated_users", stmt))

    async def device_transaction_count(
        self,
        device_fingerprint: str,
        now: datetime,
        window: timedelta = timedelta(hours=1),
    ) -> int:
        stmt = select(func.count()).where(
            TransactionRecord.device_fingerprint == device_fingerprint,
            TransactionRecord.timestamp > now - window,
        )
        return int(await self._scalar("device_transaction_count", stmt))
