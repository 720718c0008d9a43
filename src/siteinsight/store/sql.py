from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, fields
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, Text, create_engine, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from siteinsight.errors import StoreFailure
from siteinsight.report.models import AnalysisReport
from siteinsight.store.base import StoredRecord
from siteinsight.store.codec import encode_report

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class WebsiteAnalysis(Base):
    """One persisted analysis; scores are denormalized for listing without decoding."""

    __tablename__ = "website_analyses"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    performance_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    seo_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    accessibility_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    design_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ux_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    analysis_data: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_record(self) -> StoredRecord:
        return StoredRecord(**{f.name: getattr(self, f.name) for f in fields(StoredRecord)})


def build_engine(database_url: str, *, echo: bool = False, timeout: float = 0.0) -> Engine:
    """Engine for ``database_url``; ``timeout`` bounds lock and pool waits (0 disables)."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        if timeout:
            return create_engine(url, echo=echo, pool_pre_ping=True, pool_timeout=timeout)
        return create_engine(url, echo=echo, pool_pre_ping=True)
    # Calls arrive from worker threads.
    connect_args: dict[str, object] = {"check_same_thread": False}
    if timeout:
        connect_args["timeout"] = timeout
    if url.database in (None, "", ":memory:"):
        return create_engine(url, echo=echo, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(url, echo=echo, connect_args=connect_args)


class SqlReportStore:
    """SQLAlchemy-backed store; blocking calls run in the default thread pool.

    Time limits come from the engine (``timeout``); a call handed to a worker
    thread always runs to completion.
    """

    def __init__(self, database_url: str, *, echo: bool = False, timeout: float = 0.0):
        self.engine = build_engine(database_url, echo=echo, timeout=timeout)
        Base.metadata.create_all(self.engine)
        self._sessions = sessionmaker(self.engine, expire_on_commit=False)

    async def create(self, user_id: str, report: AnalysisReport) -> StoredRecord:
        record = encode_report(user_id, report)
        await self.add_record(record)
        return record

    async def add_record(self, record: StoredRecord) -> None:
        await asyncio.to_thread(self._insert, record)

    async def list(self, user_id: str, limit: int) -> list[StoredRecord]:
        return await asyncio.to_thread(self._select, user_id, limit)

    async def get(self, user_id: str, report_id: str) -> StoredRecord | None:
        return await asyncio.to_thread(self._select_one, user_id, report_id)

    def close(self) -> None:
        self.engine.dispose()

    def _insert(self, record: StoredRecord) -> None:
        try:
            with self._sessions.begin() as session:
                session.add(WebsiteAnalysis(**asdict(record)))
        except SQLAlchemyError as exc:
            logger.error("Failed to persist analysis %s: %s", record.id, exc)
            raise StoreFailure(
                f"Could not save analysis {record.id}", payload={"id": record.id}
            ) from exc

    def _select(self, user_id: str, limit: int) -> list[StoredRecord]:
        query = (
            select(WebsiteAnalysis)
            .where(WebsiteAnalysis.user_id == user_id)
            .order_by(WebsiteAnalysis.timestamp.desc(), WebsiteAnalysis.created_at.desc())
            .limit(max(limit, 0))
        )
        try:
            with self._sessions() as session:
                return [row.to_record() for row in session.scalars(query)]
        except SQLAlchemyError as exc:
            raise StoreFailure(f"Could not list analyses for {user_id}") from exc

    def _select_one(self, user_id: str, report_id: str) -> StoredRecord | None:
        query = select(WebsiteAnalysis).where(
            WebsiteAnalysis.user_id == user_id, WebsiteAnalysis.id == report_id
        )
        try:
            with self._sessions() as session:
                row = session.scalars(query).first()
        except SQLAlchemyError as exc:
            raise StoreFailure(f"Could not load analysis {report_id}") from exc
        return row.to_record() if row else None
