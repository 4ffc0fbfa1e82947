"""
sql.py — SQLAlchemy-backed stores (PostgreSQL via asyncpg, SQLite via aiosqlite).

Tables:
    alerts    — one row per Alert; partial unique index on
                (alert, district, source) WHERE source = 'openweather'
    mesh_sos  — one row per relayed SOS

Feed upserts compile to a single ``INSERT … ON CONFLICT (…) WHERE … DO
UPDATE`` statement against that partial index, so two reconcile passes
racing on the same advisory end with one row.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, Float, Index, Integer, String, Text, func, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.alerts.models import Alert, AlertSource, DEFAULT_DESCRIPTION, HazardType
from backend.app.core.database import Base, Database
from backend.app.core.errors import StoreError
from backend.app.mesh.models import SosRecord
from backend.app.storage.base import AlertStore, SosStore

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# ORM Tables
# ═══════════════════════════════════════════════════════════════════════════

class AlertRow(Base):
    __tablename__ = "alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    district: Mapped[str] = mapped_column(String(120), nullable=False)
    alert: Mapped[str] = mapped_column(String(500), nullable=False)
    severity: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default=DEFAULT_DESCRIPTION)
    lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    lon: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    type: Mapped[str] = mapped_column(String(40), nullable=False, default=HazardType.DEFAULT.value)
    issued_on: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    source: Mapped[str] = mapped_column(String(20), nullable=False, default=AlertSource.MANUAL.value)


Index(
    "uq_alerts_feed_key",
    AlertRow.alert, AlertRow.district, AlertRow.source,
    unique=True,
    postgresql_where=AlertRow.source == AlertSource.OPENWEATHER.value,
    sqlite_where=AlertRow.source == AlertSource.OPENWEATHER.value,
)


class SosRow(Base):
    __tablename__ = "mesh_sos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sender_id: Mapped[str] = mapped_column(String(120), nullable=False)
    msg: Mapped[str] = mapped_column(Text, nullable=False)
    lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    lon: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


_ALERT_COLUMNS = ("district", "alert", "severity", "description", "lat", "lon", "type", "issued_on", "source")


def _alert_values(alert: Alert) -> Dict[str, Any]:
    return {name: getattr(alert, name) for name in _ALERT_COLUMNS}


def _row_to_alert(row: Any) -> Alert:
    return Alert(
        id=str(row.id),
        district=row.district,
        alert=row.alert,
        severity=row.severity,
        description=row.description,
        lat=row.lat,
        lon=row.lon,
        type=row.type,
        issued_on=row.issued_on,
        source=row.source,
    )


def _row_to_sos(row: Any) -> SosRecord:
    return SosRecord(
        id=str(row.id),
        sender_id=row.sender_id,
        msg=row.msg,
        lat=row.lat,
        lon=row.lon,
        timestamp=row.timestamp,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Stores
# ═══════════════════════════════════════════════════════════════════════════

class SqlAlertStore(AlertStore):

    def __init__(self, database: Database):
        self.db = database

    async def insert(self, alert: Alert) -> Alert:
        stmt = insert(AlertRow).values(**_alert_values(alert)).returning(*AlertRow.__table__.c)
        try:
            async with self.db.session() as session:
                row = (await session.execute(stmt)).one()
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            raise StoreError("alert.insert", str(e), message="Error adding alert") from e
        return _row_to_alert(row)

    async def find_all(self) -> List[Alert]:
        try:
            async with self.db.session() as session:
                rows = (await session.execute(select(AlertRow).order_by(AlertRow.id))).scalars().all()
        except (SQLAlchemyError, OSError) as e:
            raise StoreError("alert.find_all", str(e), message="Error fetching alerts") from e
        return [_row_to_alert(r) for r in rows]

    def _upsert_statement(self, alert: Alert):
        values = _alert_values(alert)
        dialect = self.db.dialect_name
        if dialect == "postgresql":
            stmt = postgresql.insert(AlertRow).values(**values)
        elif dialect == "sqlite":
            stmt = sqlite.insert(AlertRow).values(**values)
        else:
            raise StoreError("alert.upsert", f"no ON CONFLICT support for dialect {dialect!r}")

        return stmt.on_conflict_do_update(
            index_elements=[AlertRow.alert, AlertRow.district, AlertRow.source],
            index_where=AlertRow.source == AlertSource.OPENWEATHER.value,
            set_={name: stmt.excluded[name] for name in _ALERT_COLUMNS},
        ).returning(*AlertRow.__table__.c)

    async def upsert(self, alert: Alert) -> Alert:
        self._check_upsert_source(alert)
        stmt = self._upsert_statement(alert)
        try:
            async with self.db.session() as session:
                row = (await session.execute(stmt)).one()
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            raise StoreError("alert.upsert", str(e)) from e
        return _row_to_alert(row)

    async def count(self) -> int:
        try:
            async with self.db.session() as session:
                return (await session.execute(select(func.count()).select_from(AlertRow))).scalar_one()
        except (SQLAlchemyError, OSError) as e:
            raise StoreError("alert.count", str(e)) from e


class SqlSosStore(SosStore):

    def __init__(self, database: Database):
        self.db = database

    async def insert(self, record: SosRecord) -> SosRecord:
        stmt = insert(SosRow).values(
            sender_id=record.sender_id,
            msg=record.msg,
            lat=record.lat,
            lon=record.lon,
            timestamp=record.timestamp,
        ).returning(*SosRow.__table__.c)
        try:
            async with self.db.session() as session:
                row = (await session.execute(stmt)).one()
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            raise StoreError("sos.insert", str(e), message="Error storing SOS") from e
        return _row_to_sos(row)

    async def find_all(self) -> List[SosRecord]:
        try:
            async with self.db.session() as session:
                rows = (await session.execute(select(SosRow).order_by(SosRow.id))).scalars().all()
        except (SQLAlchemyError, OSError) as e:
            raise StoreError("sos.find_all", str(e), message="Error fetching SOS") from e
        return [_row_to_sos(r) for r in rows]

    async def count(self) -> int:
        try:
            async with self.db.session() as session:
                return (await session.execute(select(func.count()).select_from(SosRow))).scalar_one()
        except (SQLAlchemyError, OSError) as e:
            raise StoreError("sos.count", str(e)) from e
