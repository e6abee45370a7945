"""
Persistence gateway over the relational store.

One ``Database`` is built per process (see ``app.main.create_app``) and handed
to route handlers through FastAPI dependencies. Every operation opens its own
short-lived session; there are no transactions spanning operations.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import create_engine, event, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.models import Base, Bot, CallLog, utcnow

logger = logging.getLogger(__name__)


@dataclass
class CallLogFilter:
    bot_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    search: Optional[str] = None
    limit: int = 50
    offset: int = 0


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str) -> Engine:
    connect_args: Dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


class Database:
    def __init__(self, database_url: str):
        self.engine = build_engine(database_url)
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )

    # ------------------------------------------------------------------ #
    #  Schema / connectivity                                              #
    # ------------------------------------------------------------------ #

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def ping(self) -> None:
        """Run ``SELECT 1``. Raises if the store is unreachable."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def schema_exists(self) -> Tuple[bool, Optional[str]]:
        """
        Probe whether the Bot relation is queryable.

        Returns ``(True, None)`` when it is, otherwise ``(False, <raw error>)``
        so callers can tell "not migrated yet" apart from "unreachable".
        """
        db = self.SessionLocal()
        try:
            db.execute(select(Bot.id).limit(1)).first()
            return True, None
        except Exception as e:
            logger.error("Database schema check failed: %s", e)
            return False, str(e)
        finally:
            db.close()

    # ------------------------------------------------------------------ #
    #  Bots                                                               #
    # ------------------------------------------------------------------ #

    def find_bot(self, id: Optional[str] = None, uid: Optional[str] = None) -> Optional[Bot]:
        if id is None and uid is None:
            raise ValueError("find_bot needs an id or a uid")
        db = self.SessionLocal()
        try:
            query = db.query(Bot)
            if id is not None:
                query = query.filter(Bot.id == id)
            if uid is not None:
                query = query.filter(Bot.uid == uid)
            return query.first()
        finally:
            db.close()

    def find_first_bot(self, domain: Optional[str] = None, most_recent: bool = False) -> Optional[Bot]:
        db = self.SessionLocal()
        try:
            query = db.query(Bot)
            if domain:
                query = query.filter(Bot.domain == domain)
            if most_recent:
                query = query.order_by(Bot.updated_at.desc())
            else:
                query = query.order_by(Bot.created_at.asc())
            return query.first()
        finally:
            db.close()

    def list_bots(self) -> List[Tuple[Bot, int]]:
        """All bots, newest first, each paired with its call-log count."""
        db = self.SessionLocal()
        try:
            counts = (
                select(CallLog.bot_id, func.count(CallLog.id).label("n"))
                .group_by(CallLog.bot_id)
                .subquery()
            )
            rows = db.execute(
                select(Bot, func.coalesce(counts.c.n, 0))
                .outerjoin(counts, counts.c.bot_id == Bot.id)
                .order_by(Bot.created_at.desc())
            ).all()
            return [(bot, int(n)) for bot, n in rows]
        finally:
            db.close()

    def count_bot_call_logs(self, bot_id: str) -> int:
        return self.count_call_logs(CallLogFilter(bot_id=bot_id))

    def create_bot(self, uid: str, name: str, domain: str) -> Bot:
        db = self.SessionLocal()
        try:
            bot = Bot(uid=uid, name=name, domain=domain)
            db.add(bot)
            db.commit()
            db.refresh(bot)
            return bot
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def update_bot(self, id: str, fields: Dict[str, Any]) -> Optional[Bot]:
        db = self.SessionLocal()
        try:
            bot = db.query(Bot).filter(Bot.id == id).first()
            if not bot:
                return None
            for key in ("name", "domain", "uid"):
                if fields.get(key) is not None:
                    setattr(bot, key, fields[key])
            bot.updated_at = utcnow()
            db.commit()
            db.refresh(bot)
            return bot
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def upsert_bot(self, uid: str, name: str, domain: str) -> Tuple[Bot, bool]:
        """
        Insert or update the bot keyed by ``uid``.

        Returns ``(bot, created)``. Concurrent upserts of the same uid are not
        coordinated; the last writer wins.
        """
        db = self.SessionLocal()
        try:
            bot = db.query(Bot).filter(Bot.uid == uid).first()
            created = bot is None
            if created:
                bot = Bot(uid=uid, name=name, domain=domain)
                db.add(bot)
            else:
                bot.name = name
                bot.domain = domain
                bot.updated_at = utcnow()
            db.commit()
            db.refresh(bot)
            return bot, created
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def delete_bot(self, id: str) -> bool:
        """Delete a bot and, by cascade, all of its call logs."""
        db = self.SessionLocal()
        try:
            bot = db.query(Bot).filter(Bot.id == id).first()
            if not bot:
                return False
            db.delete(bot)
            db.commit()
            return True
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ------------------------------------------------------------------ #
    #  Call logs                                                          #
    # ------------------------------------------------------------------ #

    def create_call_log(self, bot_id: str, transcript: str, metadata: Dict[str, Any]) -> CallLog:
        db = self.SessionLocal()
        try:
            call_log = CallLog(bot_id=bot_id, transcript=transcript, call_metadata=metadata)
            db.add(call_log)
            db.commit()
            db.refresh(call_log)
            return call_log
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _filtered(self, query, flt: CallLogFilter):
        if flt.bot_id:
            query = query.filter(CallLog.bot_id == flt.bot_id)
        if flt.start_date:
            query = query.filter(CallLog.created_at >= flt.start_date)
        if flt.end_date:
            query = query.filter(CallLog.created_at <= flt.end_date)
        if flt.search:
            query = query.filter(CallLog.transcript.ilike(f"%{flt.search}%"))
        return query

    def list_call_logs(self, flt: CallLogFilter) -> List[CallLog]:
        """Call logs matching ``flt``, newest first, with ``bot`` loaded."""
        db = self.SessionLocal()
        try:
            logs = (
                self._filtered(db.query(CallLog), flt)
                .order_by(CallLog.created_at.desc())
                .offset(max(flt.offset, 0))
                .limit(flt.limit)
                .all()
            )
            for log in logs:
                _ = log.bot  # load before the session closes
            return logs
        finally:
            db.close()

    def count_call_logs(self, flt: CallLogFilter) -> int:
        db = self.SessionLocal()
        try:
            return self._filtered(db.query(func.count(CallLog.id)), flt).scalar() or 0
        finally:
            db.close()
