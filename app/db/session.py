"""
資料庫 Engine 與 Session Factory
==========================================

連線池參數說明（PostgreSQL）：
- pool_size: 常駐連線數（預設 10，適合 4-worker uvicorn）
- max_overflow: 超額連線數（尖峰時最多 pool_size + max_overflow）
- pool_timeout: 等待連線的最大秒數
- pool_recycle: 連線回收週期（避免 PostgreSQL idle connection 被斷）
- pool_pre_ping: 使用前檢測連線是否存活

SQLite（本機開發 / 測試）不支援上述參數，改用單一共享連線。
"""

import logging
import time

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import settings

logger = logging.getLogger("branding.db")


def build_engine(url: str) -> Engine:
    """Create an engine for ``url`` with pool settings suited to its backend."""
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if url in ("sqlite://", "sqlite:///:memory:") else None,
            echo=settings.DB_ECHO,
        )
    else:
        engine = create_engine(
            url,
            pool_pre_ping=True,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            echo=settings.DB_ECHO,
        )
    _install_slow_query_listeners(engine)
    return engine


# ---------------------------------------------------------------------------
# Slow Query 監控
# ---------------------------------------------------------------------------
def _install_slow_query_listeners(engine: Engine) -> None:
    threshold_ms = settings.SLOW_QUERY_THRESHOLD_MS

    @event.listens_for(engine, "before_cursor_execute")
    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        total_ms = (time.perf_counter() - conn.info["query_start_time"].pop()) * 1000

        if total_ms >= threshold_ms:
            # 截斷過長的 SQL 避免日誌爆量
            stmt_preview = statement[:500] + "..." if len(statement) > 500 else statement
            logger.warning(
                "Slow query detected (%.1fms): %s",
                total_ms,
                stmt_preview,
                extra={"duration_ms": round(total_ms, 2), "threshold_ms": threshold_ms},
            )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


engine = build_engine(settings.sqlalchemy_database_uri)

SessionLocal = build_session_factory(engine)
