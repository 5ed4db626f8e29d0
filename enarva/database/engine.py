"""
数据库引擎和会话管理

引擎不再在模块级创建：由进程入口（create_app / 测试夹具）显式构造
Database 实例并负责其生命周期。
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from enarva.database.config import DATABASE_URL, SQLALCHEMY_CONFIG
from enarva.database.models.base import Base

logger = logging.getLogger(__name__)


def _sqlite_on_connect(dbapi_conn, connection_record):
    """为SQLite启用外键约束，并交由SQLAlchemy管理事务（SAVEPOINT依赖此设置）"""
    dbapi_conn.isolation_level = None
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _sqlite_on_begin(conn):
    # 事务开始即取写锁，并发写者按 busy timeout 排队，后提交者覆盖先提交者
    conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """
    数据库句柄：引擎 + 会话工厂

    Example:
        db = Database("sqlite:///enarva.db")
        db.create_all()
        with db.session_scope() as session:
            session.query(Mission).all()
        db.dispose()
    """

    def __init__(self, url: Optional[str] = None, **options: Any):
        self.url = url or DATABASE_URL
        config: Dict[str, Any] = dict(SQLALCHEMY_CONFIG)
        config.update(options)

        is_sqlite = self.url.startswith("sqlite")
        if is_sqlite:
            config.setdefault("connect_args", {"check_same_thread": False})
            if ":memory:" in self.url or self.url == "sqlite://":
                config.setdefault("poolclass", StaticPool)

        self.engine = create_engine(self.url, **config)

        if is_sqlite:
            event.listen(self.engine, "connect", _sqlite_on_connect)
            event.listen(self.engine, "begin", _sqlite_on_begin)

        # 创建会话工厂
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine
        )

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        获取数据库会话的上下文管理器，一个上下文即一个事务

        Example:
            with db.session_scope() as session:
                mission = session.get(Mission, 1)
                mission.status = MissionStatus.IN_PROGRESS
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_all(self) -> None:
        """创建所有表"""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database initialised: %s", self.engine.url.render_as_string(hide_password=True))

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        """关闭数据库连接"""
        self.engine.dispose()

    def check_connection(self) -> bool:
        """
        检查数据库连接是否正常

        Returns:
            bool: 连接正常返回True，否则返回False
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning("Database connection check failed: %s", e)
            return False
