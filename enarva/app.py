"""
Enarva 运营后台 - Flask 应用工厂

create_app() 负责构造数据库、活动日志、广播/推送与三个工作流服务，
并注册 HTTP 蓝图、错误处理器和命令行指令。
"""
import logging
from dataclasses import dataclass
from typing import Optional

import click
from flask import Flask, jsonify

from enarva import __version__
from enarva.config import Config, configure_logging
from enarva.database import Database
from enarva.routes import register_routes
from enarva.utils.activity_logger import ActivityLogger
from enarva.utils.broadcaster import build_broadcaster
from enarva.utils.mission_workflow import MissionWorkflow
from enarva.utils.push_notifier import PushNotifier
from enarva.utils.quality_gate import QualityGate
from enarva.utils.task_tracker import TaskTracker

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """单个应用实例持有的全部服务"""
    db: Database
    activity_logger: ActivityLogger
    missions: MissionWorkflow
    tasks: TaskTracker
    quality: QualityGate


def build_services(app: Flask, db: Database) -> Services:
    config = app.config
    activity_logger = ActivityLogger(db, retention_days=int(config["ACTIVITY_RETENTION_DAYS"]))
    broadcaster = build_broadcaster(config)
    notifier = PushNotifier(
        public_key=config.get("VAPID_PUBLIC_KEY"),
        private_key=config.get("VAPID_PRIVATE_KEY"),
        subject=config.get("VAPID_SUBJECT"),
    )
    if not notifier.enabled:
        logger.info("VAPID keys not configured, web push disabled")

    return Services(
        db=db,
        activity_logger=activity_logger,
        missions=MissionWorkflow(db, activity_logger, broadcaster, notifier),
        tasks=TaskTracker(db, activity_logger, broadcaster, notifier),
        quality=QualityGate(db, activity_logger, broadcaster),
    )


def register_commands(app: Flask) -> None:
    """flask 命令行：建表与清理活动日志"""

    @app.cli.command("init-db")
    def init_db_command():
        """创建所有数据表"""
        app.extensions["enarva"].db.create_all()
        click.echo("Database initialised.")

    @app.cli.command("purge-activities")
    @click.option("--days", type=int, default=None, help="保留天数（默认取 ACTIVITY_RETENTION_DAYS）")
    def purge_activities_command(days: Optional[int]):
        """删除超过保留期的活动记录"""
        deleted = app.extensions["enarva"].activity_logger.purge_expired(days)
        click.echo(f"Deleted {deleted} activities.")


def create_app(config_object=Config, db: Optional[Database] = None) -> Flask:
    """
    创建 Flask 应用

    Args:
        config_object: 配置类或对象
        db: 已构造的数据库句柄；为空时按 DATABASE_URL 新建

    Returns:
        Flask 应用，服务容器位于 app.extensions["enarva"]
    """
    app = Flask(__name__)
    app.config.from_object(config_object)
    configure_logging(app.config["LOG_LEVEL"])

    if db is None:
        db = Database(app.config["DATABASE_URL"])
    app.extensions["enarva"] = build_services(app, db)

    register_routes(app)
    register_commands(app)

    @app.route("/healthz")
    def healthz():
        """健康检查"""
        ok = app.extensions["enarva"].db.check_connection()
        body = {"status": "ok" if ok else "degraded", "database": ok, "version": __version__}
        return jsonify(body), 200 if ok else 503

    logger.info("Enarva app created (db=%s)", db.engine.url.render_as_string(hide_password=True))
    return app
