"""
应用配置

每个配置项优先读取 ENARVA_<NAME> 环境变量，其次读取 <NAME>。
"""
import logging
import os

from enarva.database.config import DATABASE_URL


def _env(name: str, default=None):
    return os.getenv(f"ENARVA_{name}", os.getenv(name, default))


class Config:
    """默认（生产）配置"""
    SECRET_KEY = _env("SECRET_KEY", "change-this-secret-in-production")
    DATABASE_URL = _env("DATABASE_URL", DATABASE_URL)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _env("COOKIE_SECURE", "0") == "1"

    # 活动日志保留天数
    ACTIVITY_RETENTION_DAYS = int(_env("ACTIVITY_RETENTION_DAYS", "30"))

    # 实时广播（Pusher）
    PUSHER_APP_ID = _env("PUSHER_APP_ID")
    PUSHER_KEY = _env("PUSHER_KEY")
    PUSHER_SECRET = _env("PUSHER_SECRET")
    PUSHER_CLUSTER = _env("PUSHER_CLUSTER")
    BROADCAST_TIMEOUT = int(_env("BROADCAST_TIMEOUT", "5"))

    # Web Push（VAPID）
    VAPID_PUBLIC_KEY = _env("VAPID_PUBLIC_KEY")
    VAPID_PRIVATE_KEY = _env("VAPID_PRIVATE_KEY")
    VAPID_SUBJECT = _env("VAPID_SUBJECT", "mailto:contact@enarva.com")

    LOG_LEVEL = _env("LOG_LEVEL", "INFO")


class TestingConfig(Config):
    """测试配置：内存数据库，关闭所有外部服务"""
    TESTING = True
    SECRET_KEY = "testing"
    DATABASE_URL = "sqlite://"
    PUSHER_APP_ID = None
    PUSHER_KEY = None
    PUSHER_SECRET = None
    PUSHER_CLUSTER = None
    VAPID_PUBLIC_KEY = None
    VAPID_PRIVATE_KEY = None
    LOG_LEVEL = "DEBUG"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """为 enarva 日志器安装唯一的控制台处理器（可重复调用）"""
    logger = logging.getLogger("enarva")
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger
