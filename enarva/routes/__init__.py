"""
HTTP 接口（Flask Blueprints）
"""
from flask import Flask

from enarva.routes import activities, missions, quality_checks, tasks
from enarva.routes.common import register_error_handlers


def register_routes(app: Flask) -> None:
    """注册所有蓝图与错误处理器"""
    for module in (missions, tasks, quality_checks, activities):
        app.register_blueprint(module.bp)
    register_error_handlers(app)
