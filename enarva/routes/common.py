"""
路由公共工具：当前用户、服务容器、请求体解析与统一错误处理
"""
import logging
from typing import Any, Optional, Type

from flask import Flask, current_app, jsonify, request, session
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from enarva.database.models import User
from enarva.utils.errors import EnarvaError, InternalError, Unauthorized, ValidationError
from enarva.utils.permissions import Actor
from enarva.utils.validation_helpers import SchemaT, format_validation_error, parse_body

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"


def services():
    """当前应用的服务容器（见 enarva.app.Services）"""
    return current_app.extensions["enarva"]


def current_actor() -> Actor:
    """
    从签名会话中解析当前用户

    Raises:
        Unauthorized: 无会话、用户不存在或已停用
    """
    user_id = session.get(SESSION_USER_KEY)
    if user_id is None:
        raise Unauthorized()
    with services().db.session_scope() as db_session:
        user = db_session.get(User, user_id)
        if user is None or not user.is_active:
            raise Unauthorized()
        return Actor(id=user.id, role=user.role, name=user.name)


def json_body(schema: Type[SchemaT]) -> SchemaT:
    """把请求JSON解析为 Schema 实例"""
    return parse_body(schema, request.get_json(silent=True))


def int_arg(name: str, default: Optional[int] = None) -> Optional[int]:
    """读取整数查询参数，格式错误时返回400"""
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Query parameter '{name}' must be an integer")


def enum_arg(name: str, enum_cls: Type[Any]) -> Optional[Any]:
    """读取枚举查询参数，非法值返回400"""
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return enum_cls(raw)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Query parameter '{name}' must be one of: {allowed}")


def register_error_handlers(app: Flask) -> None:
    """所有失败都返回 JSON 错误体与对应状态码"""

    @app.errorhandler(EnarvaError)
    def handle_enarva_error(error: EnarvaError):
        if error.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(PydanticValidationError)
    def handle_pydantic_error(error: PydanticValidationError):
        body = ValidationError("Validation failed", details=format_validation_error(error))
        return jsonify(body.to_dict()), body.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        return jsonify({"error": error.description or error.name}), error.code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.path)
        return jsonify(InternalError().to_dict()), InternalError.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.exception("Unexpected error on %s %s", request.method, request.path)
        return jsonify(InternalError().to_dict()), InternalError.status_code
