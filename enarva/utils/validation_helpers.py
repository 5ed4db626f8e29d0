"""
Pydantic 验证错误处理工具

提供友好的错误消息格式化，以及请求体解析为 Schema 的辅助函数。
"""
from typing import Any, Dict, List, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from enarva.utils.errors import ValidationError

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def format_validation_error(error: PydanticValidationError) -> List[Dict[str, Any]]:
    """
    格式化 Pydantic 验证错误为用户友好的消息列表

    Args:
        error: Pydantic ValidationError 对象

    Returns:
        格式化的错误消息列表，每个错误包含 field、message 和 type

    Example:
        >>> from enarva.database.schemas import TaskStatusUpdate
        >>> try:
        ...     TaskStatusUpdate(status="DONE")
        ... except PydanticValidationError as e:
        ...     errors = format_validation_error(e)
        ...     # [{'field': 'status', 'message': "Value must be one of: 'ASSIGNED', ...", 'type': 'enum'}]
    """
    formatted_errors = []

    for err in error.errors():
        field_path = ".".join(str(loc) for loc in err['loc'])
        error_type = err['type']
        error_msg = err['msg']
        ctx = err.get('ctx', {})

        if error_type == 'string_too_short':
            message = "Field must not be empty"
        elif error_type == 'string_too_long':
            message = f"Field must be at most {ctx.get('max_length', '?')} characters"
        elif error_type == 'greater_than_equal':
            message = f"Value must be greater than or equal to {ctx.get('ge', '?')}"
        elif error_type == 'less_than_equal':
            message = f"Value must be less than or equal to {ctx.get('le', '?')}"
        elif error_type == 'enum':
            message = f"Value must be one of: {ctx.get('expected', '?')}"
        elif error_type == 'value_error':
            # 自定义验证错误
            message = error_msg.replace('Value error, ', '')
        elif error_type == 'missing':
            message = "This field is required"
        else:
            # 其他错误，使用原始消息
            message = error_msg

        formatted_errors.append({
            'field': field_path,
            'message': message,
            'type': error_type
        })

    return formatted_errors


def parse_body(schema: Type[SchemaT], body: Any) -> SchemaT:
    """
    将请求体解析为指定 Schema，失败时抛出 ValidationError（400）

    Args:
        schema: Pydantic Schema 类
        body: 已解码的JSON请求体

    Returns:
        Schema 实例
    """
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return schema.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError("Validation failed", details=format_validation_error(e)) from e
