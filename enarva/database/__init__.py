"""
数据库层：模型、Schema 与引擎
"""
from enarva.database.engine import Database

__all__ = ["Database"]
