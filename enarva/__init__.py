"""
Enarva 运营后台：任务生命周期、质检与活动审计
"""
__version__ = "0.1.0"
