"""
业务服务与通用工具
"""
