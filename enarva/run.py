#!/usr/bin/env python
"""
启动脚本 - Enarva 运营后台
"""
import logging
import os
import sys

from enarva.app import create_app

logger = logging.getLogger("enarva.run")


def main():
    app = create_app()
    services = app.extensions["enarva"]
    services.db.create_all()

    host = os.getenv("ENARVA_HOST", "0.0.0.0")
    port = int(os.getenv("ENARVA_PORT", "8050"))
    debug = os.getenv("ENARVA_DEBUG", "0") == "1"

    print("=" * 60)
    print("Enarva 运营后台")
    print("=" * 60)
    print("\n启动信息:")
    print(f"  - 访问地址: http://localhost:{port}")
    print(f"  - 调试模式: {'已开启' if debug else '已关闭'}")
    print(f"  - Python版本: {sys.version.split()[0]}")
    print("\n按 Ctrl+C 停止服务器")
    print("=" * 60)
    print()

    try:
        app.run(debug=debug, host=host, port=port)
    finally:
        services.db.dispose()
        logger.info("Database connections closed")


if __name__ == '__main__':
    main()
