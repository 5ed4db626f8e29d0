"""
尽力而为的副作用（审计日志、实时广播、推送通知）

这些调用的失败只记录日志，绝不让主操作失败。
"""
import logging
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)


@contextmanager
def best_effort(label: str) -> Iterator[None]:
    """
    执行代码块，捕获并记录其中的任何异常

    Example:
        with best_effort("pusher trigger"):
            broadcaster.publish(...)
    """
    try:
        yield
    except Exception:
        logger.warning("Best-effort side effect failed: %s", label, exc_info=True)
