"""
Web Push 推送通知（VAPID）

未配置 VAPID 密钥时完全跳过；发送失败只记录日志。
"""
import json
import logging
from typing import Any, Dict, Optional

from pywebpush import WebPushException, webpush

from enarva.utils.side_effects import best_effort

logger = logging.getLogger(__name__)


class PushNotifier:
    """向用户保存的 push_subscription 发送通知"""

    def __init__(
        self,
        public_key: Optional[str] = None,
        private_key: Optional[str] = None,
        subject: str = "mailto:contact@enarva.com",
    ):
        self.public_key = public_key
        self.private_key = private_key
        self.subject = subject

    @property
    def enabled(self) -> bool:
        return bool(self.public_key and self.private_key)

    def send(self, subscription: Optional[Dict[str, Any]], title: str, body: str, **extra: Any) -> bool:
        """
        向单个订阅发送通知

        Returns:
            是否发送成功（未启用或无订阅时返回 False）
        """
        if not self.enabled or not subscription:
            return False

        payload = {"title": title, "body": body, **extra}
        with best_effort(f"web push '{title}'"):
            try:
                webpush(
                    subscription_info=subscription,
                    data=json.dumps(payload),
                    vapid_private_key=self.private_key,
                    vapid_claims={"sub": self.subject},
                )
            except WebPushException as e:
                status = getattr(e.response, "status_code", None)
                logger.warning("Push rejected by provider (status=%s): %s", status, e)
                return False
            return True
        return False
