"""
实时事件广播（Pusher）

发布在主事务提交之后进行，失败只记录日志，不回滚也不重试。
未配置凭据时使用 NullBroadcaster。
"""
import logging
from typing import Any, Dict

import pusher

from enarva.utils.side_effects import best_effort

logger = logging.getLogger(__name__)

MISSIONS_CHANNEL = "missions-channel"


def user_channel(user_id: int) -> str:
    """单个用户的私有频道名"""
    return f"user-{user_id}"


class NullBroadcaster:
    """未配置广播服务时的空实现"""

    def publish(self, channel: str, event: str, data: Dict[str, Any]) -> bool:
        logger.debug("Broadcast disabled, dropping %s/%s", channel, event)
        return False


class PusherBroadcaster:
    """
    通过 Pusher 服务端 SDK 触发事件

    Example:
        client = pusher.Pusher(app_id="123", key="key", secret="secret", cluster="eu")
        PusherBroadcaster(client).publish("missions-channel", "task-updated", {"taskId": 1})
    """

    def __init__(self, client: pusher.Pusher):
        self.client = client

    def publish(self, channel: str, event: str, data: Dict[str, Any]) -> bool:
        """
        发布事件（尽力而为）

        Returns:
            是否发布成功
        """
        with best_effort(f"broadcast {channel}/{event}"):
            self.client.trigger(channel, event, data)
            logger.info("Broadcast %s on %s", event, channel)
            return True
        return False


def build_broadcaster(config: Dict[str, Any]):
    """根据配置构造广播器；缺少任一凭据时返回 NullBroadcaster"""
    app_id = config.get("PUSHER_APP_ID")
    key = config.get("PUSHER_KEY")
    secret = config.get("PUSHER_SECRET")
    cluster = config.get("PUSHER_CLUSTER")
    if not (app_id and key and secret and cluster):
        return NullBroadcaster()
    client = pusher.Pusher(
        app_id=str(app_id),
        key=key,
        secret=secret,
        cluster=cluster,
        ssl=True,
        timeout=int(config.get("BROADCAST_TIMEOUT", 5)),
    )
    return PusherBroadcaster(client)
