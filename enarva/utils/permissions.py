"""
权限判定：所有服务共用的单一能力检查函数

capabilities(actor, mission, task) 每次请求重新计算，不做缓存。
"""
import enum
import logging
from dataclasses import dataclass
from typing import FrozenSet, Optional

from enarva.database.models import Mission, Task, UserRole
from enarva.utils.errors import Forbidden

logger = logging.getLogger(__name__)


class Capability(enum.Enum):
    """可授予的操作能力"""
    SCHEDULE_MISSION = "schedule_mission"
    START_MISSION = "start_mission"
    UPDATE_MISSION_STATUS = "update_mission_status"
    VALIDATE_MISSION = "validate_mission"
    UPDATE_TASK = "update_task"
    ASSIGN_TASK = "assign_task"
    UPDATE_TASK_TIME = "update_task_time"
    MANAGE_QUALITY_CHECK = "manage_quality_check"
    PURGE_ACTIVITIES = "purge_activities"


ADMIN_ROLES = (UserRole.ADMIN, UserRole.MANAGER)

TEAM_LEADER_CAPABILITIES = frozenset({
    Capability.START_MISSION,
    Capability.UPDATE_MISSION_STATUS,
    Capability.UPDATE_TASK,
    Capability.ASSIGN_TASK,
    Capability.UPDATE_TASK_TIME,
    Capability.MANAGE_QUALITY_CHECK,
})

TEAM_MEMBER_CAPABILITIES = frozenset({
    Capability.START_MISSION,
    Capability.UPDATE_TASK,
    Capability.ASSIGN_TASK,
})

ASSIGNEE_CAPABILITIES = frozenset({
    Capability.UPDATE_TASK,
    Capability.ASSIGN_TASK,
})


@dataclass(frozen=True)
class Actor:
    """发起请求的已认证用户"""
    id: int
    role: UserRole
    name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def is_team_member(actor: Actor, mission: Mission) -> bool:
    """actor 是否为任务所属团队的在职成员"""
    if mission.team is None:
        return False
    return any(m.user_id == actor.id and m.is_active for m in mission.team.members)


def capabilities(
    actor: Actor,
    mission: Optional[Mission] = None,
    task: Optional[Task] = None
) -> FrozenSet[Capability]:
    """
    计算 actor 对给定任务/子任务可执行的操作集合

    Args:
        actor: 当前用户
        mission: 目标任务（为空时只计算基于角色的能力）
        task: 目标子任务（用于判断是否为负责人）

    Returns:
        能力集合
    """
    if actor.is_admin:
        return frozenset(Capability)

    granted = set()
    if mission is not None:
        if mission.team_leader_id == actor.id:
            granted |= TEAM_LEADER_CAPABILITIES
        if is_team_member(actor, mission):
            granted |= TEAM_MEMBER_CAPABILITIES
    if task is not None and task.assigned_to is not None and task.assigned_to.user_id == actor.id:
        granted |= ASSIGNEE_CAPABILITIES

    return frozenset(granted)


def require(
    actor: Actor,
    capability: Capability,
    mission: Optional[Mission] = None,
    task: Optional[Task] = None
) -> None:
    """actor 不具备 capability 时抛出 Forbidden"""
    if capability not in capabilities(actor, mission, task):
        logger.warning(
            "Permission denied: user=%s role=%s capability=%s mission=%s task=%s",
            actor.id, actor.role.value, capability.value,
            mission.id if mission is not None else None,
            task.id if task is not None else None,
        )
        raise Forbidden(f"Forbidden - missing permission: {capability.value}")
