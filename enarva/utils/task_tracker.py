"""
子任务状态跟踪与分配

状态迁移受权限约束而不受状态约束；自动副作用只有：
- 首次进入 COMPLETED 时写入 completed_at（未填实际耗时则取预计耗时）
- ASSIGNED → IN_PROGRESS 时写入 started_at
- 任务处于 IN_PROGRESS 且全部子任务完成时，把任务推进到 QUALITY_CHECK
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from enarva.database.engine import Database
from enarva.database.models import (
    ActivityType, DONE_STATUSES, Mission, MissionStatus, Task, TaskStatus, TeamMember, utcnow
)
from enarva.utils.activity_logger import ActivityLogger
from enarva.utils.broadcaster import MISSIONS_CHANNEL, NullBroadcaster, user_channel
from enarva.utils.errors import NotFound
from enarva.utils.permissions import Actor, Capability, require
from enarva.utils.push_notifier import PushNotifier

logger = logging.getLogger(__name__)

# 子任务完成时允许被自动推进到质检的任务状态
ADVANCEABLE_STATUSES = (MissionStatus.IN_PROGRESS,)


def get_task(session: Session, task_id: int) -> Task:
    task = session.get(Task, task_id)
    if task is None:
        raise NotFound(f"Task {task_id} not found")
    return task


def task_payload(task: Task) -> Dict[str, Any]:
    """子任务响应：自身字段 + 所属任务摘要"""
    data = task.to_dict()
    mission = task.mission
    data["mission"] = {
        "id": mission.id,
        "missionNumber": mission.mission_number,
        "status": mission.status.value,
        "address": mission.address,
    }
    return data


def member_payload(member: Optional[TeamMember]) -> Optional[Dict[str, Any]]:
    """负责人：团队成员记录 + 用户摘要"""
    if member is None:
        return None
    data = member.to_dict()
    user = member.user
    data["user"] = {"id": user.id, "name": user.name, "email": user.email}
    return data


class TaskTracker:
    """子任务状态、分配与耗时"""

    def __init__(
        self,
        db: Database,
        activity_logger: ActivityLogger,
        broadcaster=None,
        notifier: Optional[PushNotifier] = None,
    ):
        self.db = db
        self.activity_logger = activity_logger
        self.broadcaster = broadcaster or NullBroadcaster()
        self.notifier = notifier or PushNotifier()

    def get(self, task_id: int) -> Dict[str, Any]:
        with self.db.session_scope() as session:
            task = get_task(session, task_id)
            result = task_payload(task)
            result["assignedTo"] = member_payload(task.assigned_to)
            return result

    def advance_mission_if_done(self, session: Session, mission: Mission, now: datetime, actor: Actor) -> bool:
        """
        全部子任务完成（COMPLETED / VALIDATED）时把任务推进到 QUALITY_CHECK

        Returns:
            是否发生了推进
        """
        tasks = mission.tasks
        if not tasks or mission.status not in ADVANCEABLE_STATUSES:
            return False
        if not all(task.status in DONE_STATUSES for task in tasks):
            return False

        previous = mission.status
        mission.status = MissionStatus.QUALITY_CHECK
        mission.actual_end_time = now
        self.activity_logger.record(
            session,
            ActivityType.MISSION_STATUS_UPDATED,
            f"Mission status updated: {MissionStatus.QUALITY_CHECK.value}",
            f"Mission {mission.mission_number} - all tasks completed, moved to quality check",
            actor.id,
            lead_id=mission.lead_id,
            mission_id=mission.id,
            metadata={"oldStatus": previous.value, "newStatus": MissionStatus.QUALITY_CHECK.value},
        )
        logger.info("Mission %s: all tasks completed, moved to QUALITY_CHECK", mission.mission_number)
        return True

    def update_status(self, task_id: int, status: TaskStatus, actor: Actor) -> Dict[str, Any]:
        """
        更新子任务状态

        Raises:
            NotFound: 子任务不存在
            Forbidden: 非 ADMIN/MANAGER、队长、负责人或团队成员
        """
        with self.db.session_scope() as session:
            task = get_task(session, task_id)
            mission = task.mission
            require(actor, Capability.UPDATE_TASK, mission, task)

            now = utcnow()
            previous = task.status
            if status == TaskStatus.IN_PROGRESS and previous == TaskStatus.ASSIGNED:
                task.started_at = now
            if status == TaskStatus.COMPLETED and previous != TaskStatus.COMPLETED:
                task.completed_at = now
                if not task.actual_time and task.estimated_time:
                    task.actual_time = task.estimated_time
            task.status = status

            self.activity_logger.record(
                session,
                ActivityType.TASK_STATUS_UPDATED,
                "Task status updated",
                f'Task "{task.title}" updated to {status.value}',
                actor.id,
                lead_id=mission.lead_id,
                mission_id=mission.id,
                metadata={
                    "taskId": task.id,
                    "oldStatus": previous.value,
                    "newStatus": status.value,
                    "missionId": mission.id,
                },
            )

            advanced = False
            if status == TaskStatus.COMPLETED:
                advanced = self.advance_mission_if_done(session, mission, now, actor)

            result = task_payload(task)
            assignee_user_id = task.assigned_to.user_id if task.assigned_to else None

        logger.info("Task %s status %s -> %s by user %s", task_id, previous.value, status.value, actor.id)
        self.broadcaster.publish(MISSIONS_CHANNEL, "task-updated", {
            "taskId": result["id"],
            "missionId": result["missionId"],
            "status": result["status"],
            "assignedTo": assignee_user_id,
            "missionAdvanced": advanced,
            "updatedAt": result["updatedAt"],
        })
        return result

    def assign(self, task_id: int, member_id: int, actor: Actor) -> Dict[str, Any]:
        """
        重新分配子任务负责人（不改变状态）

        Raises:
            NotFound: 子任务或团队成员不存在
            Forbidden: 无分配权限
        """
        with self.db.session_scope() as session:
            task = get_task(session, task_id)
            member = session.get(TeamMember, member_id)
            if member is None:
                raise NotFound(f"Team member {member_id} not found")
            mission = task.mission
            require(actor, Capability.ASSIGN_TASK, mission, task)

            previous_member_id = task.assigned_to_id
            task.assigned_to = member

            self.activity_logger.record(
                session,
                ActivityType.TASK_ASSIGNED,
                "Task reassigned",
                f'Task "{task.title}" assigned to {member.user.name}',
                actor.id,
                lead_id=mission.lead_id,
                mission_id=mission.id,
                metadata={
                    "taskId": task.id,
                    "previousMemberId": previous_member_id,
                    "memberId": member.id,
                },
            )
            result = task_payload(task)
            member_user_id = member.user_id
            member_subscription = member.user.push_subscription

        logger.info("Task %s assigned to member %s by user %s", task_id, member_id, actor.id)
        self.broadcaster.publish(user_channel(member_user_id), "task-assigned", {
            "taskId": result["id"],
            "missionId": result["missionId"],
            "missionNumber": result["mission"]["missionNumber"],
            "title": result["title"],
        })
        self.notifier.send(
            member_subscription,
            "New task assigned",
            f'{result["title"]} ({result["mission"]["missionNumber"]})',
            taskId=result["id"],
        )
        return result

    def update_time(
        self,
        task_id: int,
        estimated_time: int,
        actual_time: Optional[int],
        actor: Actor
    ) -> Dict[str, Any]:
        """更新预计/实际耗时（分钟），仅 ADMIN/MANAGER 与队长可操作"""
        with self.db.session_scope() as session:
            task = get_task(session, task_id)
            mission = task.mission
            require(actor, Capability.UPDATE_TASK_TIME, mission, task)

            previous_estimate = task.estimated_time
            task.estimated_time = estimated_time
            task.actual_time = actual_time

            self.activity_logger.record(
                session,
                ActivityType.TASK_TIME_UPDATED,
                "Task time updated",
                f'Estimated time of task "{task.title}" set to {estimated_time} minutes',
                actor.id,
                lead_id=mission.lead_id,
                mission_id=mission.id,
                metadata={
                    "taskId": task.id,
                    "oldEstimatedTime": previous_estimate,
                    "newEstimatedTime": estimated_time,
                    "actualTime": actual_time,
                },
            )
            result = task_payload(task)

        self.broadcaster.publish(MISSIONS_CHANNEL, "task-updated", {
            "taskId": result["id"],
            "missionId": result["missionId"],
            "estimatedTime": estimated_time,
            "action": "time-update",
        })
        return result
