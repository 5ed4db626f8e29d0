"""
任务（Mission）状态机

SCHEDULED → IN_PROGRESS → QUALITY_CHECK → COMPLETED

- start(): 仅允许从 SCHEDULED 启动，同时把 ASSIGNED 子任务推进为 IN_PROGRESS
- set_status(): 管理性覆盖，任意状态可到任意状态；请求 IN_PROGRESS 且全部子任务
  已 VALIDATED 时自动改为 QUALITY_CHECK
- validate(): 管理员验收（通过 → COMPLETED，驳回 → 返工或保持质检）

子任务全部完成时的自动推进见 task_tracker.advance_mission_if_done()，两条触发路径并存。
并发的状态更新以最后提交者为准，不做冲突检测。
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from enarva.database.engine import Database
from enarva.database.models import (
    ActivityType, Lead, Mission, MissionStatus, Task, TaskStatus, Team, TeamMember, User, UserRole, utcnow
)
from enarva.database.schemas import MissionCreate, MissionValidation
from enarva.utils.activity_logger import ActivityLogger
from enarva.utils.broadcaster import MISSIONS_CHANNEL, NullBroadcaster, user_channel
from enarva.utils.errors import InvalidState, NotFound
from enarva.utils.permissions import Actor, Capability, require
from enarva.utils.push_notifier import PushNotifier
from enarva.utils.task_tracker import member_payload

logger = logging.getLogger(__name__)

# 可进入管理员验收的状态
VALIDATABLE_STATUSES = (MissionStatus.QUALITY_CHECK, MissionStatus.CLIENT_VALIDATION)

# 现场端可见的任务状态
FIELD_STATUSES = (
    MissionStatus.SCHEDULED,
    MissionStatus.IN_PROGRESS,
    MissionStatus.QUALITY_CHECK,
    MissionStatus.COMPLETED,
)
# 计划日期已过仍保留在现场清单中的状态
FIELD_ACTIVE_STATUSES = (MissionStatus.IN_PROGRESS, MissionStatus.QUALITY_CHECK)


def resolve_effective_status(requested: MissionStatus, tasks: Iterable[Task]) -> MissionStatus:
    """
    计算 set_status 实际生效的状态

    请求 IN_PROGRESS 且至少有一个子任务、全部子任务都已 VALIDATED 时，
    改为 QUALITY_CHECK；其余情况原样返回。
    """
    tasks = list(tasks)
    if requested == MissionStatus.IN_PROGRESS and tasks:
        if all(task.status == TaskStatus.VALIDATED for task in tasks):
            return MissionStatus.QUALITY_CHECK
    return requested


def get_mission(session: Session, mission_id: int) -> Mission:
    mission = session.get(Mission, mission_id)
    if mission is None:
        raise NotFound(f"Mission {mission_id} not found")
    return mission


def field_scope_filter(actor: Actor):
    """
    现场清单的角色范围

    - TEAM_LEADER: 自己带队的任务
    - TECHNICIAN: 有子任务分配给自己，或自己是执行团队的在职成员
    - 其他角色: 不限制（返回 None）
    """
    if actor.role == UserRole.TEAM_LEADER:
        return Mission.team_leader_id == actor.id
    if actor.role == UserRole.TECHNICIAN:
        assigned = Mission.tasks.any(Task.assigned_to.has(TeamMember.user_id == actor.id))
        on_team = Mission.team.has(
            Team.members.any(and_(TeamMember.user_id == actor.id, TeamMember.is_active.is_(True)))
        )
        return or_(assigned, on_team)
    return None


class MissionWorkflow:
    """任务的排期、启动、状态变更与验收"""

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

    # ==================== 排期与查询 ====================

    def _next_mission_number(self, session: Session, now: datetime) -> str:
        """按天递增的任务编号：M<YYYYMMDD>-<NNN>"""
        prefix = f"M{now:%Y%m%d}-"
        count = session.execute(
            select(func.count(Mission.id)).where(Mission.mission_number.like(f"{prefix}%"))
        ).scalar_one()
        return f"{prefix}{count + 1:03d}"

    def schedule(self, data: MissionCreate, actor: Actor) -> Dict[str, Any]:
        """
        手动排期一个任务及其子任务

        Raises:
            Forbidden: 非 ADMIN/MANAGER
            NotFound: 线索、队长、团队或指定的团队成员不存在
        """
        require(actor, Capability.SCHEDULE_MISSION)

        with self.db.session_scope() as session:
            lead = session.get(Lead, data.lead_id)
            if lead is None:
                raise NotFound(f"Lead {data.lead_id} not found")

            team_leader = None
            if data.team_leader_id is not None:
                team_leader = session.get(User, data.team_leader_id)
                if team_leader is None:
                    raise NotFound(f"Team leader {data.team_leader_id} not found")
            if data.team_id is not None and session.get(Team, data.team_id) is None:
                raise NotFound(f"Team {data.team_id} not found")

            now = utcnow()
            mission = Mission(
                mission_number=self._next_mission_number(session, now),
                status=MissionStatus.SCHEDULED,
                priority=data.priority,
                type=data.type,
                scheduled_date=data.scheduled_date,
                estimated_duration=data.estimated_duration,
                address=data.address,
                admin_notes=data.admin_notes,
                lead_id=lead.id,
                team_leader_id=data.team_leader_id,
                team_id=data.team_id,
            )
            for item in data.tasks:
                if item.assigned_to_id is not None and session.get(TeamMember, item.assigned_to_id) is None:
                    raise NotFound(f"Team member {item.assigned_to_id} not found")
                mission.tasks.append(Task(
                    title=item.title,
                    description=item.description,
                    category=item.category,
                    estimated_time=item.estimated_time,
                    assigned_to_id=item.assigned_to_id,
                    status=TaskStatus.ASSIGNED,
                ))
            session.add(mission)
            session.flush()

            self.activity_logger.record(
                session,
                ActivityType.MISSION_SCHEDULED,
                "Mission scheduled",
                f"Mission {mission.mission_number} scheduled for {lead.full_name}",
                actor.id,
                lead_id=lead.id,
                mission_id=mission.id,
                metadata={
                    "missionNumber": mission.mission_number,
                    "scheduledDate": mission.scheduled_date.isoformat(),
                    "taskCount": len(mission.tasks),
                },
            )
            result = mission.to_dict(include_children=True)
            leader_subscription = team_leader.push_subscription if team_leader else None

        logger.info("Mission %s scheduled by user %s", result["missionNumber"], actor.id)
        self.broadcaster.publish(MISSIONS_CHANNEL, "mission-created", {
            "missionId": result["id"],
            "missionNumber": result["missionNumber"],
            "teamLeaderId": result["teamLeaderId"],
            "scheduledDate": result["scheduledDate"],
        })
        self.notifier.send(
            leader_subscription,
            "New mission assigned",
            f"Mission {result['missionNumber']} scheduled on {result['scheduledDate']}",
            missionId=result["id"],
        )
        return result

    def get(self, mission_id: int) -> Dict[str, Any]:
        with self.db.session_scope() as session:
            mission = get_mission(session, mission_id)
            result = mission.to_dict(include_children=True)
            result["lead"] = mission.lead.to_dict() if mission.lead else None
            return result

    def list_missions(self) -> List[Dict[str, Any]]:
        """全部任务（含线索与子任务），计划日期从晚到早"""
        stmt = select(Mission).order_by(Mission.scheduled_date.desc())
        with self.db.session_scope() as session:
            results = []
            for mission in session.execute(stmt).scalars():
                data = mission.to_dict()
                data["lead"] = mission.lead.to_dict() if mission.lead else None
                data["tasks"] = [task.to_dict() for task in mission.tasks]
                results.append(data)
            return results

    def field_missions(self, actor: Actor, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        现场端任务清单

        按角色限定范围，只含 FIELD_STATUSES；计划日期早于今天零点的任务
        仅在 IN_PROGRESS / QUALITY_CHECK 时保留。按计划日期升序、创建时间降序排列。
        """
        midnight = (now or utcnow()).replace(hour=0, minute=0, second=0, microsecond=0)
        stmt = select(Mission).where(
            Mission.status.in_(FIELD_STATUSES),
            or_(Mission.scheduled_date >= midnight, Mission.status.in_(FIELD_ACTIVE_STATUSES)),
        )
        scope = field_scope_filter(actor)
        if scope is not None:
            stmt = stmt.where(scope)
        stmt = stmt.order_by(Mission.scheduled_date.asc(), Mission.created_at.desc())

        with self.db.session_scope() as session:
            results = []
            for mission in session.execute(stmt).scalars():
                data = mission.to_dict()
                data["lead"] = mission.lead.to_dict() if mission.lead else None
                leader = mission.team_leader
                data["teamLeader"] = (
                    {"id": leader.id, "name": leader.name, "role": leader.role.value} if leader else None
                )
                tasks = []
                for task in mission.tasks:
                    item = task.to_dict()
                    item["assignedTo"] = member_payload(task.assigned_to)
                    tasks.append(item)
                data["tasks"] = tasks
                results.append(data)
        logger.debug("Field missions for user %s (%s): %d", actor.id, actor.role.value, len(results))
        return results

    # ==================== 状态迁移 ====================

    def start(self, mission_id: int, actor: Actor) -> Dict[str, Any]:
        """
        启动任务：SCHEDULED → IN_PROGRESS

        Raises:
            NotFound: 任务不存在
            Forbidden: 非 ADMIN/MANAGER、非队长且非团队成员
            InvalidState: 当前状态不是 SCHEDULED
        """
        with self.db.session_scope() as session:
            mission = get_mission(session, mission_id)
            require(actor, Capability.START_MISSION, mission)

            if mission.status != MissionStatus.SCHEDULED:
                raise InvalidState(
                    f"Mission cannot be started. Current status: {mission.status.value}"
                )

            now = utcnow()
            mission.status = MissionStatus.IN_PROGRESS
            mission.actual_start_time = now

            started = 0
            for task in mission.tasks:
                if task.status == TaskStatus.ASSIGNED:
                    task.status = TaskStatus.IN_PROGRESS
                    task.started_at = now
                    started += 1

            self.activity_logger.record(
                session,
                ActivityType.MISSION_STARTED,
                "Mission started",
                f"Mission {mission.mission_number} started",
                actor.id,
                lead_id=mission.lead_id,
                mission_id=mission.id,
                metadata={
                    "missionId": mission.id,
                    "startTime": now.isoformat(),
                    "tasksStarted": started,
                },
            )
            result = mission.to_dict(include_children=True)

        logger.info("Mission %s started by user %s (%d tasks started)", result["missionNumber"], actor.id, started)
        self.broadcaster.publish(MISSIONS_CHANNEL, "mission-started", {
            "missionId": result["id"],
            "missionNumber": result["missionNumber"],
            "status": result["status"],
            "startedBy": actor.id,
        })
        return result

    def set_status(
        self,
        mission_id: int,
        status: MissionStatus,
        notes: Optional[str],
        actor: Actor
    ) -> Dict[str, Any]:
        """
        通用状态更新（管理性覆盖，不受迁移表约束）

        - 请求 IN_PROGRESS 且全部子任务已 VALIDATED 时改为 QUALITY_CHECK
        - 生效状态为 COMPLETED 时写入 actual_end_time，否则清空
        - notes 非空时覆盖 admin_notes
        """
        with self.db.session_scope() as session:
            mission = get_mission(session, mission_id)
            require(actor, Capability.UPDATE_MISSION_STATUS, mission)

            previous = mission.status
            effective = resolve_effective_status(status, mission.tasks)
            if effective != status:
                logger.info(
                    "Mission %s: all tasks validated, %s upgraded to %s",
                    mission.mission_number, status.value, effective.value
                )

            mission.status = effective
            mission.actual_end_time = utcnow() if effective == MissionStatus.COMPLETED else None
            if notes:
                mission.admin_notes = notes

            self.activity_logger.record(
                session,
                ActivityType.MISSION_STATUS_UPDATED,
                f"Mission status updated: {effective.value}",
                f"Mission {mission.mission_number} - new status: {effective.value}",
                actor.id,
                lead_id=mission.lead_id,
                mission_id=mission.id,
                metadata={
                    "oldStatus": previous.value,
                    "newStatus": effective.value,
                    "requestedStatus": status.value,
                },
            )
            result = mission.to_dict(include_children=True)

        logger.info("Mission %s status %s -> %s by user %s",
                    result["missionNumber"], previous.value, effective.value, actor.id)
        self.broadcaster.publish(MISSIONS_CHANNEL, "mission-updated", {
            "missionId": result["id"],
            "status": result["status"],
            "previousStatus": previous.value,
        })
        return result

    def validate(self, mission_id: int, data: MissionValidation, actor: Actor) -> Dict[str, Any]:
        """
        管理员验收

        通过：COMPLETED，线索状态置为 COMPLETED；
        驳回：需要返工时回到 IN_PROGRESS 并把子任务重置为 ASSIGNED，否则保持 QUALITY_CHECK。
        """
        with self.db.session_scope() as session:
            mission = get_mission(session, mission_id)
            require(actor, Capability.VALIDATE_MISSION, mission)

            if mission.status not in VALIDATABLE_STATUSES:
                raise InvalidState(
                    f"Mission not ready for validation. Current status: {mission.status.value}"
                )

            now = utcnow()
            mission.admin_validated = data.approved
            mission.admin_validated_by = actor.id
            mission.admin_validated_at = now
            mission.admin_notes = data.admin_notes
            mission.quality_score = data.quality_score

            if data.approved:
                mission.status = MissionStatus.COMPLETED
                mission.actual_end_time = mission.actual_end_time or now
                mission.correction_required = False
                if mission.lead is not None:
                    mission.lead.status = "COMPLETED"
                activity_type = ActivityType.MISSION_COMPLETED
                title = "Mission approved by administration"
                description = f"Mission {mission.mission_number} approved with score {data.quality_score}/5"
            else:
                mission.issues_found = data.issues_found
                mission.correction_required = data.correction_needed
                if data.correction_needed:
                    mission.status = MissionStatus.IN_PROGRESS
                    mission.actual_end_time = None
                    for task in mission.tasks:
                        task.status = TaskStatus.ASSIGNED
                else:
                    mission.status = MissionStatus.QUALITY_CHECK
                activity_type = ActivityType.QUALITY_ISSUE
                title = "Mission rejected by administration"
                description = f"Mission {mission.mission_number} rejected - {data.issues_found or 'no details'}"

            self.activity_logger.record(
                session,
                activity_type,
                title,
                description,
                actor.id,
                lead_id=mission.lead_id,
                mission_id=mission.id,
                metadata={
                    "approved": data.approved,
                    "qualityScore": data.quality_score,
                    "correctionNeeded": data.correction_needed,
                },
            )
            result = mission.to_dict(include_children=True)
            leader = mission.team_leader
            leader_id = leader.id if leader else None
            leader_subscription = leader.push_subscription if leader else None

        number = result["missionNumber"]
        if data.approved:
            message = f"Mission {number} approved"
        else:
            message = f"Mission {number} needs corrections: {data.issues_found or ''}".rstrip(": ")
        logger.info("Mission %s %s by user %s", number, "approved" if data.approved else "rejected", actor.id)

        if leader_id is not None:
            self.broadcaster.publish(user_channel(leader_id), "mission-validation", {
                "type": "mission_approved" if data.approved else "mission_rejected",
                "missionId": result["id"],
                "missionNumber": number,
                "message": message,
                "approved": data.approved,
                "issuesFound": data.issues_found,
                "correctionNeeded": data.correction_needed,
                "timestamp": utcnow().isoformat(),
            })
            self.notifier.send(leader_subscription, "Mission validation", message, missionId=result["id"])
        return result
