"""
质检关卡

创建质检记录会把所属任务强制置为 QUALITY_CHECK（无论之前处于何种状态）；
质检被更新为 PASSED / FAILED 时写入 validated_by / validated_at。
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, case, or_, select

from enarva.database.engine import Database
from enarva.database.models import (
    ActivityType, DONE_STATUSES, Mission, MissionStatus, Priority,
    QualityCheck, QualityStatus, RESOLVED_STATUSES, Task, utcnow
)
from enarva.database.schemas import QualityCheckCreate, QualityCheckUpdate
from enarva.utils.activity_logger import ActivityLogger
from enarva.utils.broadcaster import MISSIONS_CHANNEL, NullBroadcaster
from enarva.utils.errors import NotFound
from enarva.utils.mission_workflow import get_mission
from enarva.utils.permissions import Actor, Capability, require

logger = logging.getLogger(__name__)

# 仍需处理的质检状态
OPEN_CHECK_STATUSES = (QualityStatus.PENDING, QualityStatus.NEEDS_CORRECTION)
ISSUE_STATUSES = (QualityStatus.FAILED, QualityStatus.NEEDS_CORRECTION)

PRIORITY_RANK = case(
    (Mission.priority == Priority.CRITICAL, 3),
    (Mission.priority == Priority.HIGH, 2),
    (Mission.priority == Priority.NORMAL, 1),
    else_=0,
)


def pending_quality_check_filter():
    """
    待质检工作清单的筛选条件（三者满足其一）：
    (a) 任务状态为 QUALITY_CHECK
    (b) 子任务全部完成，但还没有任何质检记录
    (c) 存在 PENDING / NEEDS_CORRECTION 的质检记录
    """
    in_quality_check = Mission.status == MissionStatus.QUALITY_CHECK
    all_tasks_done_unchecked = and_(
        Mission.tasks.any(),
        ~Mission.tasks.any(Task.status.notin_(DONE_STATUSES)),
        ~Mission.quality_checks.any(),
    )
    has_open_check = Mission.quality_checks.any(QualityCheck.status.in_(OPEN_CHECK_STATUSES))
    return or_(in_quality_check, all_tasks_done_unchecked, has_open_check)


def get_quality_check(session, check_id: int) -> QualityCheck:
    check = session.get(QualityCheck, check_id)
    if check is None:
        raise NotFound(f"Quality check {check_id} not found")
    return check


def check_payload(check: QualityCheck) -> Dict[str, Any]:
    data = check.to_dict()
    mission = check.mission
    data["mission"] = {
        "id": mission.id,
        "missionNumber": mission.mission_number,
        "status": mission.status.value,
        "leadId": mission.lead_id,
    }
    return data


class QualityGate:
    """质检记录的创建、更新与待办清单"""

    def __init__(self, db: Database, activity_logger: ActivityLogger, broadcaster=None):
        self.db = db
        self.activity_logger = activity_logger
        self.broadcaster = broadcaster or NullBroadcaster()

    def create(self, data: QualityCheckCreate, actor: Actor) -> Dict[str, Any]:
        """
        创建质检记录，并把任务置为 QUALITY_CHECK

        Raises:
            NotFound: 任务不存在
            Forbidden: 非 ADMIN/MANAGER 且非队长
        """
        with self.db.session_scope() as session:
            mission = get_mission(session, data.mission_id)
            require(actor, Capability.MANAGE_QUALITY_CHECK, mission)

            now = utcnow()
            check = QualityCheck(
                mission=mission,
                type=data.type,
                status=data.status,
                score=data.score,
                notes=data.notes,
                photos=data.photos,
                issues=data.issues,
                corrections=data.corrections,
                checked_by=actor.id,
                checked_at=now,
            )
            if data.status in RESOLVED_STATUSES:
                check.validated_by = actor.id
                check.validated_at = now

            previous = mission.status
            mission.status = MissionStatus.QUALITY_CHECK
            if previous == MissionStatus.COMPLETED:
                # 已完成的任务重新进入质检，结束时间随之作废
                mission.actual_end_time = None
            session.add(check)
            session.flush()

            self.activity_logger.record(
                session,
                ActivityType.QUALITY_CHECK_CREATED,
                "Quality check created",
                f"{data.type.value} quality check for mission {mission.mission_number}: {data.status.value}",
                actor.id,
                lead_id=mission.lead_id,
                mission_id=mission.id,
                metadata={
                    "qualityCheckId": check.id,
                    "status": data.status.value,
                    "previousMissionStatus": previous.value,
                },
            )
            result = check_payload(check)

        logger.info("Quality check %s created for mission %s (was %s)",
                    result["id"], result["missionId"], previous.value)
        self.broadcaster.publish(MISSIONS_CHANNEL, "quality-check-created", {
            "qualityCheckId": result["id"],
            "missionId": result["missionId"],
            "status": result["status"],
        })
        return result

    def update(self, check_id: int, data: QualityCheckUpdate, actor: Actor) -> Dict[str, Any]:
        """
        部分更新质检记录（仅更新请求中出现的字段）

        状态变为 PASSED / FAILED 时写入验收人与验收时间；
        NEEDS_CORRECTION / PENDING 不改动这两个字段。
        """
        with self.db.session_scope() as session:
            check = get_quality_check(session, check_id)
            mission = check.mission
            require(actor, Capability.MANAGE_QUALITY_CHECK, mission)

            changes = data.model_dump(exclude_unset=True)
            # status / score 显式传 null 视为未提供
            for key in ("status", "score"):
                if changes.get(key) is None:
                    changes.pop(key, None)
            check.update_from_dict(changes)

            if check.status in RESOLVED_STATUSES and "status" in changes:
                check.validated_by = actor.id
                check.validated_at = utcnow()

            self.activity_logger.record(
                session,
                ActivityType.QUALITY_ISSUE if check.status in ISSUE_STATUSES else ActivityType.QUALITY_CHECK_UPDATED,
                "Quality check updated",
                f"Quality check {check.id} for mission {mission.mission_number}: {check.status.value}",
                actor.id,
                lead_id=mission.lead_id,
                mission_id=mission.id,
                metadata={"qualityCheckId": check.id, "fields": sorted(changes)},
            )
            result = check_payload(check)

        self.broadcaster.publish(MISSIONS_CHANNEL, "quality-check-updated", {
            "qualityCheckId": result["id"],
            "missionId": result["missionId"],
            "status": result["status"],
        })
        return result

    def get(self, check_id: int) -> Dict[str, Any]:
        with self.db.session_scope() as session:
            return check_payload(get_quality_check(session, check_id))

    def list(self, mission_id: Optional[int] = None, status: Optional[QualityStatus] = None) -> List[Dict[str, Any]]:
        """按检查时间倒序列出质检记录"""
        stmt = select(QualityCheck).order_by(QualityCheck.checked_at.desc(), QualityCheck.id.desc())
        if mission_id is not None:
            stmt = stmt.where(QualityCheck.mission_id == mission_id)
        if status is not None:
            stmt = stmt.where(QualityCheck.status == status)
        with self.db.session_scope() as session:
            return [check_payload(check) for check in session.execute(stmt).scalars()]

    def pending_missions(self) -> List[Dict[str, Any]]:
        """待质检任务清单：优先级从高到低，计划日期从早到晚"""
        stmt = (
            select(Mission)
            .where(pending_quality_check_filter())
            .order_by(PRIORITY_RANK.desc(), Mission.scheduled_date.asc())
        )
        with self.db.session_scope() as session:
            results = []
            for mission in session.execute(stmt).scalars():
                data = mission.to_dict(include_children=True)
                data["lead"] = mission.lead.to_dict() if mission.lead else None
                data["taskCount"] = len(mission.tasks)
                results.append(data)
            return results
