"""
活动/审计日志

record() 在主事务内的 SAVEPOINT 中写入：成功时与状态变更一起提交，
失败时只回滚该 SAVEPOINT 并记录日志，主事务照常提交。
"""
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from enarva.database.engine import Database
from enarva.database.models import Activity, ActivityType, UserRole, utcnow
from enarva.utils.permissions import Actor

logger = logging.getLogger(__name__)

# 只能查看自己活动的角色
SELF_SCOPED_ROLES = (UserRole.AGENT, UserRole.TECHNICIAN, UserRole.TEAM_LEADER)

DEFAULT_RETENTION_DAYS = 30


class ActivityLogger:
    """活动日志的追加、查询与保留期清理"""

    def __init__(self, db: Database, retention_days: int = DEFAULT_RETENTION_DAYS):
        self.db = db
        self.retention_days = retention_days

    def _build(
        self,
        type: ActivityType,
        title: str,
        description: str,
        actor_id: Optional[int],
        lead_id: Optional[int],
        mission_id: Optional[int],
        metadata: Optional[Dict[str, Any]],
    ) -> Activity:
        if not type or not title or not description:
            raise ValueError("type, title and description are required")
        return Activity(
            type=ActivityType(type),
            title=title,
            description=description,
            user_id=actor_id,
            lead_id=lead_id,
            mission_id=mission_id,
            extra=metadata or {},
        )

    def record(
        self,
        session: Session,
        type: ActivityType,
        title: str,
        description: str,
        actor_id: Optional[int],
        lead_id: Optional[int] = None,
        mission_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[Activity]:
        """
        在当前事务中追加一条活动记录（尽力而为）

        Returns:
            写入的 Activity；失败时返回 None
        """
        # 主操作的待写入状态先落库，其错误必须向上传播
        session.flush()
        try:
            with session.begin_nested():
                activity = self._build(type, title, description, actor_id, lead_id, mission_id, metadata)
                session.add(activity)
            return activity
        except Exception:
            logger.warning("Failed to record activity %s (%s)", type, title, exc_info=True)
            return None

    def create(
        self,
        actor: Actor,
        type: ActivityType,
        title: str,
        description: str,
        lead_id: Optional[int] = None,
        mission_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """独立事务中记录一条活动（POST /activities）"""
        with self.db.session_scope() as session:
            activity = self._build(type, title, description, actor.id, lead_id, mission_id, metadata)
            session.add(activity)
            session.flush()
            return activity.to_dict()

    def query(
        self,
        actor: Actor,
        limit: int = 50,
        lead_id: Optional[int] = None,
        mission_id: Optional[int] = None,
        type: Optional[ActivityType] = None,
    ) -> List[Dict[str, Any]]:
        """按时间倒序查询活动；外勤角色只能看到自己的记录"""
        stmt = select(Activity).order_by(Activity.created_at.desc(), Activity.id.desc()).limit(limit)
        if actor.role in SELF_SCOPED_ROLES:
            stmt = stmt.where(Activity.user_id == actor.id)
        if lead_id is not None:
            stmt = stmt.where(Activity.lead_id == lead_id)
        if mission_id is not None:
            stmt = stmt.where(Activity.mission_id == mission_id)
        if type is not None:
            stmt = stmt.where(Activity.type == type)

        with self.db.session_scope() as session:
            return [activity.to_dict() for activity in session.execute(stmt).scalars()]

    def purge_expired(self, retention_days: Optional[int] = None) -> int:
        """
        删除超过保留期的活动记录（维护操作，与任务生命周期无关）

        Returns:
            删除的行数
        """
        days = self.retention_days if retention_days is None else retention_days
        cutoff = utcnow() - timedelta(days=days)
        with self.db.session_scope() as session:
            result = session.execute(delete(Activity).where(Activity.created_at < cutoff))
            deleted = result.rowcount or 0
        logger.info("Purged %d activities older than %s", deleted, cutoff.isoformat())
        return deleted
