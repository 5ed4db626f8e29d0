"""
活动日志接口
"""
from flask import Blueprint, Response, jsonify

from enarva.database.models import ActivityType, utcnow
from enarva.database.schemas import ActivityCreate
from enarva.routes.common import current_actor, enum_arg, int_arg, json_body, services
from enarva.utils.csv_handler import CSVHandler
from enarva.utils.permissions import Capability, require

bp = Blueprint("activities", __name__, url_prefix="/activities")

MAX_LIMIT = 200
EXPORT_LIMIT = 10000


def _query(limit: int):
    actor = current_actor()
    return services().activity_logger.query(
        actor,
        limit=limit,
        lead_id=int_arg("leadId"),
        mission_id=int_arg("missionId"),
        type=enum_arg("type", ActivityType),
    )


@bp.route("", methods=["GET"])
def list_activities():
    limit = max(1, min(int_arg("limit", 50), MAX_LIMIT))
    return jsonify(_query(limit))


@bp.route("", methods=["POST"])
def record_activity():
    actor = current_actor()
    data = json_body(ActivityCreate)
    activity = services().activity_logger.create(
        actor,
        data.type,
        data.title,
        data.description,
        lead_id=data.lead_id,
        mission_id=data.mission_id,
        metadata=data.metadata,
    )
    return jsonify(activity), 201


@bp.route("/export", methods=["GET"])
def export_activities():
    """CSV导出"""
    csv_text = CSVHandler.activities_to_csv(_query(EXPORT_LIMIT))
    filename = f"activities-{utcnow():%Y%m%d}.csv"
    return Response(
        csv_text,
        mimetype="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@bp.route("/cleanup", methods=["DELETE"])
def cleanup_activities():
    """保留期清理"""
    actor = current_actor()
    require(actor, Capability.PURGE_ACTIVITIES)
    deleted = services().activity_logger.purge_expired()
    return jsonify({"success": True, "deletedCount": deleted})
