"""
任务（Mission）接口
"""
from flask import Blueprint, jsonify

from enarva.database.schemas import MissionCreate, MissionStatusUpdate, MissionValidation
from enarva.routes.common import current_actor, json_body, services

bp = Blueprint("missions", __name__, url_prefix="/missions")


@bp.route("", methods=["GET"])
def list_missions():
    current_actor()
    return jsonify(services().missions.list_missions())


@bp.route("", methods=["POST"])
def schedule_mission():
    """手动排期"""
    actor = current_actor()
    data = json_body(MissionCreate)
    return jsonify(services().missions.schedule(data, actor)), 201


@bp.route("/field", methods=["GET"])
def field_missions():
    """现场端任务清单（按角色限定范围）"""
    actor = current_actor()
    return jsonify(services().missions.field_missions(actor))


@bp.route("/pending-quality-checks", methods=["GET"])
def pending_quality_checks():
    """待质检工作清单"""
    current_actor()
    return jsonify(services().quality.pending_missions())


@bp.route("/<int:mission_id>", methods=["GET"])
def get_mission(mission_id: int):
    current_actor()
    return jsonify(services().missions.get(mission_id))


@bp.route("/<int:mission_id>/start", methods=["PATCH"])
def start_mission(mission_id: int):
    """SCHEDULED → IN_PROGRESS"""
    actor = current_actor()
    return jsonify(services().missions.start(mission_id, actor))


@bp.route("/<int:mission_id>/status", methods=["PATCH"])
def update_mission_status(mission_id: int):
    """通用状态更新（含自动升级规则）"""
    actor = current_actor()
    data = json_body(MissionStatusUpdate)
    return jsonify(services().missions.set_status(mission_id, data.status, data.notes, actor))


@bp.route("/<int:mission_id>/validate", methods=["POST"])
def validate_mission(mission_id: int):
    """管理员验收"""
    actor = current_actor()
    data = json_body(MissionValidation)
    return jsonify(services().missions.validate(mission_id, data, actor))
