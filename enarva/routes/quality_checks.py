"""
质检接口
"""
from flask import Blueprint, jsonify

from enarva.database.models import QualityStatus
from enarva.database.schemas import QualityCheckCreate, QualityCheckUpdate
from enarva.routes.common import current_actor, enum_arg, int_arg, json_body, services

bp = Blueprint("quality_checks", __name__, url_prefix="/quality-checks")


@bp.route("", methods=["GET"])
def list_quality_checks():
    current_actor()
    checks = services().quality.list(
        mission_id=int_arg("missionId"),
        status=enum_arg("status", QualityStatus),
    )
    return jsonify(checks)


@bp.route("", methods=["POST"])
def create_quality_check():
    actor = current_actor()
    data = json_body(QualityCheckCreate)
    return jsonify(services().quality.create(data, actor)), 201


@bp.route("/<int:check_id>", methods=["GET"])
def get_quality_check(check_id: int):
    current_actor()
    return jsonify(services().quality.get(check_id))


@bp.route("/<int:check_id>", methods=["PUT"])
def update_quality_check(check_id: int):
    actor = current_actor()
    data = json_body(QualityCheckUpdate)
    return jsonify(services().quality.update(check_id, data, actor))
