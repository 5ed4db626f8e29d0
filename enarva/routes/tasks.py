"""
子任务接口
"""
from flask import Blueprint, jsonify

from enarva.database.schemas import TaskAssign, TaskStatusUpdate, TaskTimeUpdate
from enarva.routes.common import current_actor, json_body, services

bp = Blueprint("tasks", __name__, url_prefix="/tasks")


@bp.route("/<int:task_id>", methods=["GET"])
def get_task(task_id: int):
    current_actor()
    return jsonify(services().tasks.get(task_id))


@bp.route("/<int:task_id>/status", methods=["PATCH"])
def update_task_status(task_id: int):
    actor = current_actor()
    data = json_body(TaskStatusUpdate)
    return jsonify(services().tasks.update_status(task_id, data.status, actor))


@bp.route("/<int:task_id>/assign", methods=["PATCH"])
def assign_task(task_id: int):
    actor = current_actor()
    data = json_body(TaskAssign)
    return jsonify(services().tasks.assign(task_id, data.member_id, actor))


@bp.route("/<int:task_id>/time", methods=["PATCH"])
def update_task_time(task_id: int):
    actor = current_actor()
    data = json_body(TaskTimeUpdate)
    return jsonify(services().tasks.update_time(task_id, data.estimated_time, data.actual_time, actor))
