"""Background task status and control endpoints."""

from typing import Any

from dependency_injector.wiring import Provide, inject
from flask import Blueprint, jsonify

from partswap.services.container import ServiceContainer
from partswap.services.task_service import TaskService
from partswap.utils.error_handling import handle_api_errors

tasks_bp = Blueprint("tasks", __name__, url_prefix="/tasks")


@tasks_bp.route("/<task_id>/status", methods=["GET"])
@handle_api_errors
@inject
def get_task_status(task_id: str, task_service: TaskService = Provide[ServiceContainer.task_service]) -> Any:
    """
    Get current status of a task.

    Returns:
        JSON with status, progress and, once finished, the task result
    """
    task_info = task_service.get_task_status(task_id)
    if not task_info:
        return jsonify({"error": "Task not found", "details": {"message": f"No task with id {task_id}"}}), 404

    return jsonify(task_info.model_dump(mode="json"))


@tasks_bp.route("/<task_id>/cancel", methods=["POST"])
@handle_api_errors
@inject
def cancel_task(task_id: str, task_service: TaskService = Provide[ServiceContainer.task_service]) -> Any:
    """
    Request cancellation; an import stops before its next item.

    Returns:
        JSON with cancellation result
    """
    success = task_service.cancel_task(task_id)
    if not success:
        return jsonify({"error": "Task not found or cannot be cancelled", "details": {"message": task_id}}), 404

    return jsonify({"success": True, "message": "Task cancellation requested"})


@tasks_bp.route("/<task_id>", methods=["DELETE"])
@handle_api_errors
@inject
def remove_task(task_id: str, task_service: TaskService = Provide[ServiceContainer.task_service]) -> Any:
    """
    Remove a finished task from the registry.

    Returns:
        JSON with removal result
    """
    success = task_service.remove_completed_task(task_id)
    if not success:
        return jsonify({"error": "Task not found or not completed", "details": {"message": task_id}}), 404

    return jsonify({"success": True, "message": "Task removed from registry"})
