"""
Route handlers for the planning Blueprint.

Provides API endpoints for the stage catalog, item stage planning and
order progress roll-up.
"""
from flask import Blueprint, Response, jsonify, request

from shopplan.logging_config import get_logger
from shopplan.models import db
from shopplan.planning.engine import safe_number
from shopplan.planning.export import export_stage_plan
from shopplan.planning.service import ItemPlanningService
from shopplan.seed import seed_default_stages

logger = get_logger(__name__)

planning_bp = Blueprint("planning", __name__)


def _request_data():
    return request.get_json(silent=True) or {}


def _validate_stage_name(data):
    """
    Check the stage_name field of a request body against the catalog.

    Returns:
        (stage_name, error_response) - error_response is None when valid
    """
    stage_name = str(data.get('stage_name') or '').strip()
    if not stage_name:
        return None, (jsonify({"error": "stage_name is required"}), 400)

    if stage_name not in ItemPlanningService.load_catalog():
        return None, (jsonify({"error": f"Stage '{stage_name}' not found"}), 404)

    return stage_name, None


def _is_number(value):
    return safe_number(value, default=None) is not None


def _item_response(result):
    if result is None:
        return jsonify({"error": "Item not found"}), 404
    return jsonify(result), 200


# ----------------------------------------------------------------------
# Stage catalog
# ----------------------------------------------------------------------
@planning_bp.route("/stages")
def list_stages():
    """List the manufacturing stage catalog in sequence order."""
    try:
        catalog = ItemPlanningService.load_catalog()
        return jsonify({
            "stages": [
                {
                    "name": definition.name,
                    "order": definition.order,
                    "default_days": definition.default_days,
                    "active": definition.active,
                    "description": definition.description,
                    "category": definition.category,
                }
                for definition in catalog
            ]
        }), 200
    except Exception as exc:
        logger.error("Error listing stages", error=str(exc))
        return jsonify({
            "error": "Failed to list stages",
            "details": str(exc)
        }), 500


@planning_bp.route("/stages/seed", methods=["POST"])
def seed_stages():
    """Add the default manufacturing stages missing from the catalog."""
    try:
        result = seed_default_stages()
        return jsonify({"success": True, **result}), 200
    except Exception as exc:
        logger.error("Error seeding stages", error=str(exc))
        db.session.rollback()
        return jsonify({
            "error": "Failed to seed stages",
            "details": str(exc)
        }), 500


# ----------------------------------------------------------------------
# Item planning
# ----------------------------------------------------------------------
@planning_bp.route("/items/<int:item_id>")
def get_item_planning(item_id):
    """Return an item's stages, progress and overall progress."""
    try:
        item = ItemPlanningService.get_item(item_id)
        if item is None:
            return jsonify({"error": "Item not found"}), 404
        return jsonify(ItemPlanningService.describe_item(item)), 200
    except Exception as exc:
        logger.error("Error getting item planning", item_id=item_id, error=str(exc))
        return jsonify({
            "error": "Failed to get item planning",
            "details": str(exc)
        }), 500


@planning_bp.route("/items/<int:item_id>/stages/toggle", methods=["PUT"])
def toggle_stage(item_id):
    """Enable or disable a stage for this item"""
    try:
        stage_name, error = _validate_stage_name(_request_data())
        if error:
            return error
        return _item_response(ItemPlanningService.toggle_stage(item_id, stage_name))
    except Exception as exc:
        logger.error("Error toggling stage", item_id=item_id, error=str(exc))
        db.session.rollback()
        return jsonify({
            "error": "Failed to toggle stage",
            "details": str(exc)
        }), 500


@planning_bp.route("/items/<int:item_id>/stages/days", methods=["PUT"])
def update_stage_days(item_id):
    """Update a stage's duration in working days (below 0.1 is ignored)"""
    try:
        data = _request_data()
        stage_name, error = _validate_stage_name(data)
        if error:
            return error

        days = data.get('days')
        if not _is_number(days):
            return jsonify({"error": "days must be a number"}), 400

        return _item_response(ItemPlanningService.change_duration(item_id, stage_name, float(days)))
    except Exception as exc:
        logger.error("Error updating stage days", item_id=item_id, error=str(exc))
        db.session.rollback()
        return jsonify({
            "error": "Failed to update stage days",
            "details": str(exc)
        }), 500


@planning_bp.route("/items/<int:item_id>/stages/start-date", methods=["PUT"])
def update_stage_start_date(item_id):
    """Update a stage's start date and re-chain the stages after it"""
    try:
        data = _request_data()
        stage_name, error = _validate_stage_name(data)
        if error:
            return error

        start_date = data.get('start_date')
        if not start_date:
            return jsonify({"error": "start_date is required"}), 400

        return _item_response(ItemPlanningService.change_start_date(item_id, stage_name, str(start_date)))
    except Exception as exc:
        logger.error("Error updating stage start date", item_id=item_id, error=str(exc))
        db.session.rollback()
        return jsonify({
            "error": "Failed to update stage start date",
            "details": str(exc)
        }), 500


@planning_bp.route("/items/<int:item_id>/stages/responsible", methods=["PUT"])
def update_stage_responsible(item_id):
    try:
        data = _request_data()
        stage_name, error = _validate_stage_name(data)
        if error:
            return error

        return _item_response(
            ItemPlanningService.change_responsible(item_id, stage_name, data.get('responsible') or '')
        )
    except Exception as exc:
        logger.error("Error updating stage responsible", item_id=item_id, error=str(exc))
        db.session.rollback()
        return jsonify({
            "error": "Failed to update stage responsible",
            "details": str(exc)
        }), 500


@planning_bp.route("/items/<int:item_id>/stages/progress", methods=["PUT"])
def update_stage_progress(item_id):
    """Update a stage's completion percentage (clamped to 0-100)"""
    try:
        data = _request_data()
        stage_name, error = _validate_stage_name(data)
        if error:
            return error

        progress = data.get('progress')
        if not _is_number(progress):
            return jsonify({"error": "progress must be a number"}), 400

        return _item_response(ItemPlanningService.set_progress(item_id, stage_name, float(progress)))
    except Exception as exc:
        logger.error("Error updating stage progress", item_id=item_id, error=str(exc))
        db.session.rollback()
        return jsonify({
            "error": "Failed to update stage progress",
            "details": str(exc)
        }), 500


@planning_bp.route("/items/<int:item_id>/enable-all", methods=["POST"])
def enable_all_stages(item_id):
    """Enable every active catalog stage for this item"""
    try:
        return _item_response(ItemPlanningService.enable_all(item_id))
    except Exception as exc:
        logger.error("Error enabling all stages", item_id=item_id, error=str(exc))
        db.session.rollback()
        return jsonify({
            "error": "Failed to enable all stages",
            "details": str(exc)
        }), 500


@planning_bp.route("/items/<int:item_id>/recalculate", methods=["POST"])
def recalculate_item(item_id):
    """Rebuild the item's date chain from its first enabled stage"""
    try:
        return _item_response(ItemPlanningService.recalculate(item_id))
    except Exception as exc:
        logger.error("Error recalculating item", item_id=item_id, error=str(exc))
        db.session.rollback()
        return jsonify({
            "error": "Failed to recalculate item",
            "details": str(exc)
        }), 500


@planning_bp.route("/items/<int:item_id>/copy-from/<int:source_item_id>", methods=["POST"])
def copy_item_planning(item_id, source_item_id):
    """Copy planning and progress from another item"""
    try:
        if item_id == source_item_id:
            return jsonify({"error": "Cannot copy an item onto itself"}), 400

        recalculate = _request_data().get('recalculate')
        if recalculate is not None and not isinstance(recalculate, bool):
            return jsonify({"error": "recalculate must be true or false"}), 400

        if ItemPlanningService.get_item(source_item_id) is None:
            return jsonify({"error": "Source item not found"}), 404

        return _item_response(ItemPlanningService.copy_from(item_id, source_item_id, recalculate))
    except Exception as exc:
        logger.error("Error copying item planning", item_id=item_id, source_item_id=source_item_id, error=str(exc))
        db.session.rollback()
        return jsonify({
            "error": "Failed to copy item planning",
            "details": str(exc)
        }), 500


@planning_bp.route("/items/<int:item_id>/history")
def get_item_history(item_id):
    try:
        if ItemPlanningService.get_item(item_id) is None:
            return jsonify({"error": "Item not found"}), 404

        limit = request.args.get('limit', 50, type=int)
        return jsonify({
            "item_id": item_id,
            "history": ItemPlanningService.get_item_history(item_id, limit=limit)
        }), 200
    except Exception as exc:
        logger.error("Error getting item history", item_id=item_id, error=str(exc))
        return jsonify({
            "error": "Failed to get item history",
            "details": str(exc)
        }), 500


@planning_bp.route("/items/<int:item_id>/export")
def export_item_planning(item_id):
    """
    Download an item's stage plan.

    Query params:
        format: 'csv' (default) or 'xlsx'
    """
    try:
        item = ItemPlanningService.get_item(item_id)
        if item is None:
            return jsonify({"error": "Item not found"}), 404

        catalog = ItemPlanningService.load_catalog()
        stages = ItemPlanningService.load_stages(item, catalog)
        try:
            content, mimetype, extension = export_stage_plan(
                stages, item.progress, catalog, request.args.get('format', 'csv')
            )
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400

        filename = f"item-{item.id}-{item.code}-stage-plan.{extension}"
        return Response(
            content,
            mimetype=mimetype,
            headers={'Content-Disposition': f'attachment; filename={filename}'}
        )
    except Exception as exc:
        logger.error("Error exporting item planning", item_id=item_id, error=str(exc))
        return jsonify({
            "error": "Failed to export item planning",
            "details": str(exc)
        }), 500


# ----------------------------------------------------------------------
# Orders
# ----------------------------------------------------------------------
@planning_bp.route("/orders/<int:order_id>/progress")
def get_order_progress(order_id):
    """Roll item progress up to the order and report delivery status."""
    try:
        summary = ItemPlanningService.order_progress_summary(order_id)
        if summary is None:
            return jsonify({"error": "Order not found"}), 404
        return jsonify(summary), 200
    except Exception as exc:
        logger.error("Error getting order progress", order_id=order_id, error=str(exc))
        return jsonify({
            "error": "Failed to get order progress",
            "details": str(exc)
        }), 500
