"""Public webhook endpoint triggering WEBHOOK workflows."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import configured_limit, db, limiter
from ..workflow.dispatcher import dispatch_webhook

bp = Blueprint("webhooks", __name__)


@bp.post("/webhooks/<workflow_id>")
@limiter.limit(configured_limit("WEBHOOK_RATE_LIMIT", "60 per minute"))
def receive_webhook(workflow_id: str) -> tuple[object, int]:
    """Dispatch the workflow; a recorded FAILED run still answers 200."""

    current_app.logger.info("Received webhook for workflow %s", workflow_id)
    try:
        run = dispatch_webhook(workflow_id, request.get_data(cache=False))
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Webhook dispatch for workflow %s failed", workflow_id)
        return jsonify({"error": "internal server error"}), HTTPStatus.INTERNAL_SERVER_ERROR

    return (
        jsonify({"success": True, "runId": run.id, "status": run.status}),
        HTTPStatus.OK,
    )
