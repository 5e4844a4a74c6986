from __future__ import annotations

import asyncio
import logging

from flask import Flask, jsonify, request

from ..core.enums import ReminderSlot, SummaryDay, TrackingMode
from ..core.exceptions import NotFoundError, NotificationError, SyncError, ValidationError
from ..common.validators import require_enum
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    jobs = container.push_jobs

    @app.errorhandler(ValidationError)
    def _validation_error(exc: ValidationError):
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(NotFoundError)
    def _not_found(exc: NotFoundError):
        return jsonify({"error": str(exc)}), 404

    @app.errorhandler(SyncError)
    def _store_unavailable(exc: SyncError):
        logger.exception("Remote store failure")
        return jsonify({"error": "storage unavailable"}), 503

    @app.route("/jobs/reminders/<slot>", methods=["POST"], endpoint="jobs_reminders")
    def reminders(slot: str):
        report = asyncio.run(jobs.send_reminders(require_enum(slot, ReminderSlot, "slot")))
        return jsonify(report.to_dict())

    @app.route("/jobs/weekly-summary/<day>", methods=["POST"], endpoint="jobs_weekly_summary")
    def weekly_summary(day: str):
        report = asyncio.run(jobs.send_weekly_summary(require_enum(day, SummaryDay, "day")))
        return jsonify(report.to_dict())

    @app.route("/jobs/near-office/reset", methods=["POST"], endpoint="jobs_near_office_reset")
    def near_office_reset():
        return jsonify({"reset": asyncio.run(jobs.reset_near_office_flags())})

    @app.route("/near-office", methods=["POST"], endpoint="near_office")
    def near_office():
        payload = request.get_json(silent=True) or {}
        try:
            result = asyncio.run(jobs.send_near_office(str(payload.get("userId") or "")))
        except NotificationError as exc:
            logger.warning("Near-office push failed: %s", exc)
            return jsonify({"success": False, "error": str(exc)}), 502
        if not result.sent:
            return jsonify({"success": True, "message": "Attendance already logged"}), 200
        return jsonify({"success": True, "message": "Notification sent"}), 200

    @app.route("/ops/eligible", methods=["GET"], endpoint="ops_eligible")
    def eligible():
        mode = require_enum(request.args.get("mode", TrackingMode.MANUAL.value), TrackingMode, "mode")
        users = asyncio.run(jobs.eligible_users(mode))
        return jsonify({"mode": mode.value, "users": [user.user_id for user in users]})
