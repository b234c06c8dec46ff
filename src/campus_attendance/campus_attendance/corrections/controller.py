from __future__ import annotations

from flask import Flask, request

from ..common.http import api_login_required, current_actor, json_body, ok, require_field
from ..container import Container

API_PREFIX = "/api/attendance"


def register(app: Flask, container: Container) -> None:
    service = container.correction_service

    @app.route(f"{API_PREFIX}/correction-request", methods=["POST"], endpoint="api_submit_correction")
    @api_login_required
    def submit_correction():
        """Dispute a record by id, or by (course_id, date)."""
        user_id, role = current_actor()
        payload = json_body()
        reason = payload.get("reason", "")

        attendance_id = payload.get("attendance_id") or payload.get("attendanceId")
        if attendance_id:
            req = service.submit(
                current_role=role,
                student_id=user_id,
                attendance_id=attendance_id,
                reason=reason,
            )
        else:
            req = service.submit_for_date(
                current_role=role,
                student_id=user_id,
                course_id=require_field(payload, "course_id", "courseId"),
                attendance_date=require_field(payload, "date", "attendance_date"),
                reason=reason,
            )
        return ok(req, message="Correction request submitted")

    @app.route(f"{API_PREFIX}/correction-requests", methods=["GET"], endpoint="api_pending_corrections")
    @api_login_required
    def pending_corrections():
        user_id, role = current_actor()
        return ok(service.pending_requests_for_faculty(current_role=role, faculty_id=user_id))

    @app.route(f"{API_PREFIX}/my-correction-requests", methods=["GET"], endpoint="api_my_corrections")
    @api_login_required
    def my_corrections():
        user_id, role = current_actor()
        student_id = request.args.get("student_id", default=user_id, type=int)
        return ok(service.requests_for_student(current_role=role, acting_user_id=user_id, student_id=student_id))

    @app.route(f"{API_PREFIX}/review-correction", methods=["POST"], endpoint="api_review_correction")
    @api_login_required
    def review_correction():
        user_id, role = current_actor()
        payload = json_body()
        req = service.review(
            current_role=role,
            reviewer_id=user_id,
            request_id=require_field(payload, "request_id", "requestId"),
            decision=require_field(payload, "decision", "status"),
            comments=payload.get("comments") or "",
        )
        return ok(req, message=f"Correction request {req.status.value.lower()}")
