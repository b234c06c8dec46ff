from __future__ import annotations

from flask import Flask, request

from ..common.http import api_login_required, current_actor, json_body, ok, require_field
from ..container import Container

API_PREFIX = "/api/attendance"


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route(f"{API_PREFIX}/mark", methods=["POST"], endpoint="api_mark_attendance")
    @api_login_required
    def mark_attendance():
        user_id, role = current_actor()
        payload = json_body()
        record = service.mark_attendance(
            current_role=role,
            faculty_id=user_id,
            course_id=require_field(payload, "course_id", "courseId"),
            student_id=require_field(payload, "student_id", "studentId"),
            attendance_date=require_field(payload, "date", "attendance_date"),
            status=require_field(payload, "status"),
        )
        return ok(record, message="Attendance marked")

    @app.route(f"{API_PREFIX}/mark-bulk", methods=["POST"], endpoint="api_mark_bulk_attendance")
    @api_login_required
    def mark_bulk_attendance():
        user_id, role = current_actor()
        payload = json_body()
        result = service.mark_bulk_attendance(
            current_role=role,
            faculty_id=user_id,
            course_id=require_field(payload, "course_id", "courseId"),
            student_ids=payload.get("student_ids") or payload.get("studentIds") or [],
            attendance_date=require_field(payload, "date", "attendance_date"),
            statuses=payload.get("statuses") or [],
        )
        data = {
            "saved": result.saved,
            "failures": [
                {"student_id": f.student_id, "status": f.status, "error": type(f.error).__name__, "message": f.message}
                for f in result.failures
            ],
        }
        # Per-item failures are reported in the body with a 200.
        return ok(data, message=f"{len(result.saved)} saved, {len(result.failures)} failed")

    def _student_id_arg(user_id: int) -> int:
        return request.args.get("student_id", default=user_id, type=int)

    @app.route(f"{API_PREFIX}/student", methods=["GET"], endpoint="api_student_attendance_all")
    @api_login_required
    def student_attendance_all():
        user_id, role = current_actor()
        records = service.get_student_attendance(
            current_role=role,
            acting_user_id=user_id,
            student_id=_student_id_arg(user_id),
        )
        return ok(records)

    @app.route(f"{API_PREFIX}/student/<int:course_id>", methods=["GET"], endpoint="api_student_attendance")
    @api_login_required
    def student_attendance(course_id: int):
        user_id, role = current_actor()
        student_id = _student_id_arg(user_id)
        common = dict(current_role=role, acting_user_id=user_id, student_id=student_id)

        records = service.get_student_attendance(course_id=course_id, **common)
        pct = service.calculate_attendance_percentage(course_id=course_id, **common)
        low = service.has_low_attendance(course_id=course_id, **common)
        return ok(
            {
                "student_id": student_id,
                "course_id": course_id,
                "records": records,
                "attendance_percentage": pct,
                "low_attendance": low,
            }
        )
