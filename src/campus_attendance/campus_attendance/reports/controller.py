from __future__ import annotations

from flask import Flask, request

from ..common.http import api_login_required, current_actor, ok
from ..container import Container

API_PREFIX = "/api/attendance"


def register(app: Flask, container: Container) -> None:
    service = container.report_service

    @app.route(
        f"{API_PREFIX}/reports/<int:course_id>/<int:month>/<int:year>",
        methods=["GET"],
        endpoint="api_course_reports",
    )
    @api_login_required
    def course_reports(course_id: int, month: int, year: int):
        _, role = current_actor()
        return ok(service.course_attendance_reports(current_role=role, course_id=course_id, month=month, year=year))

    @app.route(f"{API_PREFIX}/reports/<int:month>/<int:year>", methods=["GET"], endpoint="api_month_reports")
    @api_login_required
    def month_reports(month: int, year: int):
        _, role = current_actor()
        return ok(service.reports_for_month(current_role=role, month=month, year=year))

    @app.route(f"{API_PREFIX}/reports/low-attendance", methods=["GET"], endpoint="api_low_attendance_reports")
    @api_login_required
    def low_attendance_reports():
        user_id, role = current_actor()
        student_id = request.args.get("student_id", default=user_id, type=int)
        threshold = request.args.get("threshold") or None
        return ok(
            service.low_attendance_reports(
                current_role=role,
                acting_user_id=user_id,
                student_id=student_id,
                threshold=threshold,
            )
        )

    @app.route(f"{API_PREFIX}/generate-reports/<int:month>/<int:year>", methods=["POST"], endpoint="api_generate_reports")
    @api_login_required
    def generate_reports(month: int, year: int):
        _, role = current_actor()
        summary = service.generate_monthly_reports(current_role=role, month=month, year=year)
        return ok(
            {"month": summary.month, "year": summary.year, "generated": len(summary.reports), "low_attendance": summary.low_attendance},
            message=f"Generated {len(summary.reports)} reports for {summary.month:02d}/{summary.year}",
        )
