from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import today_local
from ..common.http import api_errors, date_arg, int_arg, ok, query_arg
from ..common.validators import parse_bool
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.report_service

    @app.route("/api/reports/summary", methods=["GET"], endpoint="reports_summary")
    @api_errors
    def reports_summary():
        return ok(service.summary(start=date_arg("start"), end=date_arg("end")))

    @app.route("/api/reports/outstanding", methods=["GET"], endpoint="reports_outstanding")
    @api_errors
    def reports_outstanding():
        return ok(service.outstanding(as_of=date_arg("as_of")))

    @app.route("/api/reports/packages", methods=["GET"], endpoint="reports_packages")
    @api_errors
    def reports_packages():
        return ok(service.packages())

    @app.route("/api/reports/monthly-student", methods=["GET"], endpoint="reports_monthly_student")
    @api_errors
    def reports_monthly_student():
        today = today_local()
        year = int_arg("year") or today.year
        month = int_arg("month") or today.month
        return ok(service.monthly_student(year=year, month=month))

    @app.route("/api/students/<int:student_id>/statement", methods=["GET"], endpoint="students_statement")
    @api_errors
    def students_statement(student_id: int):
        data = service.statement(
            student_id,
            start=date_arg("start"),
            end=date_arg("end"),
            family=parse_bool(query_arg("family")),
        )
        return ok(
            {
                "business_name": app.config.get("BUSINESS_NAME"),
                "currency": app.config.get("DEFAULT_CURRENCY"),
                **data.header,
                "entries": data.entries,
                "totals": data.totals,
            }
        )
