from __future__ import annotations

from flask import Flask

from ..common.http import api_errors, int_arg, json_body, ok, query_arg
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.deduction_service

    @app.route("/api/home-office-deductions", methods=["GET"], endpoint="deductions_list")
    @api_errors
    def deductions_list():
        deductions = service.list(year=int_arg("year"), category=query_arg("category"))
        return ok([d.to_dict() for d in deductions])

    @app.route("/api/home-office-deductions/categories", methods=["GET"], endpoint="deductions_categories")
    @api_errors
    def deductions_categories():
        return ok(service.categories())

    @app.route("/api/home-office-deductions/summary", methods=["GET"], endpoint="deductions_summary")
    @api_errors
    def deductions_summary():
        return ok(service.summary(year=int_arg("year")))

    @app.route("/api/home-office-deductions/<int:deduction_id>", methods=["GET"], endpoint="deductions_get")
    @api_errors
    def deductions_get(deduction_id: int):
        return ok(service.get(deduction_id).to_dict())

    @app.route("/api/home-office-deductions", methods=["POST"], endpoint="deductions_create")
    @api_errors
    def deductions_create():
        return ok(service.create(json_body()).to_dict(), 201)

    @app.route("/api/home-office-deductions/<int:deduction_id>", methods=["PUT"], endpoint="deductions_update")
    @api_errors
    def deductions_update(deduction_id: int):
        return ok(service.update(deduction_id, json_body()).to_dict())

    @app.route("/api/home-office-deductions/<int:deduction_id>", methods=["DELETE"], endpoint="deductions_delete")
    @api_errors
    def deductions_delete(deduction_id: int):
        service.delete(deduction_id)
        return ok({"deduction_id": deduction_id})
