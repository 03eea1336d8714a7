from __future__ import annotations

from flask import Flask

from ..common.http import api_errors, date_arg, int_arg, json_body, ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.payment_service

    @app.route("/api/payments", methods=["GET"], endpoint="payments_list")
    @api_errors
    def payments_list():
        payments = service.list(student_id=int_arg("student_id"), start=date_arg("start"), end=date_arg("end"))
        return ok([p.to_dict() for p in payments])

    @app.route("/api/payments/<int:payment_id>", methods=["GET"], endpoint="payments_get")
    @api_errors
    def payments_get(payment_id: int):
        return ok(service.get(payment_id).to_dict())

    @app.route("/api/payments", methods=["POST"], endpoint="payments_create")
    @api_errors
    def payments_create():
        return ok(service.record(json_body()).to_dict(), 201)

    @app.route("/api/payments/<int:payment_id>", methods=["PUT"], endpoint="payments_update")
    @api_errors
    def payments_update(payment_id: int):
        return ok(service.update(payment_id, json_body()).to_dict())

    @app.route("/api/payments/<int:payment_id>/link-lesson", methods=["PATCH"], endpoint="payments_link_lesson")
    @api_errors
    def payments_link_lesson(payment_id: int):
        return ok(service.link_lesson(payment_id, json_body().get("lesson_id")).to_dict())

    @app.route("/api/payments/<int:payment_id>", methods=["DELETE"], endpoint="payments_delete")
    @api_errors
    def payments_delete(payment_id: int):
        service.delete(payment_id)
        return ok({"payment_id": payment_id})
