from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import today_local
from ..common.http import api_errors, int_arg, json_body, ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.package_service

    @app.route("/api/packages", methods=["GET"], endpoint="packages_list")
    @api_errors
    def packages_list():
        today = today_local()
        return ok([p.to_dict(today=today) for p in service.list(student_id=int_arg("student_id"))])

    @app.route("/api/students/<int:student_id>/packages", methods=["GET"], endpoint="packages_by_student")
    @api_errors
    def packages_by_student(student_id: int):
        container.student_service.get(student_id)
        today = today_local()
        return ok([p.to_dict(today=today) for p in service.list(student_id=student_id)])

    @app.route("/api/packages/<int:package_id>", methods=["GET"], endpoint="packages_get")
    @api_errors
    def packages_get(package_id: int):
        return ok(service.get(package_id).to_dict(today=today_local()))

    @app.route("/api/packages", methods=["POST"], endpoint="packages_create")
    @api_errors
    def packages_create():
        return ok(service.create(json_body()).to_dict(today=today_local()), 201)

    @app.route("/api/packages/<int:package_id>", methods=["PUT"], endpoint="packages_update")
    @api_errors
    def packages_update(package_id: int):
        return ok(service.update(package_id, json_body()).to_dict(today=today_local()))

    @app.route("/api/packages/<int:package_id>/apply-lesson", methods=["POST"], endpoint="packages_apply_lesson")
    @api_errors
    def packages_apply_lesson(package_id: int):
        package = service.apply_to_lesson(package_id, json_body().get("lesson_id"))
        return ok(package.to_dict(today=today_local()))

    @app.route("/api/packages/<int:package_id>/complete", methods=["POST"], endpoint="packages_complete")
    @api_errors
    def packages_complete(package_id: int):
        package = service.complete(package_id, json_body().get("hours"))
        return ok(package.to_dict(today=today_local()))

    @app.route("/api/packages/<int:package_id>", methods=["DELETE"], endpoint="packages_delete")
    @api_errors
    def packages_delete(package_id: int):
        service.delete(package_id)
        return ok({"package_id": package_id})
