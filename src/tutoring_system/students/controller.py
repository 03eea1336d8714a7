from __future__ import annotations

from flask import Flask

from ..common.http import api_errors, json_body, ok, query_arg
from ..common.validators import parse_bool
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.student_service

    @app.route("/api/students", methods=["GET"], endpoint="students_list")
    @api_errors
    def students_list():
        students = service.list(
            include_archived=parse_bool(query_arg("include_archived")),
            search=query_arg("search"),
        )
        return ok([s.to_dict() for s in students])

    @app.route("/api/students", methods=["POST"], endpoint="students_create")
    @api_errors
    def students_create():
        return ok(service.create(json_body()).to_dict(), 201)

    @app.route("/api/students/families", methods=["GET"], endpoint="students_families")
    @api_errors
    def students_families():
        return ok([f.to_dict() for f in service.list_families()])

    @app.route("/api/students/<int:student_id>", methods=["GET"], endpoint="students_get")
    @api_errors
    def students_get(student_id: int):
        return ok(service.get(student_id).to_dict())

    @app.route("/api/students/<int:student_id>", methods=["PUT"], endpoint="students_update")
    @api_errors
    def students_update(student_id: int):
        return ok(service.update(student_id, json_body()).to_dict())

    @app.route("/api/students/<int:student_id>/archive", methods=["PATCH"], endpoint="students_archive")
    @api_errors
    def students_archive(student_id: int):
        body = json_body()
        archived = parse_bool(body["archived"]) if "archived" in body else True
        return ok(service.set_archived(student_id, archived).to_dict())

    @app.route("/api/students/<int:student_id>", methods=["DELETE"], endpoint="students_delete")
    @api_errors
    def students_delete(student_id: int):
        service.delete(student_id)
        return ok({"student_id": student_id})
