from __future__ import annotations

from flask import Flask

from ..common.http import api_errors, date_arg, int_arg, json_body, ok, query_arg, scope_arg
from ..container import Container
from ..core.enums import EditScope


def register(app: Flask, container: Container) -> None:
    service = container.lesson_service

    @app.route("/api/lessons", methods=["GET"], endpoint="lessons_list")
    @api_errors
    def lessons_list():
        lessons = service.list(
            start=date_arg("start"),
            end=date_arg("end"),
            student_id=int_arg("student_id"),
            status=query_arg("status"),
        )
        return ok([ls.to_dict() for ls in lessons])

    @app.route("/api/lessons/upcoming", methods=["GET"], endpoint="lessons_upcoming")
    @api_errors
    def lessons_upcoming():
        return ok([ls.to_dict() for ls in service.upcoming(day=date_arg("date"))])

    @app.route("/api/lessons/<int:lesson_id>", methods=["GET"], endpoint="lessons_get")
    @api_errors
    def lessons_get(lesson_id: int):
        return ok(service.get(lesson_id).to_dict())

    @app.route("/api/lessons", methods=["POST"], endpoint="lessons_create")
    @api_errors
    def lessons_create():
        created = service.create(json_body())
        return ok([ls.to_dict() for ls in created], 201)

    @app.route("/api/lessons/<int:lesson_id>", methods=["PUT"], endpoint="lessons_update")
    @api_errors
    def lessons_update(lesson_id: int):
        updated = service.update(lesson_id, json_body(), scope=scope_arg())
        return ok([ls.to_dict() for ls in updated])

    @app.route("/api/lessons/<int:lesson_id>/recurring-future", methods=["PUT"], endpoint="lessons_update_future")
    @api_errors
    def lessons_update_future(lesson_id: int):
        updated = service.update(lesson_id, json_body(), scope=EditScope.FUTURE)
        return ok([ls.to_dict() for ls in updated])

    @app.route("/api/lessons/<int:lesson_id>", methods=["DELETE"], endpoint="lessons_delete")
    @api_errors
    def lessons_delete(lesson_id: int):
        return ok({"deleted": service.delete(lesson_id, scope=scope_arg())})

    @app.route("/api/lessons/<int:lesson_id>/recurring-future", methods=["DELETE"], endpoint="lessons_delete_future")
    @api_errors
    def lessons_delete_future(lesson_id: int):
        return ok({"deleted": service.delete(lesson_id, scope=EditScope.FUTURE)})
