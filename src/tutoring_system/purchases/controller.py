from __future__ import annotations

from flask import Flask

from ..common.http import api_errors, date_arg, json_body, ok, query_arg, scope_arg
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.purchase_service

    @app.route("/api/purchases", methods=["GET"], endpoint="purchases_list")
    @api_errors
    def purchases_list():
        purchases = service.list(start=date_arg("start"), end=date_arg("end"), category=query_arg("category"))
        return ok([p.to_dict() for p in purchases])

    @app.route("/api/purchases/categories", methods=["GET"], endpoint="purchases_categories")
    @api_errors
    def purchases_categories():
        return ok(service.categories())

    @app.route("/api/purchases/<int:purchase_id>", methods=["GET"], endpoint="purchases_get")
    @api_errors
    def purchases_get(purchase_id: int):
        return ok(service.get(purchase_id).to_dict())

    @app.route("/api/purchases", methods=["POST"], endpoint="purchases_create")
    @api_errors
    def purchases_create():
        return ok([p.to_dict() for p in service.create(json_body())], 201)

    @app.route("/api/purchases/<int:purchase_id>", methods=["PUT"], endpoint="purchases_update")
    @api_errors
    def purchases_update(purchase_id: int):
        updated = service.update(purchase_id, json_body(), scope=scope_arg())
        return ok([p.to_dict() for p in updated])

    @app.route("/api/purchases/<int:purchase_id>", methods=["DELETE"], endpoint="purchases_delete")
    @api_errors
    def purchases_delete(purchase_id: int):
        return ok({"deleted": service.delete(purchase_id, scope=scope_arg())})
