from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from fakes import add_lesson, add_student


def test_health(client):
    assert client.get("/api/health").get_json() == {"success": True, "status": "ok"}


def test_student_crud_round(client):
    res = client.post("/api/students", json={"first_name": "Ana", "last_name": "Lee", "price_per_lesson": 30})
    assert res.status_code == 201
    student_id = res.get_json()["data"]["student_id"]

    res = client.put(f"/api/students/{student_id}", json={"subject": "Math"})
    assert res.get_json()["data"]["subject"] == "Math"

    res = client.patch(f"/api/students/{student_id}/archive", json={})
    assert res.get_json()["data"]["archived"] is True

    assert client.get("/api/students").get_json()["data"] == []
    assert client.delete(f"/api/students/{student_id}").status_code == 200
    assert client.get(f"/api/students/{student_id}").status_code == 404


def test_validation_errors_become_400(client):
    res = client.post("/api/students", json={"first_name": "Ana"})

    assert res.status_code == 400
    assert res.get_json() == {"success": False, "message": "Last name is required"}


def test_body_must_be_an_object(client):
    res = client.post("/api/students", json=[1, 2])

    assert res.status_code == 400


def test_recurring_future_routes(db, client):
    student = add_student(db, subject="Math", price_per_lesson=Decimal("30"))
    res = client.post(
        "/api/lessons",
        json={
            "student_id": student.student_id,
            "date_time": "2024-01-01T16:00:00",
            "is_recurring": True,
            "recurring_frequency": "weekly",
            "recurring_end_date": "2024-01-22",
        },
    )
    lessons = res.get_json()["data"]
    assert len(lessons) == 4

    res = client.put(f"/api/lessons/{lessons[1]['lesson_id']}/recurring-future", json={"price": 35})
    assert [ls["price"] for ls in res.get_json()["data"]] == [35.0, 35.0, 35.0]

    res = client.delete(f"/api/lessons/{lessons[2]['lesson_id']}/recurring-future")
    assert res.get_json()["data"] == {"deleted": 2}

    remaining = client.get(f"/api/lessons?student_id={student.student_id}").get_json()["data"]
    assert [ls["recurring_end_date"] for ls in remaining] == ["2024-01-08", "2024-01-08"]


def test_future_scope_on_single_lesson_is_400(db, client):
    student = add_student(db)
    lesson = add_lesson(db, student.student_id, datetime(2024, 1, 1, 10))

    res = client.delete(f"/api/lessons/{lesson.lesson_id}?scope=future")

    assert res.status_code == 400


def test_payment_and_link_lesson(db, client):
    student = add_student(db)
    res = client.post(
        "/api/payments", json={"student_id": student.student_id, "amount": 50, "method": "cash", "date": "2024-01-01"}
    )
    assert res.status_code == 201
    payment = res.get_json()["data"]
    assert payment["current_credit"] == 50.0

    lesson = add_lesson(db, student.student_id, datetime(2024, 1, 5, 10))
    res = client.patch(f"/api/payments/{payment['payment_id']}/link-lesson", json={"lesson_id": lesson.lesson_id})

    assert res.get_json()["data"]["allocated"] == 30.0
    assert client.get(f"/api/students/{student.student_id}").get_json()["data"]["credit"] == 20.0


def test_package_routes(db, client):
    student = add_student(db, use_packages=True, price_per_package=Decimal("200"))
    res = client.post("/api/packages", json={"student_id": student.student_id, "name": "Ten", "total_hours": 10})
    package_id = res.get_json()["data"]["package_id"]
    lesson = add_lesson(db, student.student_id, datetime(2024, 1, 5, 10))

    res = client.post(f"/api/packages/{package_id}/apply-lesson", json={"lesson_id": lesson.lesson_id})
    assert res.get_json()["data"]["hours_used"] == 1.0

    res = client.post(f"/api/packages/{package_id}/complete", json={"hours": 2})
    assert res.get_json()["data"]["hours_remaining"] == 7.0

    assert client.delete(f"/api/packages/{package_id}").status_code == 409
    assert len(client.get(f"/api/students/{student.student_id}/packages").get_json()["data"]) == 1


def test_purchase_legacy_delete_future_flag(client):
    res = client.post(
        "/api/purchases",
        json={
            "date": "2024-01-01",
            "description": "Software",
            "amount": 12,
            "is_recurring": True,
            "recurring_frequency": "monthly",
            "recurring_end_date": "2024-03-01",
        },
    )
    first = res.get_json()["data"][0]["purchase_id"]

    res = client.delete(f"/api/purchases/{first}?deleteFuture=true")

    assert res.get_json()["data"] == {"deleted": 3}
    assert client.get("/api/purchases/categories").get_json()["data"] == []


def test_reports_and_statement(db, client):
    student = add_student(db)
    add_lesson(db, student.student_id, datetime(2024, 1, 5, 10))

    summary = client.get("/api/reports/summary?start=2024-01-01&end=2024-01-31").get_json()["data"]
    assert summary["billed"] == 30.0

    monthly = client.get("/api/reports/monthly-student?year=2024&month=1").get_json()["data"]
    assert monthly["totals"]["lessons"] == 1

    statement = client.get(f"/api/students/{student.student_id}/statement?end=2024-01-31").get_json()["data"]
    assert statement["totals"]["closing_balance"] == 30.0
    assert statement["business_name"] == "Test Tutoring"

    assert client.get("/api/reports/summary?start=bad").status_code == 400
    assert client.get("/api/reports/outstanding").status_code == 200
    assert client.get("/api/reports/packages").status_code == 200


def test_unexpected_errors_become_500(container, client, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(container.student_service, "list", boom)

    res = client.get("/api/students")

    assert res.status_code == 500
    assert res.get_json() == {"success": False, "message": "Internal server error"}


def test_oversized_amount_is_400(db, client):
    student = add_student(db)

    res = client.post("/api/payments", json={"student_id": student.student_id, "amount": "1e30", "method": "cash"})

    assert res.status_code == 400
    assert res.get_json()["success"] is False


def test_non_ascii_digits_in_query_are_400(client):
    res = client.get("/api/lessons", query_string={"student_id": "²"})

    assert res.status_code == 400
    assert res.get_json() == {"success": False, "message": "student_id must be a whole number"}


def test_home_office_deduction_routes(client):
    res = client.post(
        "/api/home-office-deductions",
        json={
            "category": "utilities_gas",
            "amount": 80,
            "period_type": "monthly",
            "period": "2024-02-10",
            "deduction_percent": 25,
        },
    )
    assert res.status_code == 201
    deduction = res.get_json()["data"]
    assert deduction["period"] == "2024-02-01"
    assert deduction["deductible_amount"] == 20.0

    res = client.put(f"/api/home-office-deductions/{deduction['deduction_id']}", json={"amount": 100})
    assert res.get_json()["data"]["deductible_amount"] == 25.0

    assert len(client.get("/api/home-office-deductions?year=2024").get_json()["data"]) == 1
    assert len(client.get("/api/home-office-deductions/categories").get_json()["data"]) == 8
    summary = client.get("/api/home-office-deductions/summary?year=2024").get_json()["data"]
    assert summary["total_deductible"] == 25.0
    assert client.get("/api/home-office-deductions/summary").status_code == 400

    assert client.delete(f"/api/home-office-deductions/{deduction['deduction_id']}").status_code == 200
    assert client.get(f"/api/home-office-deductions/{deduction['deduction_id']}").status_code == 404
