from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from tutoring_system.core.enums import EditScope
from tutoring_system.core.exceptions import NotFoundError, ValidationError


def _rent(container, **extra):
    payload = {
        "date": "2024-01-31",
        "description": "Studio rent",
        "amount": "500",
        "category": "Rent",
        "is_recurring": True,
        "recurring_frequency": "monthly",
        "recurring_end_date": "2024-04-30",
    }
    payload.update(extra)
    return container.purchase_service.create(payload)


def test_single_purchase_defaults_category(container):
    (purchase,) = container.purchase_service.create({"date": "2024-01-05", "description": "Pens", "amount": "4.99"})

    assert purchase.category == "Unassigned"
    assert purchase.amount == Decimal("4.99")
    assert purchase.recurring_group_id is None


def test_purchase_requires_description(container):
    with pytest.raises(ValidationError):
        container.purchase_service.create({"date": "2024-01-05", "amount": "4.99"})


def test_recurring_purchase_expands_by_month(container):
    series = _rent(container)

    assert [p.date for p in series] == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]
    assert len({p.recurring_group_id for p in series}) == 1


def test_future_update_changes_later_occurrences_only(container):
    series = _rent(container)

    container.purchase_service.update(series[2].purchase_id, {"amount": "550"}, scope=EditScope.FUTURE)

    amounts = [p.amount for p in sorted(container.purchase_service.list(), key=lambda p: p.date)]
    assert amounts == [Decimal("500"), Decimal("500"), Decimal("550"), Decimal("550")]


def test_single_update_moves_one_occurrence(container):
    series = _rent(container)

    (moved,) = container.purchase_service.update(series[0].purchase_id, {"date": "2024-02-01"})

    assert moved.date == date(2024, 2, 1)
    assert container.purchase_service.get(series[1].purchase_id).date == date(2024, 2, 29)


def test_future_delete_truncates_series(container):
    series = _rent(container)

    assert container.purchase_service.delete(series[1].purchase_id, scope=EditScope.FUTURE) == 3

    (left,) = container.purchase_service.list()
    assert left.recurring_end_date == date(2024, 1, 31)


def test_future_scope_on_one_off_purchase(container):
    (purchase,) = container.purchase_service.create({"date": "2024-01-05", "description": "Pens", "amount": "4.99"})

    with pytest.raises(ValidationError):
        container.purchase_service.delete(purchase.purchase_id, scope=EditScope.FUTURE)


def test_filters_and_categories(container):
    _rent(container)
    container.purchase_service.create({"date": "2024-02-10", "description": "Books", "amount": "20", "category": "Supplies"})

    feb = container.purchase_service.list(start=date(2024, 2, 1), end=date(2024, 2, 29))
    supplies = container.purchase_service.list(category="Supplies")

    assert {p.description for p in feb} == {"Studio rent", "Books"}
    assert [p.description for p in supplies] == ["Books"]
    assert container.purchase_service.categories() == ["Rent", "Supplies"]


def test_missing_purchase(container):
    with pytest.raises(NotFoundError):
        container.purchase_service.get(1)
