from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

import pytest

from tutoring_system.common.datetime_utils import parse_iso_date, parse_iso_datetime
from tutoring_system.common.logging_setup import SensitiveDataFilter
from tutoring_system.common.money import to_money
from tutoring_system.common.validators import parse_enum, require_amount, require_int
from tutoring_system.config import get_settings_module
from tutoring_system.core.enums import PaymentMethod
from tutoring_system.core.exceptions import ValidationError


def test_parse_dates():
    assert parse_iso_date("2024-01-22T10:00:00Z") == date(2024, 1, 22)
    assert parse_iso_datetime("2024-01-22T10:00:00Z") == datetime(2024, 1, 22, 10, 0)
    with pytest.raises(ValidationError):
        parse_iso_date("22/01/2024")


def test_money_rounding_and_rejects():
    assert to_money("10.005") == Decimal("10.01")
    assert to_money(3) == Decimal("3.00")
    for bad in (None, True, "abc", "NaN"):
        with pytest.raises(ValidationError):
            to_money(bad)


def test_validators():
    assert parse_enum(PaymentMethod, " Card ", "Method") == PaymentMethod.CARD
    with pytest.raises(ValidationError):
        parse_enum(PaymentMethod, "bitcoin", "Method")
    with pytest.raises(ValidationError):
        require_amount("-5", "Amount")
    with pytest.raises(ValidationError):
        require_int("x", "Duration")


@pytest.mark.parametrize(
    "env, module",
    [
        ("production", "tutoring_system.config.production"),
        ("test", "tutoring_system.config.testing"),
        ("whatever", "tutoring_system.config.development"),
    ],
)
def test_settings_module_follows_app_env(monkeypatch, env, module):
    monkeypatch.setenv("APP_ENV", env)

    assert get_settings_module() == module


def test_sensitive_data_filter_masks_passwords():
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "connect password=hunter2 ok", None, None)

    SensitiveDataFilter().filter(record)

    assert "hunter2" not in record.getMessage()


def test_money_rejects_amounts_beyond_column_range():
    assert to_money("99999999.99") == Decimal("99999999.99")
    for bad in ("1e30", "100000000", "-100000000"):
        with pytest.raises(ValidationError):
            to_money(bad)


def test_sensitive_data_filter_masks_formatted_arguments():
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "connect %s", ("password=hunter2",), None)

    SensitiveDataFilter().filter(record)

    assert "hunter2" not in record.getMessage()
    assert record.args is None
