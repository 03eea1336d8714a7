from __future__ import annotations

import logging
from datetime import date
from functools import wraps
from typing import Any, Optional

from flask import jsonify, request

from ..core.enums import EditScope
from ..core.exceptions import ConflictError, DomainError, NotFoundError, ValidationError
from .datetime_utils import parse_optional_date

logger = logging.getLogger(__name__)


def api_errors(view):
    """Translate domain errors raised by a view into JSON error responses."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except ValidationError as e:
            return jsonify({"success": False, "message": str(e)}), 400
        except NotFoundError as e:
            return jsonify({"success": False, "message": str(e)}), 404
        except ConflictError as e:
            return jsonify({"success": False, "message": str(e)}), 409
        except DomainError as e:
            return jsonify({"success": False, "message": str(e)}), 400
        except Exception:
            logger.exception("Unhandled error in %s %s", request.method, request.path)
            return jsonify({"success": False, "message": "Internal server error"}), 500

    return wrapper


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def query_arg(name: str) -> Optional[str]:
    value = request.args.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def ok(data: Any = None, status: int = 200):
    return jsonify({"success": True, "data": data}), status


def scope_arg() -> EditScope:
    """``?scope=single|future``; the older ``?deleteFuture=true`` means future."""
    raw = query_arg("scope")
    if raw is None:
        legacy = (query_arg("deleteFuture") or "").lower()
        return EditScope.FUTURE if legacy in {"1", "true", "yes"} else EditScope.SINGLE
    try:
        return EditScope(raw.lower())
    except ValueError:
        raise ValidationError("scope must be 'single' or 'future'")


def date_arg(name: str) -> Optional[date]:
    return parse_optional_date(query_arg(name))


def int_arg(name: str) -> Optional[int]:
    raw = query_arg(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a whole number")
