from datetime import date, datetime, time
from enum import Enum
from typing import Any

from pydantic import BaseModel
from sqlalchemy import inspect as sa_inspect


def make_json_safe(value: Any) -> Any:
    """Convert tool results (ORM rows, dataclasses, dates) into JSON-compatible data."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value

    if isinstance(value, Enum):
        return value.value

    if isinstance(value, (date, datetime, time)):
        return value.isoformat()

    if isinstance(value, dict):
        return {
            str(key): make_json_safe(item)
            for key, item in value.items()
        }

    if isinstance(value, (list, tuple, set)):
        return [make_json_safe(item) for item in value]

    if isinstance(value, BaseModel):
        return make_json_safe(value.model_dump())

    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return make_json_safe(to_dict())

    if hasattr(value, "__mapper__"):
        # Column names as keys; attribute names can differ (e.g. "metadata").
        data: dict[str, Any] = {}
        for attr in sa_inspect(value).mapper.column_attrs:
            data[attr.columns[0].name] = make_json_safe(getattr(value, attr.key))
        return data

    return str(value)
