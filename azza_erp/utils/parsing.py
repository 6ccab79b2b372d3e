# azza_erp/utils/parsing.py
from __future__ import annotations

import enum
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar

E = TypeVar("E", bound=enum.Enum)

_TRUE = {"1", "true", "yes", "on", "y"}
_FALSE = {"0", "false", "no", "off", "n", ""}


def clean_str(val: Any) -> str | None:
    if val is None:
        return None
    s = str(val).strip()
    return s or None


def parse_decimal(val: Any) -> Decimal | None:
    if val is None or val == "":
        return None
    if isinstance(val, bool):
        return None
    if isinstance(val, Decimal):
        d = val
    else:
        try:
            d = Decimal(str(val).strip())
        except (InvalidOperation, ValueError):
            return None
    # NaN / Infinity are not amounts
    return d if d.is_finite() else None


def parse_int(val: Any) -> int | None:
    if val is None or val == "":
        return None
    if isinstance(val, bool):
        return None
    try:
        return int(val)
    except (TypeError, ValueError):
        return None


def parse_date(val: Any) -> date | None:
    if val is None or val == "":
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    try:
        return datetime.strptime(str(val).strip()[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_bool(val: Any) -> bool | None:
    if val is None:
        return None
    if isinstance(val, bool):
        return val
    s = str(val).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    return None


def parse_enum(enum_cls: type[E], val: Any) -> E | None:
    if val is None or val == "":
        return None
    if isinstance(val, enum_cls):
        return val
    s = str(val).strip()
    for member in enum_cls:
        if member.value == s or member.value == s.lower() or member.name == s.upper():
            return member
    return None


def parse_id_list(val: Any) -> list[int]:
    """Accepts [1, "2"] or "1,2"; drops blanks, keeps order, removes duplicates."""
    if val is None:
        return []
    if isinstance(val, str):
        raw = val.split(",")
    elif isinstance(val, (list, tuple, set)):
        raw = list(val)
    else:
        raw = [val]

    out: list[int] = []
    for item in raw:
        n = parse_int(item.strip() if isinstance(item, str) else item)
        if n is not None and n not in out:
            out.append(n)
    return out
