"""
Helpers de data/hora. Tudo é tratado em UTC.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional

from utils.errors import InvalidArgument


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value, field: str, *, end_of_day: bool = False) -> Optional[datetime]:
    """Aceita 'YYYY-MM-DD' ou ISO 8601; data pura no fim do intervalo cobre o dia inteiro."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    s = str(value).strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        if len(s) == 10:
            d = date.fromisoformat(s)
            t = time.max if end_of_day else time.min
            return datetime.combine(d, t, tzinfo=timezone.utc)
        return as_utc(datetime.fromisoformat(s))
    except ValueError:
        raise InvalidArgument(f"{field} inválido: {value}")


def parse_date(value, field: str) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    s = str(value).strip()
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        raise InvalidArgument(f"{field} inválido: {value}")


def start_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def shift_months(d: datetime, months: int) -> datetime:
    """Desloca um datetime já no dia 1 por N meses (negativo = passado)."""
    idx = d.year * 12 + (d.month - 1) + months
    return d.replace(year=idx // 12, month=idx % 12 + 1)


def isoformat(value) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def resolve_range(start, end, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    now = now or utcnow()
    start_dt = parse_datetime(start, "start_date") or start_of_month(now)
    end_dt = parse_datetime(end, "end_date", end_of_day=True) or now
    if start_dt > end_dt:
        raise InvalidArgument("start_date deve ser anterior a end_date")
    return start_dt, end_dt
