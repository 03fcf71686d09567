"""Datas em UTC: o banco guarda datetime "naive" sempre em UTC."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def utcnow() -> datetime:
    """Instante atual em UTC, sem tzinfo (formato gravado no banco)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(dt: datetime) -> datetime:
    """Datas com fuso são convertidas para UTC; datas sem fuso já são tratadas como UTC."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def day_bounds(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    """
    Limites inclusivos de filtro por data: [start 00:00, end+1 00:00).
    O dia final inteiro fica incluído.
    """
    lower = datetime.combine(start, time.min) if start else None
    upper = datetime.combine(end + timedelta(days=1), time.min) if end else None
    return lower, upper


def month_key(dt: datetime) -> str:
    return dt.strftime("%Y-%m")


__all__ = ["utcnow", "to_utc_naive", "day_bounds", "month_key"]
