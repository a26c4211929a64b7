"""
Report helpers: date-range filters and aggregation over fetched rows.
"""
import re
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from app.core.time_gate import ensure_aware
from app.models.contribution import Contribution

DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MONTH_RE = re.compile(r"^\d{4}-\d{2}$")
YEAR_RE = re.compile(r"^\d{4}$")


def parse_period(value: Optional[str]) -> Optional[tuple[date, date]]:
    """
    Turn ``YYYY``, ``YYYY-MM`` or ``YYYY-MM-DD`` into an inclusive date range.

    Anything else (including impossible dates) means "no filter" and
    returns None.
    """
    if not value:
        return None
    value = value.strip()
    try:
        if DAY_RE.match(value):
            day = date.fromisoformat(value)
            return day, day
        if MONTH_RE.match(value):
            start = date.fromisoformat(f"{value}-01")
            return start, start + relativedelta(months=1) - timedelta(days=1)
        if YEAR_RE.match(value):
            start = date(int(value), 1, 1)
            return start, date(start.year, 12, 31)
    except ValueError:
        return None
    return None


def resolve_range(
    period: Optional[str],
    start_date: Optional[date],
    end_date: Optional[date],
) -> Optional[tuple[Optional[date], Optional[date]]]:
    """A period string wins over explicit start/end dates."""
    parsed = parse_period(period)
    if parsed is not None:
        return parsed
    if start_date or end_date:
        return start_date, end_date
    return None


def datetime_bounds(start: Optional[date], end: Optional[date]) -> tuple[Optional[datetime], Optional[datetime]]:
    """Inclusive date range -> [start 00:00, day after end 00:00) in UTC."""
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc) if start else None
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc) if end else None
    return lower, upper


def percentage(part: Decimal, whole: Decimal) -> int:
    """Progress percentage clamped to 0..100."""
    if not whole or whole <= 0:
        return 0
    return max(0, min(100, round(float(part) / float(whole) * 100)))


def contribution_totals(rows: Iterable[Contribution]) -> dict:
    pledged = paid = discount = remaining = Decimal("0")
    count = 0
    for row in rows:
        count += 1
        pledged += row.pledged
        paid += row.paid
        discount += row.discount
        remaining += row.remaining
    return {
        "count": count,
        "pledged": pledged,
        "paid": paid,
        "discount": discount,
        "remaining": remaining,
    }


def group_contributions(rows: Iterable[Contribution], key: str) -> list[dict]:
    """Totals grouped by ``contribution_type`` or ``contributor``."""
    groups: dict[str, list[Contribution]] = defaultdict(list)
    for row in rows:
        if key == "contributor":
            label = row.member_number or row.full_name
        else:
            label = getattr(row, key)
        groups[label].append(row)

    result = []
    for label, members in sorted(groups.items()):
        totals = contribution_totals(members)
        result.append({
            "key": label,
            "name": members[0].full_name if key == "contributor" else label,
            **totals,
            "progress": percentage(totals["paid"] + totals["discount"], totals["pledged"]),
        })
    return result


def monthly_progress(rows: Iterable[Contribution]) -> list[dict]:
    groups: dict[str, list[Contribution]] = defaultdict(list)
    for row in rows:
        groups[ensure_aware(row.created).strftime("%Y-%m")].append(row)

    result = []
    for month, members in sorted(groups.items()):
        totals = contribution_totals(members)
        result.append({
            "month": month,
            "pledged": totals["pledged"],
            "paid": totals["paid"],
            "progress": percentage(totals["paid"] + totals["discount"], totals["pledged"]),
        })
    return result
