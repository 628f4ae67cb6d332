"""Derived production metrics: FTotal/average per batch and the machine,
month and calendar aggregations built on top of them."""

import calendar
from datetime import date
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Dict, Iterable, List, Optional, Tuple
from geetha_tex.domain import (
    Batch,
    BatchStatus,
    CalculatedBatch,
    MachineBucket,
    MonthTotals,
    MonthlyReport,
    TopMachine,
)

FTOTAL_DIVISOR = 4


def round_half_up(value: float, places: int = 0) -> float:
    """Round halves away from zero, on the shortest decimal repr of ``value``.

    Python's ``round`` rounds halves to even (``round(2.5) == 2``); production
    bills have always shown 2.5 FTotal as 3.
    """
    exact = Decimal(repr(value))
    with localcontext() as ctx:
        # quantize needs every integer digit plus the kept decimals
        ctx.prec = max(ctx.prec, exact.adjusted() + places + 2)
        quantum = Decimal(1).scaleb(-places)
        return float(exact.quantize(quantum, rounding=ROUND_HALF_UP))


def derive_batch(batch: Batch) -> CalculatedBatch:
    ftotal = int(round_half_up(batch.meter_value / FTOTAL_DIVISOR))
    average = round_half_up(batch.meter_value / ftotal, 2) if ftotal > 0 else 0
    return CalculatedBatch(**batch.model_dump(), ftotal=ftotal, average=average)


def derive_all(batches: Iterable[Batch]) -> List[CalculatedBatch]:
    """Derive every batch, most recent start date first.

    ``sorted`` is stable with ``reverse=True`` too, so batches sharing a start
    date keep their input order.
    """
    calculated = [derive_batch(b) for b in batches]
    return sorted(calculated, key=lambda b: b.start_date, reverse=True)


def aggregate_by_machine(calculated: List[CalculatedBatch], machine_count: int) -> List[MachineBucket]:
    buckets = []
    for machine_number in range(1, machine_count + 1):
        batches = [b for b in calculated if b.machine_number == machine_number]
        buckets.append(MachineBucket(
            machine_number=machine_number,
            batches=batches,
            latest_batch=batches[0] if batches else None,
            total_meter=sum(b.meter_value for b in batches),
            total_ftotal=sum(b.ftotal for b in batches),
        ))
    return buckets


def in_month(day: date, year: int, month: int) -> bool:
    return day.year == year and day.month == month


def month_batches(calculated: List[CalculatedBatch], year: int, month: int) -> List[CalculatedBatch]:
    return [b for b in calculated if in_month(b.start_date, year, month)]


def aggregate_by_month(calculated: List[CalculatedBatch], year: int, month: int) -> MonthTotals:
    selected = month_batches(calculated, year, month)
    return MonthTotals(
        total_batches=len(selected),
        total_meter=sum(b.meter_value for b in selected),
        total_ftotal=sum(b.ftotal for b in selected),
    )


def month_label(year: int, month: int) -> str:
    return f"{calendar.month_name[month]} {year}"


def _top_machine(selected: List[CalculatedBatch]) -> Optional[TopMachine]:
    counts: Dict[int, int] = {}
    for b in selected:
        counts[b.machine_number] = counts.get(b.machine_number, 0) + 1
    if not counts:
        return None
    # Most batches wins, lowest machine number on a tie
    machine_number, total = min(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return TopMachine(machine_number=machine_number, total_batches=total)


def monthly_report(calculated: List[CalculatedBatch], year: int, month: int) -> MonthlyReport:
    selected = month_batches(calculated, year, month)
    totals = aggregate_by_month(selected, year, month)

    status_counts = {status.value: 0 for status in BatchStatus}
    for b in selected:
        status_counts[b.status.value] += 1

    return MonthlyReport(
        month=month_label(year, month),
        **totals.model_dump(),
        top_machine=_top_machine(selected),
        status_counts=status_counts,
    )


def calendar_month(batches: Iterable[Batch], year: int, month: int) -> dict:
    """Month grid data: blank cells before day 1 (weeks start on Sunday),
    number of days, and the batches starting on each day."""
    monday_based, days_in_month = calendar.monthrange(year, month)
    leading_blank_days = (monday_based + 1) % 7

    by_date: Dict[str, List[Batch]] = {}
    for b in batches:
        if in_month(b.start_date, year, month):
            by_date.setdefault(b.start_date.isoformat(), []).append(b)

    return {
        "year": year,
        "month": month,
        "label": month_label(year, month),
        "leadingBlankDays": leading_blank_days,
        "daysInMonth": days_in_month,
        "batchesByDate": by_date,
    }


def shift_month(year: int, month: int, amount: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + amount
    return index // 12, index % 12 + 1
