"""Receivables aging: bucket outstanding balances by days past due.

Buckets are keyed off today - due_date only; late fees already applied to an
invoice do not move it between buckets.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, NamedTuple

from hoa_ledger.models.invoice import OUTSTANDING_STATUSES, InvoiceStatus
from hoa_ledger.services.arithmetic import ZERO
from hoa_ledger.services.ledger import (
    active_invoices,
    group_payments_by_invoice,
    reconcile_invoice,
)

logger = logging.getLogger(__name__)


class AgingBucket(str, Enum):
    CURRENT = "current"
    DAYS_1_30 = "1-30"
    DAYS_31_60 = "31-60"
    DAYS_61_90 = "61-90"
    DAYS_90_PLUS = "90+"


class AgingReportRow(NamedTuple):
    """Outstanding balance of one unit, split by bucket."""

    unit_id: int | str
    unit_number: str
    current: Decimal
    days_1_30: Decimal
    days_31_60: Decimal
    days_61_90: Decimal
    days_90_plus: Decimal
    total_due: Decimal


class DelinquentUnit(NamedTuple):
    unit_id: int | str
    unit_number: str
    balance_due: Decimal
    days_past_due: int  # Age of the oldest past-due invoice


def _same_kind(due_date, today):
    # A datetime compared against a plain date falls back to calendar dates
    if isinstance(due_date, datetime) != isinstance(today, datetime):
        if isinstance(due_date, datetime):
            due_date = due_date.date()
        if isinstance(today, datetime):
            today = today.date()
    return due_date, today


def days_overdue(due_date: date, today: date) -> int:
    """Whole days past due, floored; never negative."""
    due_date, today = _same_kind(due_date, today)
    return max(0, (today - due_date).days)


def classify_bucket(due_date: date, today: date) -> AgingBucket:
    """Aging bucket for an invoice due on due_date, as of today."""
    days = days_overdue(due_date, today)
    if days <= 0:
        return AgingBucket.CURRENT
    if days <= 30:
        return AgingBucket.DAYS_1_30
    if days <= 60:
        return AgingBucket.DAYS_31_60
    if days <= 90:
        return AgingBucket.DAYS_61_90
    return AgingBucket.DAYS_90_PLUS


def _outstanding_balances(invoices: Iterable, payments: Iterable):
    """Yield (invoice, remaining balance) for open invoices that still owe money."""
    payments_by_invoice = group_payments_by_invoice(payments)
    for invoice in active_invoices(invoices):
        if InvoiceStatus(invoice.status) not in OUTSTANDING_STATUSES:
            continue
        ledger = reconcile_invoice(invoice, payments_by_invoice.get(invoice.id, []))
        if ledger.remaining_balance > 0:
            yield invoice, ledger.remaining_balance


def build_aging_report(
    units: Iterable,
    invoices: Iterable,
    payments: Iterable,
    today: date,
) -> list[AgingReportRow]:
    """Aggregate remaining balances per unit per aging bucket.

    Args:
        units: Objects exposing id and unit_number
        invoices: Invoices of any status; deleted and closed ones are skipped
        payments: Payments of those invoices (objects with invoice_id, amount)
        today: Reference date

    Returns:
        One row per unit with a positive total, largest total first
    """
    totals: dict = {}
    for invoice, remaining in _outstanding_balances(invoices, payments):
        buckets = totals.setdefault(invoice.unit_id, {bucket: ZERO for bucket in AgingBucket})
        buckets[classify_bucket(invoice.due_date, today)] += remaining

    rows = []
    for unit in units:
        buckets = totals.get(unit.id)
        if not buckets:
            continue
        total_due = sum(buckets.values(), ZERO)
        if total_due <= 0:
            continue
        rows.append(
            AgingReportRow(
                unit_id=unit.id,
                unit_number=unit.unit_number,
                current=buckets[AgingBucket.CURRENT],
                days_1_30=buckets[AgingBucket.DAYS_1_30],
                days_31_60=buckets[AgingBucket.DAYS_31_60],
                days_61_90=buckets[AgingBucket.DAYS_61_90],
                days_90_plus=buckets[AgingBucket.DAYS_90_PLUS],
                total_due=total_due,
            )
        )

    logger.debug(f"Aging report as of {today}: {len(rows)} unit(s) with balances")
    return sorted(rows, key=lambda row: row.total_due, reverse=True)


def find_delinquent_units(
    units: Iterable,
    invoices: Iterable,
    payments: Iterable,
    today: date,
) -> list[DelinquentUnit]:
    """Units owing money on invoices whose due date has passed.

    balance_due sums remaining balances of past-due invoices; days_past_due is
    the largest days_overdue among them. Sorted by balance_due, largest first.
    """
    units_by_id = {unit.id: unit for unit in units}
    delinquent: dict = {}

    for invoice, remaining in _outstanding_balances(invoices, payments):
        unit = units_by_id.get(invoice.unit_id)
        if unit is None:
            continue
        due_date, ref = _same_kind(invoice.due_date, today)
        if not due_date < ref:
            continue

        days = days_overdue(invoice.due_date, today)
        existing = delinquent.get(unit.id)
        if existing is None:
            delinquent[unit.id] = DelinquentUnit(unit.id, unit.unit_number, remaining, days)
        else:
            delinquent[unit.id] = existing._replace(
                balance_due=existing.balance_due + remaining,
                days_past_due=max(existing.days_past_due, days),
            )

    return sorted(delinquent.values(), key=lambda d: d.balance_due, reverse=True)


__all__ = [
    "AgingBucket",
    "AgingReportRow",
    "DelinquentUnit",
    "days_overdue",
    "classify_bucket",
    "build_aging_report",
    "find_delinquent_units",
]
