"""CSV export of salary records."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from decimal import Decimal

from academy_payroll.calculators.salary_calculator import round_for_display
from academy_payroll.models.salary import SalaryRecord

EXPORT_COLUMNS = [
    "teacher",
    "month",
    "year",
    "hourly_rate",
    "hours_worked",
    "base_salary",
    "total_allowances",
    "total_bonuses",
    "total_deductions",
    "total_gross",
    "total_net",
    "currency",
    "status",
    "approved_at",
    "paid_at",
]

MONEY_COLUMNS = {
    "base_salary",
    "total_allowances",
    "total_bonuses",
    "total_deductions",
    "total_gross",
    "total_net",
}


def export_row(
    record: SalaryRecord, quantum: Decimal = Decimal("1"), currency: str = ""
) -> dict[str, str]:
    """Flatten a record into display strings. Money is rounded, hours and rates are not."""
    row: dict[str, str] = {}
    for column in EXPORT_COLUMNS:
        if column == "currency":
            row[column] = currency
            continue
        if column == "teacher":
            value = record.teacher.full_name if record.teacher else str(record.teacher_id)
        else:
            value = getattr(record, column)
        if value is None:
            row[column] = ""
        elif column in MONEY_COLUMNS:
            row[column] = str(round_for_display(value, quantum))
        elif hasattr(value, "isoformat"):
            row[column] = value.isoformat()
        else:
            row[column] = str(value)
    return row


def export_csv(
    records: Iterable[SalaryRecord], quantum: Decimal = Decimal("1"), currency: str = ""
) -> str:
    """Serialise salary records to CSV with a header row."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS)
    writer.writeheader()
    for record in records:
        writer.writerow(export_row(record, quantum, currency))
    return buffer.getvalue()
