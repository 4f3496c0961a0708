"""Budget CSV import/export.

File layout (UTF-8, comma-delimited):

    Budget: <name>
    Generated: <YYYY-MM-DD>

    Category,January,...,December,Annual Total
    "<category>",<jan>,...,<dec>,<annual>

Only the quoting subset the export produces is understood: a comma delimiter,
double-quoted fields and "" as an escaped quote inside a quoted field. Fields
never span lines.

Example:
    >>> tokenize_csv_line('"Pool, Spa",10.00,,12')
    ['Pool, Spa', '10.00', '', '12']
"""

import logging
import re
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, NamedTuple, Optional

from hoa_ledger.models.budget import MONTH_FIELDS
from hoa_ledger.services.arithmetic import ZERO, round_cents, to_decimal
from hoa_ledger.services.errors import ValidationError

logger = logging.getLogger(__name__)

HEADER = ["Category", *(month.capitalize() for month in MONTH_FIELDS), "Annual Total"]
MIN_TOKENS = 1 + len(MONTH_FIELDS)
TOTAL_TOLERANCE = Decimal("0.01")
# Largest value a Numeric(12, 2) amount column holds
MAX_AMOUNT = Decimal("9999999999.99")

# Leading numeric prefix, the way a lenient float parser reads "12.5abc" as 12.5
_NUMBER_PREFIX = re.compile(r"\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


class BudgetCSVRow(NamedTuple):
    """One parsed line item."""

    category: str
    monthly_amounts: tuple[Decimal, ...]
    declared_total: Optional[Decimal]  # "Annual Total" column as written in the file

    @property
    def category_name(self) -> str:
        return self.category

    @property
    def month_total(self) -> Decimal:
        return sum(self.monthly_amounts, ZERO)

    @property
    def annual_total(self) -> Decimal:
        """The imported annual total: always the sum of the months."""
        return self.month_total

    def as_line_fields(self) -> dict:
        """Column values for a BudgetLine built from this row."""
        fields = dict(zip(MONTH_FIELDS, self.monthly_amounts))
        fields["category_name"] = self.category
        return fields


class ImportValidation(NamedTuple):
    is_valid: bool
    errors: list[str]
    warnings: list[str]


class _TokenState(Enum):
    UNQUOTED = "unquoted"
    QUOTED = "quoted"
    QUOTE_IN_QUOTED = "quote_in_quoted"  # Saw '"' inside quotes: escape or close


def tokenize_csv_line(line: str) -> list[str]:
    """Split one CSV line into fields.

    Raises:
        ValidationError: If a quoted field is never closed
    """
    fields = []
    current = []
    state = _TokenState.UNQUOTED

    for char in line:
        if state is _TokenState.UNQUOTED:
            if char == '"':
                state = _TokenState.QUOTED
            elif char == ",":
                fields.append("".join(current))
                current = []
            else:
                current.append(char)
        elif state is _TokenState.QUOTED:
            if char == '"':
                state = _TokenState.QUOTE_IN_QUOTED
            else:
                current.append(char)
        else:
            if char == '"':
                current.append('"')
                state = _TokenState.QUOTED
            elif char == ",":
                fields.append("".join(current))
                current = []
                state = _TokenState.UNQUOTED
            else:
                current.append(char)
                state = _TokenState.UNQUOTED

    if state is _TokenState.QUOTED:
        raise ValidationError(f"Unterminated quoted field in line: {line!r}")

    fields.append("".join(current))
    return fields


def parse_amount(value: Optional[str]) -> Decimal:
    """Read the leading number of a field; anything unreadable is 0."""
    if not value:
        return ZERO
    match = _NUMBER_PREFIX.match(value)
    if not match:
        return ZERO
    return Decimal(match.group(1))


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _format_amount(value) -> str:
    return f"{round_cents(value):.2f}"


def _monthly_amounts(line) -> tuple:
    amounts = getattr(line, "monthly_amounts", None)
    if amounts is None:
        amounts = tuple(getattr(line, month, None) for month in MONTH_FIELDS)
    return tuple(to_decimal(amount) for amount in amounts)


def export_budget_csv(
    budget_lines: Iterable,
    budget_name: str,
    generated: Optional[date] = None,
) -> str:
    """Render budget lines as CSV text.

    Args:
        budget_lines: Objects exposing category_name and either monthly_amounts
            or january..december attributes
        budget_name: Written to the "Budget:" metadata line
        generated: Date for the "Generated:" line (default: today)

    Returns:
        CSV text; category names are always quoted
    """
    generated = generated or date.today()
    output = [
        f"Budget: {budget_name}",
        f"Generated: {generated.isoformat()}",
        "",
        ",".join(HEADER),
    ]

    for line in budget_lines:
        months = _monthly_amounts(line)
        row = [_quote(line.category_name or "")]
        row.extend(_format_amount(amount) for amount in months)
        row.append(_format_amount(sum(months, ZERO)))
        output.append(",".join(row))

    return "\n".join(output)


def _find_header(lines: list[str]) -> int:
    for index, line in enumerate(lines):
        lowered = line.lower()
        first_field = lowered.split(",", 1)[0].strip().strip('"').strip()
        if first_field == "category" and "january" in lowered:
            return index
    raise ValidationError('CSV is missing headers. Expected "Category" and "January" columns.')


def parse_budget_csv(text: str) -> list[BudgetCSVRow]:
    """Parse budget CSV text into rows.

    Lines before the header (metadata, blanks) are ignored. Data lines with
    fewer than 13 fields are skipped; a line whose quoting cannot be read is
    skipped with a warning.

    Raises:
        ValidationError: If no header is found or no row survives parsing
    """
    lines = text.strip().splitlines()
    header_index = _find_header(lines)

    rows = []
    for number, line in enumerate(lines[header_index + 1 :], start=header_index + 2):
        if not line.strip():
            continue

        try:
            tokens = tokenize_csv_line(line)
        except ValidationError as e:
            logger.warning(f"Skipping CSV line {number}: {e}")
            continue

        if len(tokens) < MIN_TOKENS:
            logger.debug(f"Skipping CSV line {number}: {len(tokens)} fields")
            continue

        declared = tokens[MIN_TOKENS].strip() if len(tokens) > MIN_TOKENS else ""
        rows.append(
            BudgetCSVRow(
                category=tokens[0].strip(),
                monthly_amounts=tuple(parse_amount(token) for token in tokens[1:MIN_TOKENS]),
                declared_total=parse_amount(declared) if declared else None,
            )
        )

    if not rows:
        raise ValidationError("No valid budget data found in CSV.")

    logger.debug(f"Parsed {len(rows)} budget row(s) from CSV")
    return rows


def validate_budget_import(rows: Iterable[BudgetCSVRow]) -> ImportValidation:
    """Check parsed rows before they are written.

    Errors (block the import): no rows, a row without a category name, or a
    month or annual total above MAX_AMOUNT.
    Warnings (import proceeds): all twelve months zero, or a declared annual
    total more than $0.01 away from the sum of the months, in which case the
    sum of the months is imported.
    """
    rows = list(rows)
    errors: list[str] = []
    warnings: list[str] = []

    if not rows:
        errors.append("No budget lines found in import data.")
        return ImportValidation(is_valid=False, errors=errors, warnings=warnings)

    for index, row in enumerate(rows, start=1):
        if not row.category:
            errors.append(f"Line {index}: Category name is required.")

        month_total = row.month_total
        if any(abs(amount) > MAX_AMOUNT for amount in (*row.monthly_amounts, month_total)):
            errors.append(
                f"Line {index} ({row.category}): Amounts must not exceed {MAX_AMOUNT}."
            )
            continue

        if month_total == 0:
            warnings.append(
                f"Line {index} ({row.category}): No monthly amounts found. "
                f"This line will be created with zero values."
            )

        if row.declared_total and abs(month_total - row.declared_total) > TOTAL_TOLERANCE:
            warnings.append(
                f"Line {index} ({row.category}): Monthly total ({month_total:.2f}) doesn't match "
                f"Annual Total ({row.declared_total:.2f}). The sum of months will be used."
            )

    return ImportValidation(is_valid=not errors, errors=errors, warnings=warnings)


__all__ = [
    "HEADER",
    "MAX_AMOUNT",
    "BudgetCSVRow",
    "ImportValidation",
    "tokenize_csv_line",
    "parse_amount",
    "export_budget_csv",
    "parse_budget_csv",
    "validate_budget_import",
]
