"""Ledger services: pure calculation API plus database-backed workflows."""

from hoa_ledger.services.aging import (
    build_aging_report,
    classify_bucket,
    days_overdue,
    find_delinquent_units,
)
from hoa_ledger.services.arithmetic import round_cents, safe_divide
from hoa_ledger.services.assessment_service import AssessmentService
from hoa_ledger.services.budget_csv import (
    export_budget_csv,
    parse_budget_csv,
    validate_budget_import,
)
from hoa_ledger.services.budget_service import BudgetService
from hoa_ledger.services.db import create_session_factory, session_scope
from hoa_ledger.services.ledger import reconcile_invoice
from hoa_ledger.services.payment_service import PaymentService
from hoa_ledger.services.reporting import (
    calculate_budget_progress,
    calculate_budget_variance,
    calculate_collection_report,
)

__all__ = [
    "safe_divide",
    "round_cents",
    "AssessmentService",
    "reconcile_invoice",
    "days_overdue",
    "classify_bucket",
    "build_aging_report",
    "find_delinquent_units",
    "calculate_budget_variance",
    "calculate_budget_progress",
    "calculate_collection_report",
    "export_budget_csv",
    "parse_budget_csv",
    "validate_budget_import",
    "BudgetService",
    "PaymentService",
    "create_session_factory",
    "session_scope",
]
