"""CLI entry point for budget CSV import/export and assessment previews.

Usage:
    python -m hoa_ledger.cli.budget export 1 -o budget-2025.csv
    python -m hoa_ledger.cli.budget import 1 budget-2025.csv --replace
    python -m hoa_ledger.cli.budget assessments 1

Exit Codes:
    0 - Success
    1 - Failure: error logged; database state unchanged

Logging:
    LOG_LEVEL (default INFO) to both stdout and LOG_FILE
"""

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from hoa_ledger.services.budget_service import BudgetService
from hoa_ledger.services.config import load_config
from hoa_ledger.services.db import session_scope
from hoa_ledger.services.errors import LedgerError
from hoa_ledger.services.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hoa-ledger-budget",
        description="Budget CSV import/export and unit assessment preview",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    export = commands.add_parser("export", help="Write a budget as CSV")
    export.add_argument("budget_id", type=int)
    export.add_argument("-o", "--output", help="Output file (default: stdout)")

    import_ = commands.add_parser("import", help="Import budget lines from CSV")
    import_.add_argument("budget_id", type=int)
    import_.add_argument("file", help="CSV file to import")
    import_.add_argument("--replace", action="store_true", help="Delete existing lines first")

    preview = commands.add_parser("assessments", help="Show per-unit assessments")
    preview.add_argument("budget_id", type=int)

    return parser


def run(args: argparse.Namespace, service: BudgetService) -> None:
    """Execute one parsed command against a budget service."""
    if args.command == "export":
        content = service.export_csv(args.budget_id)
        if args.output:
            Path(args.output).write_text(content + "\n", encoding="utf-8")
        else:
            print(content)

    elif args.command == "import":
        text = Path(args.file).read_text(encoding="utf-8-sig")
        warnings = service.import_csv(args.budget_id, text, replace=args.replace)
        for warning in warnings:
            print(f"warning: {warning}")

    elif args.command == "assessments":
        preview = service.preview_assessments(args.budget_id)
        print(
            f"Budget total: {preview.budget_total} "
            f"(common area {preview.common_area_percentage}%)"
        )
        print(f"{'Unit':<10} {'Sq ft':>10} {'Share %':>9} {'Monthly':>12} {'Annual':>12}")
        for a in preview.assessments:
            print(
                f"{a.unit_number:<10} {a.raw_square_feet:>10} {a.percentage_share:>9.3f} "
                f"{a.monthly_assessment:>12} {a.annual_assessment:>12}"
            )
        for warning in preview.warnings:
            print(f"warning: {warning}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point for the budget CLI.

    Returns:
        Exit code: 0 for success, 1 for failure
    """
    args = build_parser().parse_args(argv)

    config = load_config()
    logger = setup_logging(config.log_file)

    try:
        for session in session_scope(config.database_url, create_tables=True):
            run(args, BudgetService(session, config))
        return 0
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 1
    except (LedgerError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
