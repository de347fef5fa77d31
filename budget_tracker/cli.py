"""Console interface for the budget tracker."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

from ledger.exceptions import PersistenceError, ValidationError
from ledger.models import Entry, EntryType, format_amount
from ledger.services import LedgerStore
from ledger.storage import JSONFileStore


def _load_ledger(data_dir: Path) -> LedgerStore:
    return LedgerStore(JSONFileStore(data_dir))


def _format_entry(entry: Entry) -> str:
    sign = "+" if entry.type is EntryType.INCOME else "-"
    return (
        f"[{entry.id}] {entry.date.isoformat()} {entry.type.value:<7} "
        f"{sign}{format_amount(entry.amount)}\n"
        f"  Category: {entry.category}\n"
        f"  Description: {entry.description}\n"
    )


def _warn_if_unsaved(ledger: LedgerStore) -> None:
    if ledger.last_persist_error is not None:
        print(
            f"Warning: changes were not saved ({ledger.last_persist_error})",
            file=sys.stderr,
        )


def handle_add(args: argparse.Namespace, ledger: LedgerStore) -> None:
    payload = {
        "type": args.type,
        "category": args.category,
        "amount": args.amount,
        "description": args.description,
        "date": args.date,
    }
    entry = ledger.add(payload)
    print("Entry added:\n" + _format_entry(entry))
    _warn_if_unsaved(ledger)


def handle_list(args: argparse.Namespace, ledger: LedgerStore) -> None:
    entries = ledger.list(newest_first=not args.oldest_first)
    if not entries:
        print("No transactions yet.")
        return
    print(f"Found {len(entries)} transactions:")
    for entry in entries:
        print(_format_entry(entry))


def handle_delete(args: argparse.Namespace, ledger: LedgerStore) -> None:
    ledger.delete(args.id)
    print(f"Entry {args.id} deleted.")
    _warn_if_unsaved(ledger)


def handle_totals(args: argparse.Namespace, ledger: LedgerStore) -> None:
    totals = ledger.compute_totals()
    print(f"Total income:   {format_amount(totals.income)}")
    print(f"Total expenses: {format_amount(totals.expense)}")
    print(f"Balance:        {format_amount(totals.balance)}")


def handle_report(args: argparse.Namespace, ledger: LedgerStore) -> None:
    breakdown = ledger.compute_category_breakdown()
    if not breakdown:
        print("No data to display yet.")
    else:
        print(f"{'Category':<20} {'Income':>12} {'Expense':>12} {'Net':>12}")
        for category, amounts in breakdown.items():
            print(
                f"{category:<20} {format_amount(amounts.income):>12} "
                f"{format_amount(amounts.expense):>12} {format_amount(amounts.balance):>12}"
            )
    stats = ledger.compute_statistics().to_dict()
    print()
    print(f"Total transactions:  {stats['transaction_count']}")
    print(f"Categories tracked:  {stats['category_count']}")
    print(f"Average transaction: {stats['average_transaction']}")
    print(f"Savings rate:        {stats['savings_rate']}%")


def handle_export(args: argparse.Namespace, ledger: LedgerStore) -> None:
    data = ledger.export_snapshot()
    if args.output == "-":
        sys.stdout.write(data.decode("utf-8") + "\n")
        return
    target = Path(args.output) if args.output else Path(ledger.export_filename())
    if target.is_dir():
        target = target / ledger.export_filename()
    target.write_bytes(data)
    print(f"Exported {len(ledger.list())} entries to {target}")


HANDLERS = {
    "add": handle_add,
    "list": handle_list,
    "delete": handle_delete,
    "totals": handle_totals,
    "report": handle_report,
    "export": handle_export,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Budget Tracker CLI")
    parser.add_argument(
        "--data-dir",
        default=os.getenv("BUDGET_TRACKER_DATA_DIR", "data"),
        type=Path,
        help="Directory to store JSON data (default: ./data)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    add_parser = subparsers.add_parser("add", help="Record a new transaction")
    add_parser.add_argument("type", choices=[member.value for member in EntryType])
    add_parser.add_argument("category")
    add_parser.add_argument("amount")
    add_parser.add_argument("description")
    add_parser.add_argument(
        "--date",
        default=date.today().isoformat(),
        help="Transaction date as YYYY-MM-DD (default: today)",
    )

    list_parser = subparsers.add_parser("list", help="List transactions, newest first")
    list_parser.add_argument("--oldest-first", action="store_true")

    delete_parser = subparsers.add_parser("delete", help="Delete a transaction")
    delete_parser.add_argument("id", type=int)

    subparsers.add_parser("totals", help="Show income, expense and balance")
    subparsers.add_parser("report", help="Show the category breakdown and statistics")

    export_parser = subparsers.add_parser("export", help="Export transactions as JSON")
    export_parser.add_argument(
        "--output",
        help="File or directory to write to, or '-' for stdout "
        "(default: budget-data-<today>.json)",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
    )
    try:
        ledger = _load_ledger(args.data_dir)
    except PersistenceError as exc:
        print(f"Storage error: {exc}", file=sys.stderr)
        return 1

    try:
        HANDLERS[args.command](args, ledger)
    except ValidationError as exc:
        print("Validation error:", file=sys.stderr)
        for field, error in exc.errors.items():
            print(f"  {field}: {error.message}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Export failed: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
