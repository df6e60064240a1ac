# SMB Cashflow - Cash-flow ledger & settlement engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for SMB Cashflow.

This module wires together the main building blocks of SMB Cashflow:

- global configuration (owner, database, dashboard and display options),
- entry storage (SQLite),
- settlement of Credit / Advance entries,
- aggregation engine (cash and profit lenses),
- view helpers (tabular rendering and CSV export).

The CLI is intentionally thin: it does not implement any cash-flow or
settlement logic itself. It orchestrates the underlying modules based on
command-line arguments and the configuration file.


High-level pipeline
-------------------

1) Load the main TOML configuration (smb_cashflow_config.toml by default)
   using ``load_app_config()`` and configure logging.

2) Resolve the acting owner (``--owner`` overrides ``[ledger] owner``).

3) Open the SQLite store (the schema is created when missing).

4) Run the requested command:

   - ``entries add``     record a new entry,
   - ``entries list``    list entries for a period,
   - ``entries edit``    edit an unsettled entry,
   - ``entries open``    list unsettled Credit / Advance entries,
   - ``settle``          settle a Credit / Advance entry,
   - ``dashboard``       cash, profit, categories, pending balances,
   - ``trend``           monthly profit trend.

   ``dashboard`` is the default when no command is given.

5) Render the result as console tables and/or CSV files depending on the
   display mode.


Period selection
----------------

    --period all-time | this-year | this-month
    --from-date YYYY-MM-DD --to-date YYYY-MM-DD

A custom range takes precedence over ``--period``. A custom range with a
single bound falls back to all-time. When neither is given, the dashboard
uses ``[dashboard] default_period`` and ``entries list`` uses all-time.


Examples
--------

Record a credit sale and settle it:

    smb-cashflow entries add --type Credit --category Sales \\
        --payment-method Bank --amount 500 --date 2024-03-01
    smb-cashflow settle 1 --amount 500 --date 2024-03-15

Show the dashboard for the current year and export it as CSV:

    smb-cashflow --period this-year --display-mode both dashboard
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .config import AppConfig, configure_logging, load_app_config
from .entries import CATEGORIES, ENTRY_TYPES, PAYMENT_METHODS, EntryUpdate
from .entries_service import (
    create_entry,
    dashboard_for_period,
    edit_entry,
    list_entries_for_period,
    list_open_entries,
    open_repository,
    profit_trend_for_owner,
    settle,
)
from .errors import LedgerError
from .labels import describe_entry
from .periods import (
    PERIOD_SELECTORS,
    Period,
    determine_period_from_args,
    resolve_period,
)
from .views import (
    cash_to_dataframe,
    categories_to_dataframe,
    entries_to_dataframe,
    expenses_to_dataframe,
    export_csv,
    payment_methods_to_dataframe,
    pending_to_dataframe,
    profit_to_dataframe,
    trend_to_dataframe,
)

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="smb-cashflow",
        description=(
            "SMB Cashflow - Cash-flow ledger & settlement engine for SMBs. "
            "Records cash, credit and advance entries, settles credits and "
            "advances, and renders cash and profit dashboards."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of smb_cashflow and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the main TOML configuration file. "
            "If omitted, 'smb_cashflow_config.toml' in the current directory is used."
        ),
    )
    ap.add_argument(
        "--owner",
        dest="owner",
        help="Owner id to act as. Overrides [ledger] owner from the configuration.",
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the [logging] level setting from the configuration file.",
    )

    # Period selection
    ap.add_argument(
        "--period",
        choices=[p for p in PERIOD_SELECTORS if p != "custom"],
        help="Predefined reporting period. One of: all-time, this-year, this-month.",
    )
    ap.add_argument(
        "--from-date",
        dest="from_date",
        help=(
            "Custom period start date (YYYY-MM-DD), used with --to-date. "
            "Given alone, the period falls back to all-time."
        ),
    )
    ap.add_argument(
        "--to-date",
        dest="to_date",
        help=(
            "Custom period end date (YYYY-MM-DD), used with --from-date. "
            "Given alone, the period falls back to all-time."
        ),
    )

    # Display options
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help=(
            "Output directory where CSV files will be written when display "
            "mode includes 'csv'. Overrides display.output_dir."
        ),
    )

    subparsers = ap.add_subparsers(
        dest="command",
        metavar="command",
        help="Subcommands: 'entries', 'settle', 'dashboard', 'trend'.",
    )

    # ------------------------------------------------------------------
    # entries
    # ------------------------------------------------------------------
    entries_parser = subparsers.add_parser(
        "entries",
        help="Record, list and edit entries.",
    )
    entries_subparsers = entries_parser.add_subparsers(
        dest="entries_command",
        metavar="entries-command",
        help="Entries subcommands: 'add', 'list', 'edit', 'open'.",
    )

    entries_add = entries_subparsers.add_parser("add", help="Record a new entry.")
    entries_add.add_argument(
        "--type", dest="entry_type", required=True, choices=ENTRY_TYPES
    )
    entries_add.add_argument("--category", required=True, choices=CATEGORIES)
    entries_add.add_argument(
        "--payment-method",
        dest="payment_method",
        default="None",
        choices=PAYMENT_METHODS,
    )
    entries_add.add_argument("--amount", required=True, help="Non-negative amount.")
    entries_add.add_argument(
        "--date",
        dest="entry_date",
        help="Entry date (YYYY-MM-DD). Defaults to today.",
    )
    entries_add.add_argument("--notes", help="Optional free text.")

    entries_subparsers.add_parser(
        "list",
        help="List entries for the selected period (all-time by default).",
    )

    entries_edit = entries_subparsers.add_parser(
        "edit",
        help="Edit an unsettled entry. Only the given fields are changed.",
    )
    entries_edit.add_argument("entry_id", type=int)
    entries_edit.add_argument("--type", dest="entry_type", choices=ENTRY_TYPES)
    entries_edit.add_argument("--category", choices=CATEGORIES)
    entries_edit.add_argument(
        "--payment-method", dest="payment_method", choices=PAYMENT_METHODS
    )
    entries_edit.add_argument("--amount")
    entries_edit.add_argument("--date", dest="entry_date")
    entries_edit.add_argument("--notes")

    entries_subparsers.add_parser(
        "open",
        help="List unsettled Credit and Advance entries.",
    )

    # ------------------------------------------------------------------
    # settle
    # ------------------------------------------------------------------
    settle_parser = subparsers.add_parser(
        "settle",
        help="Settle a Credit or Advance entry.",
    )
    settle_parser.add_argument("entry_id", type=int)
    settle_parser.add_argument(
        "--amount",
        help="Settlement amount. Defaults to the entry amount.",
    )
    settle_parser.add_argument(
        "--date",
        dest="settlement_date",
        help="Settlement date (YYYY-MM-DD). Defaults to today.",
    )

    # ------------------------------------------------------------------
    # dashboard / trend
    # ------------------------------------------------------------------
    subparsers.add_parser(
        "dashboard",
        help="Show cash, profit, category and pending summaries (default).",
    )

    trend_parser = subparsers.add_parser(
        "trend",
        help="Show the monthly profit trend.",
    )
    trend_parser.add_argument(
        "--months",
        type=int,
        help="Number of months. Overrides [dashboard] trend_months.",
    )

    return ap


def _format_period(period: Period) -> str:
    if period.is_unbounded:
        return f"Applied period: {period.label} (no date bounds)"
    start = period.start.date().isoformat() if period.start else "…"
    end = period.end.date().isoformat() if period.end else "…"
    return f"Applied period: {period.label} ({start} → {end})"


def _today() -> str:
    return datetime.now().date().isoformat()


def _render(
    views: list[tuple[str, str, pd.DataFrame]],
    display_mode: str,
    output_dir: Path,
) -> None:
    """
    Print and/or export a list of (title, file stem, DataFrame) views.

    CSV files are suffixed with a timestamp so that successive runs never
    overwrite each other.
    """
    if display_mode in {"table", "both"}:
        for title, _, df in views:
            print()
            print(f"=== {title} ===")
            if df.empty:
                print("(nothing to show)")
            else:
                print(df.to_string(index=False))

    if display_mode in {"csv", "both"}:
        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        for _, stem, df in views:
            path = export_csv(df, output_dir, f"{stem}_{timestamp}")
            print(f"Wrote {path} ({len(df)} rows)")


def _handle_entries_add(
    args: argparse.Namespace, config: AppConfig, repository, owner_id: str
) -> None:
    entry = create_entry(
        repository,
        owner_id,
        entry_type=args.entry_type,
        category=args.category,
        payment_method=args.payment_method,
        amount=args.amount,
        entry_date=args.entry_date or _today(),
        notes=args.notes,
    )
    display = describe_entry(entry)
    print(f"Entry #{entry.id} recorded:")
    print(f"  date:           {entry.entry_date.isoformat()}")
    print(f"  type:           {display.type_label}")
    print(f"  category:       {display.category_label}")
    print(f"  payment method: {entry.payment_method}")
    print(f"  amount:         {entry.amount:.2f} {config.currency}")


def _handle_entries_list(
    args: argparse.Namespace, config: AppConfig, repository, owner_id: str
) -> None:
    """
    Handle the 'entries list' subcommand.

    The period comes from --from-date/--to-date or --period; all-time when
    neither is given.
    """
    period = determine_period_from_args(args)
    entries = list_entries_for_period(repository, owner_id, period)

    print(_format_period(period))
    if not entries:
        print("No entries found for the given criteria.")
        return

    df = entries_to_dataframe(entries, decimals=config.amount_decimals)
    df_display = df.drop(columns=["color"])
    df_display["entry_date"] = df_display["entry_date"].astype(str)

    print()
    print(df_display.to_string(index=False))
    print()
    print(f"Total entries: {len(df)}")


def _handle_entries_edit(
    args: argparse.Namespace, config: AppConfig, repository, owner_id: str
) -> None:
    update = EntryUpdate(
        entry_type=args.entry_type,
        category=args.category,
        payment_method=args.payment_method,
        amount=args.amount,
        entry_date=args.entry_date,
        notes=args.notes,
    )
    if update.is_empty():
        raise SystemExit("Nothing to update: provide at least one field to change.")

    entry = edit_entry(repository, owner_id, args.entry_id, update)
    display = describe_entry(entry)
    print(
        f"Entry #{entry.id} updated: {entry.entry_date.isoformat()} "
        f"{display.type_label} {display.category_label} "
        f"{entry.amount:.2f} {config.currency}"
    )


def _handle_entries_open(
    args: argparse.Namespace, config: AppConfig, repository, owner_id: str
) -> None:
    entries = list_open_entries(repository, owner_id)
    if not entries:
        print("No open credit or advance entries.")
        return

    df = entries_to_dataframe(entries, decimals=config.amount_decimals)
    df_display = df.drop(columns=["settled", "settled_at", "color"])
    df_display["entry_date"] = df_display["entry_date"].astype(str)
    print(df_display.to_string(index=False))


def _handle_entries_command(
    args: argparse.Namespace, config: AppConfig, repository, owner_id: str
) -> None:
    """Dispatch function for the 'entries' subcommands."""
    subcmd = getattr(args, "entries_command", None)

    if subcmd == "add":
        _handle_entries_add(args, config, repository, owner_id)
    elif subcmd == "list":
        _handle_entries_list(args, config, repository, owner_id)
    elif subcmd == "edit":
        _handle_entries_edit(args, config, repository, owner_id)
    elif subcmd == "open":
        _handle_entries_open(args, config, repository, owner_id)
    else:
        print(
            "No entries subcommand specified. "
            "Available subcommands are: 'add', 'list', 'edit', 'open'."
        )


def _handle_settle(
    args: argparse.Namespace, config: AppConfig, repository, owner_id: str
) -> None:
    """
    Handle the 'settle' subcommand.

    The settlement amount defaults to the full amount of the entry and the
    settlement date to today.
    """
    amount = args.amount
    if amount is None:
        source = repository.get_entry(args.entry_id)
        amount = source.amount if source is not None else None
    if amount is None:
        raise SystemExit(f"Entry #{args.entry_id} not found.")

    result = settle(
        repository,
        owner_id,
        args.entry_id,
        amount,
        args.settlement_date or _today(),
    )

    source = result.source
    print(
        f"{source.entry_type} #{source.id} settled on "
        f"{source.settled_at.isoformat() if source.settled_at else '?'}."
    )
    if result.derived is None:
        print("No cash entry was created for this settlement.")
    else:
        derived = describe_entry(result.derived)
        print(
            f"Created entry #{result.derived.id}: {derived.type_label} "
            f"{derived.category_label} {result.derived.amount:.2f} {config.currency}"
        )


def _handle_dashboard(
    args: argparse.Namespace,
    config: AppConfig,
    repository,
    owner_id: str,
    display_mode: str,
    output_dir: Path,
) -> None:
    if args.from_date or args.to_date or args.period:
        period = determine_period_from_args(args)
    else:
        period = resolve_period(config.dashboard.default_period)

    dashboard = dashboard_for_period(repository, owner_id, period)
    decimals = config.amount_decimals

    print(_format_period(period))
    print(
        f"Cash entries in period: {dashboard.cash.entries_in} in, "
        f"{dashboard.cash.entries_out} out | "
        f"Open credits/advances: {dashboard.pending.open_entries}"
    )

    currency = config.currency
    _render(
        [
            (
                f"Cash position ({currency})",
                "cash",
                cash_to_dataframe(dashboard.cash, decimals),
            ),
            (
                f"Profit ({currency})",
                "profit",
                profit_to_dataframe(dashboard.profit, decimals),
            ),
            (
                "By category",
                "categories",
                categories_to_dataframe(dashboard.by_category, decimals),
            ),
            (
                "By payment method",
                "payment_methods",
                payment_methods_to_dataframe(dashboard.by_payment_method, decimals),
            ),
            ("Pending", "pending", pending_to_dataframe(dashboard.pending, decimals)),
            (
                "Expense breakdown",
                "expenses",
                expenses_to_dataframe(dashboard.expenses, decimals),
            ),
        ],
        display_mode,
        output_dir,
    )


def _handle_trend(
    args: argparse.Namespace,
    config: AppConfig,
    repository,
    owner_id: str,
    display_mode: str,
    output_dir: Path,
) -> None:
    months = args.months or config.dashboard.trend_months
    if months < 1:
        raise SystemExit("--months must be at least 1.")

    points = profit_trend_for_owner(repository, owner_id, months)
    _render(
        [
            (
                f"Profit trend, last {months} months ({config.currency})",
                "trend",
                trend_to_dataframe(points, config.amount_decimals),
            )
        ],
        display_mode,
        output_dir,
    )


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the SMB Cashflow CLI.

    This function parses command-line arguments, loads the application
    configuration, configures logging, opens the SQLite store and runs the
    requested command. Ledger errors (invalid entries, refused settlements,
    unknown ids) are reported as a clean exit message rather than a
    traceback.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"smb_cashflow version {__version__}")
        return

    # 1) Load application configuration and logging
    if args.config_path:
        config = load_app_config(args.config_path)
    else:
        config = load_app_config()

    configure_logging(args.log_level or config.log_level)

    # 2) Acting owner
    owner_id = args.owner or config.owner_id
    if not owner_id:
        parser.error("No owner configured. Set [ledger] owner or pass --owner.")

    # 3) Open the store (creates the database file and schema if needed)
    repository = open_repository(config)
    logger.debug("Using database %s", config.database.path)

    display_mode = args.display_mode or config.display_mode
    output_dir = Path(args.output_dir) if args.output_dir else config.output_dir

    command = getattr(args, "command", None) or "dashboard"

    # 4) Run the command
    try:
        if command == "entries":
            _handle_entries_command(args, config, repository, owner_id)
        elif command == "settle":
            _handle_settle(args, config, repository, owner_id)
        elif command == "trend":
            _handle_trend(
                args, config, repository, owner_id, display_mode, output_dir
            )
        else:
            _handle_dashboard(
                args, config, repository, owner_id, display_mode, output_dir
            )
    except (LedgerError, ValueError) as exc:
        logger.debug("Command %r failed", command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
