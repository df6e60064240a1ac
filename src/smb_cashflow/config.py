# SMB Cashflow - Cash-flow ledger & settlement engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB Cashflow.

This module is responsible for:
- loading the application configuration from a TOML file,
- exposing typed dataclasses used by the rest of the application.

Every section is optional: a missing file section falls back to defaults,
while present-but-invalid values raise a ValueError with a clear message.
"""

import logging
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .db import DatabaseConfig
from .periods import PERIOD_SELECTORS

DEFAULT_CONFIG_FILE = "smb_cashflow_config.toml"
DISPLAY_MODES = ("table", "csv", "both")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class DashboardConfig:
    """Defaults used when rendering dashboards."""

    default_period: str
    trend_months: int


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SMB Cashflow.

    This aggregates:
    - the default owner used by the CLI,
    - the presentation currency,
    - the database configuration (where entries are stored),
    - dashboard defaults (period, trend length),
    - display options (mode, output directory, decimals),
    - the logging level.
    """

    owner_id: Optional[str]
    currency: str
    database: DatabaseConfig
    dashboard: DashboardConfig
    display_mode: str
    output_dir: Path
    amount_decimals: int
    log_level: str


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        raise ValueError(f"Config section [{name}] must be a table.")
    return section


def _parse_int(value: Any, key: str, minimum: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{key}' in the configuration. Expected an integer."
        ) from exc
    if parsed < minimum:
        raise ValueError(f"'{key}' must be at least {minimum}.")
    return parsed


def _parse_dashboard(raw: Mapping[str, Any]) -> DashboardConfig:
    section = _section(raw, "dashboard")

    default_period = str(section.get("default_period", "this-month"))
    allowed = [p for p in PERIOD_SELECTORS if p != "custom"]
    if default_period not in allowed:
        raise ValueError(
            f"Invalid dashboard.default_period: {default_period!r}. "
            f"Expected one of: {', '.join(allowed)}."
        )

    trend_months = _parse_int(
        section.get("trend_months", 6), "dashboard.trend_months", minimum=1
    )
    return DashboardConfig(default_period=default_period, trend_months=trend_months)


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SMB Cashflow application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [ledger]
        owner: default owner id used by the CLI when --owner is omitted.

    [accounting]
        currency: presentation currency code (default "INR").

    [database]
        engine ("sqlite") and path of the SQLite file.

    [dashboard]
        default_period: "all-time" | "this-year" | "this-month".
        trend_months:   number of months in the profit trend.

    [display]
        mode ("table" | "csv" | "both"), output_dir, amount_decimals.

    [logging]
        level: standard logging level name (default "WARNING").

    All file paths in the TOML are resolved relative to the directory of
    the TOML file itself.

    Parameters
    ----------
    config_path:
        Path to the TOML configuration file. Defaults to
        'smb_cashflow_config.toml' in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    config_file = Path(config_path or DEFAULT_CONFIG_FILE).resolve()
    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Ledger / accounting
    ledger_section = _section(raw, "ledger")
    owner_raw = ledger_section.get("owner")
    owner_id = str(owner_raw) if owner_raw else None

    accounting_section = _section(raw, "accounting")
    currency = str(accounting_section.get("currency") or "INR")

    # 2) Database
    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or "data/db/smb_cashflow.sqlite"
    db_path = (base_dir / str(db_path_raw)).resolve()
    try:
        db_timeout = float(database_section.get("timeout", 5.0))
    except (TypeError, ValueError) as exc:
        raise ValueError("Invalid value for 'database.timeout'.") from exc

    database_config = DatabaseConfig(engine=db_engine, path=db_path, timeout=db_timeout)

    # 3) Dashboard
    dashboard = _parse_dashboard(raw)

    # 4) Display options
    display_section = _section(raw, "display")
    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in DISPLAY_MODES:
        raise ValueError(
            f"Invalid display.mode: {display_mode!r}. "
            f"Expected one of: {', '.join(DISPLAY_MODES)}."
        )
    output_dir_raw = display_section.get("output_dir", "data/output")
    output_dir = (base_dir / str(output_dir_raw)).resolve()
    amount_decimals = _parse_int(
        display_section.get("amount_decimals", 2), "display.amount_decimals", minimum=0
    )

    # 5) Logging
    logging_section = _section(raw, "logging")
    log_level = str(logging_section.get("level", "WARNING")).upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"Invalid logging.level: {log_level!r}.")

    return AppConfig(
        owner_id=owner_id,
        currency=currency,
        database=database_config,
        dashboard=dashboard,
        display_mode=display_mode,
        output_dir=output_dir,
        amount_decimals=amount_decimals,
        log_level=log_level,
    )


def configure_logging(level: str) -> None:
    """Configure root logging for command-line use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
