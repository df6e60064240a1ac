# SMB Cashflow - Cash-flow ledger & settlement engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB Cashflow
------------

A Python-based cash-flow ledger for Small and Medium-sized Businesses
(SMBs). Owners record what happens to their money and the application
turns those entries into cash and profit dashboards.

Main capabilities:
- four kinds of entries: cash inflow, cash outflow, credit and advance,
  classified as Sales, COGS, Opex or Assets,
- settlement of credits and advances into cash entries, persisted
  atomically (the source is marked settled and the cash entry is created
  together, or not at all),
- period selection (all time, this year, this month, custom range),
- a cash lens (what moved through the till and the bank) and a profit
  lens (accrual-basis revenue, COGS, operating expenses and margins),
- pending balances, expense breakdown and monthly profit trend,
- a database-first architecture (SQLite) with an in-memory store for
  tests and scripting.

SMB Cashflow separates computation (engine, settlement), configuration
(TOML), and presentation (CLI), making it suitable for scripting and
automation.


Version: 0.1.0

Usage:
    smb-cashflow --help
"""

__all__ = ["engine", "entries", "periods", "settlement", "views"]

__version__ = "0.1.0"
