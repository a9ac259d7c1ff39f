"""Profit Ledger - profitability aggregation engine"""

__version__ = "1.0.0"
