"""Monthly views over the ledger."""

from ledger.analytics.monthly import MonthlyAnalytics, amount_text

__all__ = ["MonthlyAnalytics", "amount_text"]
