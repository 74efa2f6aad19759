"""
Monthly Analytics

Read-only views over the store for one account and one calendar month.

SALARY ATTRIBUTION:
Salaries often arrive a few days before the month they pay for. An income
whose description contains a salary keyword and that is booked on or after
the cutoff day of month M counts as income of month M+1, day 1. Expenses
are always attributed to the day they were booked on.

All calendar arithmetic uses the UTC date of created_at.
"""

import calendar
from datetime import date
from decimal import Decimal
from typing import Optional

from ledger.engine.store import LedgerStore
from ledger.models.ledger import (
    CategoryTotal,
    DailyTotals,
    MonthlySummary,
    Transaction,
    TransactionType,
)


ZERO = Decimal("0")


def _next_month_start(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def _check_month(month: int, year: int) -> date:
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")
    return date(year, month, 1)


def amount_text(amount: Decimal) -> str:
    """Plain text of an amount without trailing zeros (12.50 -> '12.5')."""
    return format(amount.normalize(), "f")


class MonthlyAnalytics:
    """Pure computations over the store's current snapshot."""

    def __init__(self, store: LedgerStore):
        self._store = store

    # =========================================================================
    # ATTRIBUTION
    # =========================================================================

    def is_salary(self, transaction: Transaction) -> bool:
        if transaction.type != TransactionType.INCOME:
            return False
        text = transaction.description.lower()
        return any(kw in text for kw in self._store.settings.salary_keywords_list)

    def attributed_date(self, transaction: Transaction) -> date:
        """The day a transaction counts on for monthly figures."""
        booked = transaction.booked_on
        if self.is_salary(transaction) and booked.day >= self._store.settings.salary_cutoff_day:
            return _next_month_start(booked)
        return booked

    # =========================================================================
    # VIEWS
    # =========================================================================

    def category_breakdown(
        self,
        account_id: str,
        month: int,
        year: int,
    ) -> list[CategoryTotal]:
        """
        Expense totals per category for one month, largest first.

        Transfers are excluded. Equal totals keep the order in which
        their category first appears.
        """
        transfer_category = self._store.settings.transfer_category
        totals: dict[str, Decimal] = {}
        for t in self._booked_in(account_id, month, year):
            if t.type != TransactionType.EXPENSE or t.category == transfer_category:
                continue
            totals[t.category] = totals.get(t.category, ZERO) + t.amount

        ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
        return [CategoryTotal(category=name, total=total) for name, total in ranked]

    def daily_cumulative_series(
        self,
        account_id: str,
        month: int,
        year: int,
    ) -> list[DailyTotals]:
        """
        Running income and expense totals for every day of a month.

        The income series starts at the balance carried over from before the
        month (0 when there was no earlier activity). The carried balance is
        the closing balance of everything attributed before the month, not
        only the previous month's net, so an empty month in between carries
        the same balance forward. Both series are non-decreasing.
        """
        start = _check_month(month, year)
        self._store.require_account(account_id)
        days = calendar.monthrange(year, month)[1]

        income_by_day = [ZERO] * (days + 1)
        expense_by_day = [ZERO] * (days + 1)
        carried = ZERO

        for t in self._store.transactions_for(account_id):
            when = self.attributed_date(t)
            if when < start:
                carried += t.signed_amount
            elif when.year == year and when.month == month:
                if t.type == TransactionType.INCOME:
                    income_by_day[when.day] += t.amount
                else:
                    expense_by_day[when.day] += t.amount

        series = []
        income, expense = carried, ZERO
        for day in range(1, days + 1):
            income += income_by_day[day]
            expense += expense_by_day[day]
            series.append(DailyTotals(day=day, income=income, expense=expense))
        return series

    def monthly_summary(self, account_id: str, month: int, year: int) -> MonthlySummary:
        """Attributed income, booked expense and the month's records (newest first)."""
        booked = self._booked_in(account_id, month, year)

        income = ZERO
        for t in self._store.transactions_for(account_id):
            if t.type != TransactionType.INCOME:
                continue
            when = self.attributed_date(t)
            if when.year == year and when.month == month:
                income += t.amount

        expense = sum(
            (t.amount for t in booked if t.type == TransactionType.EXPENSE),
            ZERO,
        )
        return MonthlySummary(
            account_id=account_id,
            year=year,
            month=month,
            income=income,
            expense=expense,
            transactions=sorted(booked, key=lambda t: t.created_at, reverse=True),
        )

    def search(
        self,
        account_id: str,
        month: int,
        year: int,
        query: Optional[str],
    ) -> list[Transaction]:
        """
        Filter one month's records, newest first.

        Matches description, category or amount text, ignoring case.
        An empty query returns the whole month.
        """
        records = self.monthly_summary(account_id, month, year).transactions
        needle = (query or "").strip().lower()
        if not needle:
            return records
        return [
            t for t in records
            if needle in t.description.lower()
            or needle in t.category.lower()
            or needle in amount_text(t.amount)
        ]

    def _booked_in(self, account_id: str, month: int, year: int) -> list[Transaction]:
        _check_month(month, year)
        self._store.require_account(account_id)
        return [
            t for t in self._store.transactions_for(account_id)
            if t.booked_on.year == year and t.booked_on.month == month
        ]
