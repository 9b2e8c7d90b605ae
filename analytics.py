"""Pure aggregation over transactions and budgets.

Nothing here touches the database. Inputs are any objects exposing the
``amount``/``category``/``date`` attributes of a transaction and the
``amount``/``category``/``month`` attributes of a budget, so ORM rows and
plain records work alike. Figures are left unrounded; only the insight
messages format amounts for display.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Optional, Sequence, Union

from models import Category
from periods import Period, month_key, parse_month

FALLBACK_CATEGORY = Category.other.value


class InsightType(str, Enum):
    success = "success"
    warning = "warning"
    danger = "danger"
    info = "info"


@dataclass(frozen=True)
class BudgetComparison:
    category: str
    month: str
    budgeted: float
    spent: float
    remaining: float
    percent_used: float
    over_budget: bool


@dataclass(frozen=True)
class SpendingInsight:
    type: InsightType
    message: str
    category: Optional[str] = None
    amount: Optional[float] = None  # overage or unbudgeted spend
    percent: Optional[float] = None


@dataclass(frozen=True)
class MonthSummary:
    total_expenses: float
    total_budget: float
    budget_progress: float
    is_over_budget: bool
    remaining: float
    overage: float
    transaction_count: int
    top_categories: list[tuple[str, float]]
    recent_transactions: list


def format_money(value: float, symbol: str = "$") -> str:
    return f"{symbol}{value:,.2f}"


def category_name(value: object) -> str:
    if isinstance(value, Category):
        return value.value
    if value is None:
        return FALLBACK_CATEGORY
    name = str(value).strip()
    return name or FALLBACK_CATEGORY


def transaction_date(txn) -> date:
    value = txn.date
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    return value


def filter_month(transactions: Iterable, month: Union[str, Period]) -> list:
    period = parse_month(month) if isinstance(month, str) else month
    return [t for t in transactions if period.contains(transaction_date(t))]


def compute_category_spending(transactions: Iterable) -> dict[str, float]:
    spending: dict[str, float] = {}
    for txn in transactions:
        name = category_name(getattr(txn, "category", None))
        spending[name] = spending.get(name, 0.0) + float(txn.amount)
    return spending


def compute_budget_comparison(
    budgets: Iterable, category_spending: dict[str, float]
) -> list[BudgetComparison]:
    rows: list[BudgetComparison] = []
    for budget in budgets:
        amount = float(budget.amount)
        spent = category_spending.get(category_name(budget.category), 0.0)
        percent_used = min(spent / amount * 100, 100.0) if amount > 0 else 0.0
        rows.append(
            BudgetComparison(
                category=category_name(budget.category),
                month=budget.month,
                budgeted=amount,
                spent=spent,
                remaining=max(amount - spent, 0.0),
                percent_used=percent_used,
                over_budget=spent > amount,
            )
        )
    return rows


def generate_insights(
    transactions: Sequence,
    budgets: Sequence,
    month: Union[str, Period, None] = None,
    *,
    currency_symbol: str = "$",
) -> list[SpendingInsight]:
    """Build the insight list for one month.

    Insights are appended in a fixed order rather than sorted by severity:
    missing budgets, overall budget status, per-budget status, the two
    largest unbudgeted categories, then a dominant-category note.
    """
    if month is not None:
        period = parse_month(month) if isinstance(month, str) else month
        transactions = filter_month(transactions, period)
        budgets = [b for b in budgets if b.month == period.slug]

    def money(value: float) -> str:
        return format_money(value, currency_symbol)

    insights: list[SpendingInsight] = []
    spending = compute_category_spending(transactions)
    total_spending = sum(spending.values())
    total_budget = sum(float(b.amount) for b in budgets)

    if not budgets and transactions:
        insights.append(
            SpendingInsight(
                type=InsightType.info,
                message=(
                    "You haven't set any budgets yet. Setting budgets can help "
                    "you manage your spending better."
                ),
            )
        )

    if total_budget > 0:
        percent = total_spending / total_budget * 100
        if percent > 100:
            overage = total_spending - total_budget
            insights.append(
                SpendingInsight(
                    type=InsightType.danger,
                    message=f"You've exceeded your total monthly budget by {money(overage)}.",
                    amount=overage,
                    percent=percent,
                )
            )
        elif percent >= 90:
            insights.append(
                SpendingInsight(
                    type=InsightType.warning,
                    message=f"You're close to your total monthly budget ({percent:.0f}% used).",
                    percent=percent,
                )
            )
        elif percent <= 20 and transactions:
            insights.append(
                SpendingInsight(
                    type=InsightType.success,
                    message=(
                        f"Great job! You've only used {percent:.0f}% of your "
                        "total monthly budget."
                    ),
                    percent=percent,
                )
            )

    for budget in budgets:
        amount = float(budget.amount)
        if amount <= 0:
            continue
        name = category_name(budget.category)
        spent = spending.get(name, 0.0)
        percent = spent / amount * 100
        if percent > 100:
            overage = spent - amount
            insights.append(
                SpendingInsight(
                    type=InsightType.danger,
                    category=name,
                    message=f"You've exceeded your {name} budget by {money(overage)}.",
                    amount=overage,
                    percent=percent,
                )
            )
        elif percent >= 90:
            insights.append(
                SpendingInsight(
                    type=InsightType.warning,
                    category=name,
                    message=f"You're close to your {name} budget ({percent:.0f}% used).",
                    percent=percent,
                )
            )

    # with no budgets at all the first insight already covers every category
    if budgets:
        budgeted = {category_name(b.category) for b in budgets}
        unbudgeted = sorted(
            (
                (name, amount)
                for name, amount in spending.items()
                if amount > 0 and name not in budgeted
            ),
            key=lambda item: item[1],
            reverse=True,
        )
        for name, amount in unbudgeted[:2]:
            insights.append(
                SpendingInsight(
                    type=InsightType.info,
                    category=name,
                    message=(
                        f"You spent {money(amount)} on {name} without a budget. "
                        "Consider setting a budget for this category."
                    ),
                    amount=amount,
                )
            )

    spent_categories = [item for item in spending.items() if item[1] > 0]
    # without budgets a lone category is already covered by the no-budget notice
    compared = bool(budgets) or len(spent_categories) > 1
    if transactions and total_spending > 0 and compared:
        top_name, top_amount = max(spent_categories, key=lambda item: item[1])
        share = top_amount / total_spending * 100
        if share > 50:
            insights.append(
                SpendingInsight(
                    type=InsightType.info,
                    category=top_name,
                    message=(
                        f"{top_name} makes up {share:.0f}% of your total "
                        "spending this month."
                    ),
                    amount=top_amount,
                    percent=share,
                )
            )

    return insights


def summarize_month(
    transactions: Sequence, budgets: Sequence, *, top: int = 3, recent: int = 3
) -> MonthSummary:
    spending = compute_category_spending(transactions)
    total_expenses = sum(spending.values())
    total_budget = sum(float(b.amount) for b in budgets)
    progress = min(total_expenses / total_budget * 100, 100.0) if total_budget > 0 else 0.0
    top_categories = sorted(spending.items(), key=lambda item: item[1], reverse=True)
    recent_transactions = sorted(transactions, key=transaction_date, reverse=True)
    return MonthSummary(
        total_expenses=total_expenses,
        total_budget=total_budget,
        budget_progress=progress,
        is_over_budget=total_budget > 0 and total_expenses > total_budget,
        remaining=max(total_budget - total_expenses, 0.0),
        overage=max(total_expenses - total_budget, 0.0),
        transaction_count=len(transactions),
        top_categories=top_categories[:top],
        recent_transactions=recent_transactions[:recent],
    )


def monthly_expenses(transactions: Iterable) -> list[dict[str, object]]:
    totals: dict[str, float] = {}
    for txn in transactions:
        key = month_key(transaction_date(txn))
        totals[key] = totals.get(key, 0.0) + float(txn.amount)
    return [{"month": key, "amount": totals[key]} for key in sorted(totals)]


def category_chart(category_spending: dict[str, float]) -> list[dict[str, object]]:
    # known categories keep their display order, anything else follows
    order = {member.value: index for index, member in enumerate(Category)}
    names = sorted(category_spending, key=lambda name: order.get(name, len(order)))
    return [
        {"category": name, "amount": category_spending[name]}
        for name in names
        if category_spending[name] > 0
    ]
