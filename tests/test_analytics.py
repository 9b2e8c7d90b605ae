from datetime import date
from itertools import permutations
from types import SimpleNamespace

import pytest

from analytics import (
    InsightType,
    category_chart,
    compute_budget_comparison,
    compute_category_spending,
    generate_insights,
    monthly_expenses,
    summarize_month,
)
from models import Budget, Category, Transaction


def make_txn(amount: float, on: date, category: Category, description: str = "x"):
    return Transaction(
        amount=amount, date=on, description=description, category=category
    )


def make_budget(category: Category, amount: float, month: str) -> Budget:
    return Budget(category=category, amount=amount, month=month)


def test_overspent_month_matches_worked_example() -> None:
    budgets = [make_budget(Category.food_dining, 100, "2024-01")]
    transactions = [
        make_txn(50, date(2024, 1, 5), Category.food_dining, "lunch"),
        make_txn(60, date(2024, 1, 10), Category.food_dining, "dinner"),
    ]

    spending = compute_category_spending(transactions)
    assert spending == {"Food & Dining": pytest.approx(110)}

    [row] = compute_budget_comparison(budgets, spending)
    assert row.budgeted == 100
    assert row.spent == pytest.approx(110)
    assert row.remaining == 0
    assert row.percent_used == 100
    assert row.over_budget is True

    insights = generate_insights(transactions, budgets, "2024-01")
    dangers = [i for i in insights if i.type == InsightType.danger]
    assert dangers
    assert all(i.amount == pytest.approx(10) for i in dangers)
    assert "$10.00" in dangers[0].message
    assert dangers[1].category == "Food & Dining"
    assert insights[-1].type == InsightType.info
    assert "Food & Dining makes up 100%" in insights[-1].message


def test_no_budgets_yields_single_info_insight() -> None:
    transactions = [make_txn(40, date(2024, 3, 2), Category.travel, "train")]

    insights = generate_insights(transactions, [], "2024-03")

    assert len(insights) == 1
    assert insights[0].type == InsightType.info
    assert "haven't set any budgets" in insights[0].message


def test_dominant_category_needs_a_competitor_when_no_budgets() -> None:
    transactions = [
        make_txn(70, date(2024, 3, 2), Category.travel, "train"),
        make_txn(30, date(2024, 3, 3), Category.shopping, "shoes"),
    ]

    insights = generate_insights(transactions, [], "2024-03")

    assert [(i.type, i.category) for i in insights] == [
        (InsightType.info, None),
        (InsightType.info, "Travel"),
    ]
    assert insights[1].percent == pytest.approx(70)


def test_no_transactions_and_no_budgets_yields_nothing() -> None:
    assert generate_insights([], [], "2024-03") == []


def test_missing_category_folds_into_other() -> None:
    rows = [
        SimpleNamespace(amount=5.0, date="2024-01-01", category=None),
        SimpleNamespace(amount=7.5, date="2024-01-02", category=""),
        SimpleNamespace(amount=1.0, date="2024-01-03", category="Housing"),
    ]
    assert compute_category_spending(rows) == {
        "Other": pytest.approx(12.5),
        "Housing": pytest.approx(1.0),
    }


def test_category_spending_is_order_independent() -> None:
    transactions = [
        make_txn(0.1, date(2024, 1, 1), Category.shopping),
        make_txn(0.2, date(2024, 1, 2), Category.shopping),
        make_txn(0.3, date(2024, 1, 3), Category.housing),
        make_txn(19.99, date(2024, 1, 4), Category.shopping),
    ]
    expected = compute_category_spending(transactions)
    for ordering in permutations(transactions):
        totals = compute_category_spending(ordering)
        assert totals.keys() == expected.keys()
        for name, amount in expected.items():
            assert totals[name] == pytest.approx(amount)


def test_comparison_under_budget_keeps_exact_remaining() -> None:
    budgets = [
        make_budget(Category.housing, 1200, "2024-01"),
        make_budget(Category.utilities, 150, "2024-01"),
    ]
    spending = {"Housing": 1000.0}

    housing, utilities = compute_budget_comparison(budgets, spending)

    assert housing.remaining == 200
    assert housing.over_budget is False
    assert housing.percent_used == pytest.approx(1000 / 1200 * 100)
    assert utilities.spent == 0
    assert utilities.remaining == 150
    assert utilities.percent_used == 0


def test_spending_exactly_at_budget_is_not_over() -> None:
    [row] = compute_budget_comparison(
        [make_budget(Category.education, 80, "2024-01")], {"Education": 80.0}
    )
    assert row.over_budget is False
    assert row.remaining == 0
    assert row.percent_used == 100


def test_near_limit_emits_warnings_for_total_and_category() -> None:
    budgets = [make_budget(Category.entertainment, 100, "2024-05")]
    transactions = [make_txn(95, date(2024, 5, 20), Category.entertainment)]

    insights = generate_insights(transactions, budgets, "2024-05")

    assert [i.type for i in insights] == [
        InsightType.warning,
        InsightType.warning,
        InsightType.info,
    ]
    assert "95% used" in insights[0].message
    assert insights[1].category == "Entertainment"


def test_low_usage_is_praised() -> None:
    budgets = [make_budget(Category.healthcare, 100, "2024-05")]
    transactions = [make_txn(10, date(2024, 5, 3), Category.healthcare)]

    insights = generate_insights(transactions, budgets, "2024-05")

    assert [i.type for i in insights] == [InsightType.success, InsightType.info]
    assert insights[0].percent == pytest.approx(10)


def test_only_top_two_unbudgeted_categories_are_reported() -> None:
    budgets = [make_budget(Category.housing, 1000, "2024-02")]
    transactions = [
        make_txn(300, date(2024, 2, 1), Category.food_dining),
        make_txn(200, date(2024, 2, 2), Category.travel),
        make_txn(100, date(2024, 2, 3), Category.shopping),
    ]

    insights = generate_insights(transactions, budgets, "2024-02")

    assert [(i.type, i.category) for i in insights] == [
        (InsightType.info, "Food & Dining"),
        (InsightType.info, "Travel"),
    ]
    assert insights[0].amount == pytest.approx(300)


def test_insights_follow_fixed_priority_order() -> None:
    budgets = [make_budget(Category.food_dining, 1000, "2024-04")]
    transactions = [
        make_txn(80, date(2024, 4, 1), Category.food_dining),
        make_txn(20, date(2024, 4, 2), Category.transportation),
    ]

    insights = generate_insights(transactions, budgets, "2024-04")

    assert [(i.type, i.category) for i in insights] == [
        (InsightType.success, None),
        (InsightType.info, "Transportation"),
        (InsightType.info, "Food & Dining"),
    ]
    assert "80%" in insights[-1].message


def test_month_restricts_transactions_and_budgets() -> None:
    budgets = [
        make_budget(Category.food_dining, 100, "2024-01"),
        make_budget(Category.food_dining, 10, "2024-02"),
    ]
    transactions = [
        make_txn(50, date(2024, 1, 31), Category.food_dining),
        make_txn(500, date(2024, 2, 1), Category.food_dining),
    ]

    insights = generate_insights(transactions, budgets, "2024-01")

    assert [(i.type, i.category) for i in insights] == [
        (InsightType.info, "Food & Dining")
    ]
    assert insights[0].amount == pytest.approx(50)


def test_summary_caps_progress_and_picks_top_and_recent() -> None:
    budgets = [make_budget(Category.food_dining, 100, "2024-01")]
    transactions = [
        make_txn(60, date(2024, 1, 2), Category.food_dining, "a"),
        make_txn(70, date(2024, 1, 9), Category.travel, "b"),
        make_txn(5, date(2024, 1, 4), Category.other, "c"),
        make_txn(1, date(2024, 1, 1), Category.housing, "d"),
    ]

    summary = summarize_month(transactions, budgets)

    assert summary.total_expenses == pytest.approx(136)
    assert summary.budget_progress == 100
    assert summary.is_over_budget is True
    assert summary.overage == pytest.approx(36)
    assert summary.remaining == 0
    assert summary.transaction_count == 4
    assert [name for name, _ in summary.top_categories] == [
        "Travel",
        "Food & Dining",
        "Other",
    ]
    assert [t.description for t in summary.recent_transactions] == ["b", "c", "a"]


def test_summary_without_budgets_is_never_over() -> None:
    summary = summarize_month([make_txn(5, date(2024, 1, 2), Category.other)], [])
    assert summary.budget_progress == 0
    assert summary.is_over_budget is False


def test_monthly_expenses_are_grouped_and_sorted() -> None:
    transactions = [
        make_txn(10, date(2024, 3, 1), Category.other),
        make_txn(5, date(2023, 12, 31), Category.other),
        make_txn(2.5, date(2024, 3, 15), Category.travel),
    ]
    assert monthly_expenses(transactions) == [
        {"month": "2023-12", "amount": 5.0},
        {"month": "2024-03", "amount": 12.5},
    ]


def test_category_chart_keeps_display_order_and_drops_empty() -> None:
    rows = category_chart({"Other": 4.0, "Housing": 10.0, "Travel": 0.0})
    assert rows == [
        {"category": "Housing", "amount": 10.0},
        {"category": "Other", "amount": 4.0},
    ]
