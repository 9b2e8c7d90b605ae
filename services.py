from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import asdict
from typing import Iterator, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from analytics import (
    category_chart,
    compute_budget_comparison,
    compute_category_spending,
    generate_insights,
    monthly_expenses,
    summarize_month,
)
from config import get_settings
from models import Budget, Category, Transaction
from periods import Period, parse_month
from schemas import BudgetIn, TransactionIn

logger = logging.getLogger(__name__)


class ValidationError(ValueError):
    pass


class ConflictError(ValueError):
    pass


class NotFoundError(ValueError):
    pass


class StoreError(RuntimeError):
    pass


def month_filter(month: Optional[str]) -> Optional[Period]:
    if not month:
        return None
    try:
        return parse_month(month)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


@contextmanager
def store_errors(session: Session, action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception(f"store_error: action={action}")
        raise StoreError(f"Error in {action}") from exc


def _is_duplicate_budget(exc: IntegrityError) -> bool:
    # sqlite names the columns, postgres names the constraint
    detail = str(exc.orig)
    return (
        "uq_budget_category_month" in detail
        or "UNIQUE constraint failed: budgets.category, budgets.month" in detail
    )


class TransactionService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, data: TransactionIn) -> Transaction:
        txn = Transaction(
            amount=data.amount,
            date=data.date,
            description=data.description,
            category=data.category,
        )
        with store_errors(self.session, "adding transaction"):
            self.session.add(txn)
            self.session.commit()
            self.session.refresh(txn)
        logger.info(f"add_transaction: id={txn.id} category={txn.category.value}")
        return txn

    def get(self, transaction_id: int) -> Transaction:
        with store_errors(self.session, "fetching transaction"):
            txn = self.session.get(Transaction, transaction_id)
        if not txn:
            raise NotFoundError("Transaction not found")
        return txn

    def list(self, month: Optional[str] = None) -> list[Transaction]:
        period = month_filter(month)
        stmt = select(Transaction).order_by(
            Transaction.created_at.desc(), Transaction.id.desc()
        )
        if period:
            stmt = stmt.where(Transaction.date.between(period.start, period.end))
        with store_errors(self.session, "fetching transactions"):
            return list(self.session.scalars(stmt).all())

    def all_for_period(self, period: Optional[Period] = None) -> list[Transaction]:
        stmt = select(Transaction).order_by(Transaction.date.asc(), Transaction.id.asc())
        if period:
            stmt = stmt.where(Transaction.date.between(period.start, period.end))
        with store_errors(self.session, "fetching transactions"):
            return list(self.session.scalars(stmt).all())

    def update(self, transaction_id: int, data: TransactionIn) -> Transaction:
        txn = self.get(transaction_id)
        txn.amount = data.amount
        txn.date = data.date
        txn.description = data.description
        txn.category = data.category
        with store_errors(self.session, "updating transaction"):
            self.session.commit()
            self.session.refresh(txn)
        logger.info(f"edit_transaction: id={txn.id}")
        return txn

    def delete(self, transaction_id: int) -> Transaction:
        txn = self.get(transaction_id)
        with store_errors(self.session, "deleting transaction"):
            self.session.delete(txn)
            self.session.commit()
        logger.info(f"delete_transaction: id={transaction_id}")
        return txn


class BudgetService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _find_duplicate(
        self, category: Category, month: str, *, exclude_id: Optional[int] = None
    ) -> Optional[Budget]:
        stmt = select(Budget).where(Budget.category == category, Budget.month == month)
        if exclude_id is not None:
            stmt = stmt.where(Budget.id != exclude_id)
        with store_errors(self.session, "checking budgets"):
            return self.session.scalar(stmt)

    def _commit_unique(self, action: str) -> None:
        # a concurrent writer can still slip past the existence check
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            if not _is_duplicate_budget(exc):
                logger.exception(f"store_error: action={action}")
                raise StoreError(f"Error in {action}") from exc
            logger.info(f"budget_conflict: action={action}")
            raise ConflictError(
                "Budget already exists for this category and month"
            ) from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception(f"store_error: action={action}")
            raise StoreError(f"Error in {action}") from exc

    def create(self, data: BudgetIn) -> Budget:
        if self._find_duplicate(data.category, data.month):
            raise ConflictError("Budget already exists for this category and month")

        budget = Budget(category=data.category, amount=data.amount, month=data.month)
        self.session.add(budget)
        self._commit_unique("adding budget")
        self.session.refresh(budget)
        logger.info(
            f"add_budget: id={budget.id} category={budget.category.value} month={budget.month}"
        )
        return budget

    def get(self, budget_id: int) -> Budget:
        with store_errors(self.session, "fetching budget"):
            budget = self.session.get(Budget, budget_id)
        if not budget:
            raise NotFoundError("Budget not found")
        return budget

    def list(self, month: Optional[str] = None) -> list[Budget]:
        period = month_filter(month)
        stmt = select(Budget).order_by(Budget.month.desc(), Budget.category.asc())
        if period:
            stmt = stmt.where(Budget.month == period.slug)
        with store_errors(self.session, "fetching budgets"):
            return list(self.session.scalars(stmt).all())

    def update(self, budget_id: int, data: BudgetIn) -> Budget:
        budget = self.get(budget_id)
        if self._find_duplicate(data.category, data.month, exclude_id=budget.id):
            raise ConflictError(
                "Another budget already exists for this category and month"
            )

        budget.amount = data.amount
        budget.category = data.category
        budget.month = data.month
        self._commit_unique("updating budget")
        self.session.refresh(budget)
        logger.info(
            f"edit_budget: id={budget.id} category={budget.category.value} month={budget.month}"
        )
        return budget

    def delete(self, budget_id: int) -> Budget:
        budget = self.get(budget_id)
        with store_errors(self.session, "deleting budget"):
            self.session.delete(budget)
            self.session.commit()
        logger.info(f"delete_budget: id={budget_id}")
        return budget


class InsightsService:
    def __init__(self, session: Session, currency_symbol: Optional[str] = None) -> None:
        self.session = session
        self.currency_symbol = currency_symbol or get_settings().currency_symbol
        self.transactions = TransactionService(session)
        self.budgets = BudgetService(session)

    def month_data(self, period: Period) -> tuple[list[Transaction], list[Budget]]:
        transactions = self.transactions.all_for_period(period)
        budgets = self.budgets.list(period.slug)
        return transactions, budgets

    def insights(self, period: Period) -> list[dict[str, object]]:
        transactions, budgets = self.month_data(period)
        return [
            asdict(insight)
            for insight in generate_insights(
                transactions,
                budgets,
                period,
                currency_symbol=self.currency_symbol,
            )
        ]

    def summary(self, period: Period) -> dict[str, object]:
        transactions, budgets = self.month_data(period)
        spending = compute_category_spending(transactions)
        summary = summarize_month(transactions, budgets)
        return {
            "month": period.slug,
            "total_expenses": summary.total_expenses,
            "total_budget": summary.total_budget,
            "budget_progress": summary.budget_progress,
            "is_over_budget": summary.is_over_budget,
            "remaining": summary.remaining,
            "overage": summary.overage,
            "transaction_count": summary.transaction_count,
            "category_spending": spending,
            "top_categories": [
                {"category": name, "amount": amount}
                for name, amount in summary.top_categories
            ],
            "recent_transactions": [
                txn.to_dict() for txn in summary.recent_transactions
            ],
            "budget_comparison": [
                asdict(row) for row in compute_budget_comparison(budgets, spending)
            ],
        }

    def charts(self, period: Period) -> dict[str, object]:
        transactions, budgets = self.month_data(period)
        spending = compute_category_spending(transactions)
        return {
            "month": period.slug,
            "monthly_expenses": monthly_expenses(self.transactions.all_for_period()),
            "categories": category_chart(spending),
            "budget_comparison": [
                asdict(row) for row in compute_budget_comparison(budgets, spending)
            ],
        }
