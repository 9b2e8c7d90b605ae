from datetime import date, datetime
from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class Category(str, Enum):
    food_dining = "Food & Dining"
    transportation = "Transportation"
    housing = "Housing"
    entertainment = "Entertainment"
    utilities = "Utilities"
    shopping = "Shopping"
    healthcare = "Healthcare"
    education = "Education"
    travel = "Travel"
    other = "Other"


CATEGORY_ENUM = SAEnum(
    Category,
    name="category",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    validate_strings=True,
)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[Category] = mapped_column(CATEGORY_ENUM, nullable=False)

    __table_args__ = (
        Index("ix_transactions_date", "date"),
        Index("ix_transactions_category_date", "category", "date"),
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "amount": self.amount,
            "date": self.date.isoformat(),
            "description": self.description,
            "category": self.category.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    category: Mapped[Category] = mapped_column(CATEGORY_ENUM, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    month: Mapped[str] = mapped_column(String(7), nullable=False)

    __table_args__ = (
        UniqueConstraint("category", "month", name="uq_budget_category_month"),
        Index("ix_budgets_month", "month"),
        CheckConstraint("amount > 0", name="ck_budgets_amount_positive"),
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "category": self.category.value,
            "amount": self.amount,
            "month": self.month,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
