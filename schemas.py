import datetime as dt

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from models import Category
from periods import is_month_key


class TransactionIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    amount: float = Field(..., allow_inf_nan=False)
    date: dt.date
    description: str = Field(..., max_length=500)
    category: Category

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Amount must be greater than 0")
        return value

    @field_validator("description")
    @classmethod
    def description_present(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Description cannot be empty")
        return value


class TransactionEditIn(TransactionIn):
    id: int = Field(..., validation_alias=AliasChoices("id", "_id"))


class BudgetIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    amount: float = Field(..., allow_inf_nan=False)
    category: Category
    month: str

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Amount must be greater than 0")
        return value

    @field_validator("month")
    @classmethod
    def month_format(cls, value: str) -> str:
        value = value.strip()
        if not is_month_key(value):
            raise ValueError("Month must be in YYYY-MM format")
        return value


class BudgetEditIn(BudgetIn):
    id: int = Field(..., validation_alias=AliasChoices("id", "_id"))
