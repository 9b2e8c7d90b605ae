import logging
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from analytics import format_money
from config import get_settings
from database import SessionLocal, create_schema, engine
from models import Category
from periods import Period, resolve_month
from schemas import BudgetEditIn, BudgetIn, TransactionEditIn, TransactionIn
from services import (
    BudgetService,
    ConflictError,
    InsightsService,
    NotFoundError,
    StoreError,
    TransactionService,
    ValidationError,
)

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent

app = FastAPI(title="Spendwise")
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


def format_currency(value: float) -> str:
    return format_money(value, settings.currency_symbol)


templates.env.filters["currency"] = format_currency


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@app.on_event("startup")
def startup_event():
    if settings.auto_create_schema:
        create_schema(engine)
        logger.info("Database schema ensured")


def envelope(message: str, body: object = None, *, success: bool = True) -> dict:
    payload: dict[str, object] = {"success": success, "message": message}
    if body is not None:
        payload["body"] = body
    return payload


def validation_message(errors: list[dict]) -> str:
    messages = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query")]
        field = ".".join(loc)
        if err.get("type") == "missing":
            messages.append(f"{field} is required" if field else "Request body is required")
        elif err.get("type") == "value_error":
            messages.append(str(err.get("msg", "")).removeprefix("Value error, "))
        else:
            messages.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return "; ".join(messages) or "Invalid request"


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(str(exc.detail), success=False),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    message = validation_message(exc.errors())
    logger.info(f"rejected_request: path={request.url.path} reason={message}")
    return JSONResponse(status_code=400, content=envelope(message, success=False))


def month_from_request(request: Request) -> Period:
    try:
        return resolve_month(request.query_params.get("month"))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def id_from_request(request: Request, label: str) -> int:
    raw = request.query_params.get("id") or request.query_params.get("_id")
    if not raw:
        raise HTTPException(status_code=400, detail=f"{label} ID is required")
    try:
        return int(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid {label.lower()} ID") from exc


def store_failure(exc: StoreError) -> HTTPException:
    return HTTPException(status_code=500, detail=str(exc))


@app.post("/transactions")
def create_transaction(data: TransactionIn, db: Session = Depends(get_db)):
    try:
        txn = TransactionService(db).create(data)
    except StoreError as exc:
        raise store_failure(exc) from exc
    return envelope("Transaction added successfully", txn.to_dict())


@app.get("/transactions")
def list_transactions(month: Optional[str] = None, db: Session = Depends(get_db)):
    try:
        items = TransactionService(db).list(month)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StoreError as exc:
        raise store_failure(exc) from exc
    return envelope(
        "Transactions fetched successfully", [txn.to_dict() for txn in items]
    )


@app.api_route("/transactions/edit", methods=["POST", "PATCH"])
def edit_transaction(data: TransactionEditIn, db: Session = Depends(get_db)):
    try:
        txn = TransactionService(db).update(data.id, data)
    except NotFoundError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StoreError as exc:
        raise store_failure(exc) from exc
    return envelope("Transaction updated successfully", txn.to_dict())


@app.delete("/transactions")
def delete_transaction(request: Request, db: Session = Depends(get_db)):
    transaction_id = id_from_request(request, "Transaction")
    try:
        txn = TransactionService(db).delete(transaction_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StoreError as exc:
        raise store_failure(exc) from exc
    return envelope("Transaction deleted successfully", txn.to_dict())


@app.post("/budgets")
def create_budget(data: BudgetIn, db: Session = Depends(get_db)):
    try:
        budget = BudgetService(db).create(data)
    except ConflictError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StoreError as exc:
        raise store_failure(exc) from exc
    return envelope("Budget added successfully", budget.to_dict())


@app.get("/budgets")
def list_budgets(month: Optional[str] = None, db: Session = Depends(get_db)):
    try:
        items = BudgetService(db).list(month)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StoreError as exc:
        raise store_failure(exc) from exc
    return envelope("Budgets fetched successfully", [b.to_dict() for b in items])


@app.patch("/budgets/edit")
def edit_budget(data: BudgetEditIn, db: Session = Depends(get_db)):
    try:
        budget = BudgetService(db).update(data.id, data)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ConflictError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StoreError as exc:
        raise store_failure(exc) from exc
    return envelope("Budget updated successfully", budget.to_dict())


@app.delete("/budgets")
def delete_budget(request: Request, db: Session = Depends(get_db)):
    budget_id = id_from_request(request, "Budget")
    try:
        budget = BudgetService(db).delete(budget_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except StoreError as exc:
        raise store_failure(exc) from exc
    return envelope("Budget deleted successfully", budget.to_dict())


@app.get("/api/categories")
def api_categories():
    return envelope("Categories fetched successfully", [c.value for c in Category])


@app.get("/api/insights")
def api_insights(request: Request, db: Session = Depends(get_db)):
    period = month_from_request(request)
    try:
        data = InsightsService(db).insights(period)
    except StoreError as exc:
        raise store_failure(exc) from exc
    return envelope("Insights generated successfully", data)


@app.get("/api/summary")
def api_summary(request: Request, db: Session = Depends(get_db)):
    period = month_from_request(request)
    try:
        data = InsightsService(db).summary(period)
    except StoreError as exc:
        raise store_failure(exc) from exc
    return envelope("Summary generated successfully", data)


@app.get("/api/charts")
def api_charts(request: Request, db: Session = Depends(get_db)):
    period = month_from_request(request)
    try:
        data = InsightsService(db).charts(period)
    except StoreError as exc:
        raise store_failure(exc) from exc
    return envelope("Chart data generated successfully", data)


@app.get("/", response_class=HTMLResponse)
def dashboard(request: Request, db: Session = Depends(get_db)):
    period = month_from_request(request)
    service = InsightsService(db)
    try:
        summary = service.summary(period)
        insights = service.insights(period)
        transactions = TransactionService(db).list(period.slug)
    except StoreError as exc:
        raise store_failure(exc) from exc
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "month_value": period.slug,
            "summary": summary,
            "insights": insights,
            "transactions": transactions,
        },
    )


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
