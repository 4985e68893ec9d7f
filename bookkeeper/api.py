"""FastAPI application exposing the bookkeeper backend.

Authentication happens upstream: the proxy in front of this service verifies
the session and forwards the caller's id in the ``X-User-Id`` header.
"""
from __future__ import annotations

import io
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import date
from decimal import Decimal
from typing import Annotated, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import configure_logging, load_config, load_cors_origins
from .database import SQLiteRepository
from .errors import BookkeepingError, NotFound, Unauthorized, ValidationFailed
from .models import (
    NewCategory,
    NewClient,
    NewCompany,
    NewInvoice,
    NewInvoiceItem,
    NewTransaction,
    NewUser,
)
from .services import BookkeepingService

logger = logging.getLogger(__name__)

# Lets a body field be named ``date`` without shadowing the type.
CalendarDate = date

ERROR_STATUS = {
    Unauthorized.kind: 403,
    NotFound.kind: 404,
    ValidationFailed.kind: 422,
}


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Initialise shared services once and reuse them across requests."""

    config = load_config()
    configure_logging(config.log_level)
    repository = SQLiteRepository(config.database_file)
    repository.initialise_schema()
    bookkeeping_service = BookkeepingService(config, repository)

    app.state.config = config
    app.state.repository = repository
    app.state.bookkeeping = bookkeeping_service
    logger.info("Bookkeeper backend ready (database: %s)", config.database_file)

    yield

    repository.close()


app = FastAPI(lifespan=lifespan, title="bookkeeper backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(load_cors_origins()),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookkeepingError)
async def bookkeeping_error_handler(_: Request, exc: BookkeepingError) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.kind, 400),
        content={"kind": exc.kind, "message": exc.message},
    )


# Request bodies ------------------------------------------------------------


class UserIn(BaseModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None


class CompanyIn(BaseModel):
    name: str = Field(min_length=1)
    currency: Optional[str] = Field(default=None, pattern="^[A-Za-z]{3}$")
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0)
    logo: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None


class MemberIn(BaseModel):
    user_id: str = Field(min_length=1)


class ClientIn(BaseModel):
    company_id: int
    name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class CategoryIn(BaseModel):
    company_id: int
    name: str = Field(min_length=1)
    kind: str = Field(pattern="^(income|expense)$")
    description: Optional[str] = None


class TransactionIn(BaseModel):
    company_id: int
    kind: str = Field(pattern="^(income|expense)$")
    amount: Decimal = Field(ge=0)
    description: str
    date: CalendarDate
    category_id: Optional[int] = None
    client_id: Optional[int] = None
    attachment_url: Optional[str] = None


class InvoiceHeaderIn(BaseModel):
    company_id: int
    invoice_number: str = Field(min_length=1)
    status: str = "draft"
    client_id: Optional[int] = None
    issue_date: date
    due_date: Optional[date] = None
    subtotal: Decimal = Field(ge=0)
    tax_amount: Decimal = Field(ge=0)
    total: Decimal = Field(ge=0)
    notes: Optional[str] = None


class InvoiceItemIn(BaseModel):
    description: str
    quantity: Decimal = Field(ge=0)
    unit_price: Decimal = Field(ge=0)
    total: Decimal = Field(ge=0)


class InvoiceIn(BaseModel):
    invoice: InvoiceHeaderIn
    items: list[InvoiceItemIn] = Field(min_length=1)


# Dependency injection ------------------------------------------------------

def get_bookkeeping_service() -> BookkeepingService:
    service: BookkeepingService = app.state.bookkeeping
    return service


def get_current_user_id(x_user_id: Annotated[Optional[str], Header()] = None) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id


Service = Annotated[BookkeepingService, Depends(get_bookkeeping_service)]
UserId = Annotated[str, Depends(get_current_user_id)]


# Routes --------------------------------------------------------------------


@app.get("/health")
def health_check() -> dict[str, str]:
    """Return a basic heartbeat payload for monitoring purposes."""

    return {"status": "ok"}


@app.get("/api/auth/user")
def get_user(user_id: UserId, service: Service) -> dict[str, object]:
    user = service.get_user(user_id)
    if user is None:
        raise NotFound("User not found")
    return {**asdict(user), "display_name": user.display_name}


@app.put("/api/auth/user")
def upsert_user(body: UserIn, user_id: UserId, service: Service) -> dict[str, object]:
    user = service.upsert_user(NewUser(id=user_id, **body.model_dump()))
    return {**asdict(user), "display_name": user.display_name}


@app.get("/api/companies")
def list_companies(user_id: UserId, service: Service) -> list[dict[str, object]]:
    return [asdict(company) for company in service.list_companies_for_user(user_id)]


@app.post("/api/companies")
def create_company(body: CompanyIn, user_id: UserId, service: Service) -> dict[str, object]:
    return asdict(service.create_company(NewCompany(**body.model_dump()), user_id))


@app.get("/api/companies/{company_id}")
def get_company(company_id: int, user_id: UserId, service: Service) -> dict[str, object]:
    return asdict(service.get_company(company_id, user_id))


@app.post("/api/companies/{company_id}/members")
def add_member(company_id: int, body: MemberIn, user_id: UserId, service: Service) -> dict[str, object]:
    return asdict(service.add_member(company_id, user_id, body.user_id))


@app.delete("/api/companies/{company_id}/members/{member_id}")
def remove_member(company_id: int, member_id: str, user_id: UserId, service: Service) -> dict[str, bool]:
    service.remove_member(company_id, user_id, member_id)
    return {"success": True}


@app.get("/api/dashboard/{company_id}")
def get_dashboard(company_id: int, user_id: UserId, service: Service) -> dict[str, object]:
    return asdict(service.get_dashboard(company_id, user_id))


@app.get("/api/transactions/{company_id}")
def list_transactions(
    company_id: int,
    user_id: UserId,
    service: Service,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[Optional[int], Query(ge=1)] = None,
) -> dict[str, object]:
    if limit is not None and limit > service.max_page_size:
        raise ValidationFailed(f"limit cannot exceed {service.max_page_size}")
    return asdict(service.list_transactions(company_id, user_id, page, limit))


@app.post("/api/transactions")
def create_transaction(body: TransactionIn, user_id: UserId, service: Service) -> dict[str, object]:
    return asdict(service.create_transaction(NewTransaction(**body.model_dump()), user_id))


@app.put("/api/transactions/{transaction_id}")
def update_transaction(transaction_id: int, body: TransactionIn, user_id: UserId, service: Service) -> dict[str, object]:
    return asdict(service.update_transaction(transaction_id, user_id, NewTransaction(**body.model_dump())))


@app.delete("/api/transactions/{transaction_id}")
def delete_transaction(transaction_id: int, user_id: UserId, service: Service) -> dict[str, bool]:
    service.delete_transaction(transaction_id, user_id)
    return {"success": True}


@app.post("/api/transactions/{company_id}/import")
async def import_transactions(company_id: int, request: Request, user_id: UserId, service: Service) -> dict[str, int]:
    """Import a CSV body (``date,type,amount,description[,category,client]``)."""

    content = await request.body()
    imported = await run_in_threadpool(service.import_transactions, company_id, user_id, io.BytesIO(content))
    return {"imported": imported}


@app.get("/api/clients/{company_id}")
def list_clients(company_id: int, user_id: UserId, service: Service) -> list[dict[str, object]]:
    return [asdict(client) for client in service.list_clients(company_id, user_id)]


@app.post("/api/clients")
def create_client(body: ClientIn, user_id: UserId, service: Service) -> dict[str, object]:
    return asdict(service.create_client(NewClient(**body.model_dump()), user_id))


@app.get("/api/categories/{company_id}")
def list_categories(company_id: int, user_id: UserId, service: Service) -> list[dict[str, object]]:
    return [asdict(category) for category in service.list_categories(company_id, user_id)]


@app.post("/api/categories")
def create_category(body: CategoryIn, user_id: UserId, service: Service) -> dict[str, object]:
    return asdict(service.create_category(NewCategory(**body.model_dump()), user_id))


@app.get("/api/invoices/{company_id}")
def list_invoices(company_id: int, user_id: UserId, service: Service) -> list[dict[str, object]]:
    return [asdict(invoice) for invoice in service.list_invoices(company_id, user_id)]


@app.post("/api/invoices")
def create_invoice(body: InvoiceIn, user_id: UserId, service: Service) -> dict[str, object]:
    header = NewInvoice(**body.invoice.model_dump())
    items = [NewInvoiceItem(**item.model_dump()) for item in body.items]
    return asdict(service.create_invoice(header, user_id, items))


@app.get("/api/invoices/{invoice_id}/details")
def get_invoice_details(invoice_id: int, user_id: UserId, service: Service) -> dict[str, object]:
    return asdict(service.get_invoice_details(invoice_id, user_id))


@app.get("/api/reports/profit-loss/{company_id}")
def profit_and_loss(
    company_id: int,
    user_id: UserId,
    service: Service,
    start_date: Annotated[date, Query(alias="startDate")],
    end_date: Annotated[date, Query(alias="endDate")],
) -> dict[str, object]:
    return asdict(service.profit_and_loss(company_id, user_id, start_date, end_date))


@app.get("/api/reports/cash-flow/{company_id}")
def cash_flow(
    company_id: int,
    user_id: UserId,
    service: Service,
    start_date: Annotated[date, Query(alias="startDate")],
    end_date: Annotated[date, Query(alias="endDate")],
) -> dict[str, object]:
    return asdict(service.cash_flow(company_id, user_id, start_date, end_date))
