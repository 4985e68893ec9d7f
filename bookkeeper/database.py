"""SQLite persistence layer for the bookkeeper backend.

The repository provides a small, well-typed API that hides SQL details from the
rest of the code.  It purposely relies on the standard library :mod:`sqlite3`
module.  Every method is a single parameterised statement scoped by the
caller; tenant checks live one layer up in :mod:`bookkeeper.access`.

Multi-statement writes are grouped with :meth:`SQLiteRepository.transaction`,
which commits on the outermost exit and rolls everything back on any error.
"""
from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional

from .errors import ValidationFailed
from .models import (
    Category,
    CategoryTotal,
    ChartBucket,
    Client,
    Company,
    Invoice,
    InvoiceClient,
    InvoiceItem,
    InvoiceSummary,
    Membership,
    NewCategory,
    NewClient,
    NewCompany,
    NewInvoice,
    NewInvoiceItem,
    NewTransaction,
    NewUser,
    Transaction,
    TransactionRow,
    User,
    to_money,
)

logger = logging.getLogger(__name__)

# Money is stored as integer minor units; other decimals (tax rates,
# quantities) are stored as text.
sqlite3.register_adapter(Decimal, str)

_TRANSACTION_ROW_SELECT = """
    SELECT
        t.id, t.kind, t.amount, t.description, t.date, t.attachment_url,
        t.created_at, t.category_id, t.client_id,
        c.name AS category_name,
        cl.name AS client_name
    FROM transactions AS t
    LEFT JOIN categories AS c ON c.id = t.category_id
    LEFT JOIN clients AS cl ON cl.id = t.client_id
"""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SQLiteRepository:
    """Encapsulates all SQLite access for the application.

    Each thread gets its own connection so concurrent requests served from a
    thread pool never share an open transaction.
    """

    def __init__(self, database_path: Path | str, clock: Callable[[], datetime] = utc_now) -> None:
        self._database_path = str(database_path)
        self._clock = clock
        self._local = threading.local()
        self._connections: list[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()

    @property
    def _connection(self) -> sqlite3.Connection:
        connection = getattr(self._local, "connection", None)
        if connection is None:
            connection = sqlite3.connect(
                self._database_path,
                isolation_level=None,
                check_same_thread=False,
            )
            connection.execute("PRAGMA foreign_keys = ON;")
            connection.row_factory = sqlite3.Row
            self._local.connection = connection
            self._local.depth = 0
            with self._connections_lock:
                self._connections.append(connection)
        return connection

    def close(self) -> None:
        """Close every connection opened by this repository."""

        with self._connections_lock:
            connections, self._connections = self._connections, []
        for connection in connections:
            connection.close()
        self._local = threading.local()

    def _now(self) -> str:
        return self._clock().isoformat(timespec="microseconds")

    # ------------------------------------------------------------------
    # Transaction boundary
    # ------------------------------------------------------------------
    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the enclosed statements as one atomic unit.

        Nested calls join the outermost transaction.  Integrity violations
        are reported as :class:`~bookkeeper.errors.ValidationFailed`.
        """

        connection = self._connection
        depth = self._local.depth
        if depth == 0:
            connection.execute("BEGIN IMMEDIATE")
        self._local.depth = depth + 1
        try:
            yield connection
        except BaseException as exc:
            self._local.depth = depth
            if depth == 0:
                connection.execute("ROLLBACK")
                logger.debug("Rolled back transaction after %s", type(exc).__name__)
            if isinstance(exc, sqlite3.IntegrityError):
                raise ValidationFailed(_integrity_message(exc)) from exc
            raise
        else:
            self._local.depth = depth
            if depth == 0:
                connection.execute("COMMIT")

    # ------------------------------------------------------------------
    # Schema management
    # ------------------------------------------------------------------
    def initialise_schema(self) -> None:
        """Create all tables required by the application if they do not exist."""

        self._connection.executescript(
            """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                email TEXT,
                first_name TEXT,
                last_name TEXT,
                profile_image_url TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS companies (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                logo TEXT,
                currency TEXT NOT NULL,
                tax_rate TEXT NOT NULL DEFAULT '0',
                address TEXT,
                phone TEXT,
                email TEXT,
                website TEXT,
                owner_id TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS company_members (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
                user_id TEXT NOT NULL,
                created_at TEXT NOT NULL,
                UNIQUE(company_id, user_id)
            );

            CREATE TABLE IF NOT EXISTS clients (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
                name TEXT NOT NULL,
                email TEXT,
                phone TEXT,
                address TEXT,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS categories (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
                name TEXT NOT NULL,
                kind TEXT NOT NULL CHECK (kind IN ('income', 'expense')),
                description TEXT,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS transactions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
                kind TEXT NOT NULL CHECK (kind IN ('income', 'expense')),
                amount INTEGER NOT NULL CHECK (amount >= 0),
                description TEXT NOT NULL,
                date TEXT NOT NULL,
                category_id INTEGER REFERENCES categories(id) ON DELETE SET NULL,
                client_id INTEGER REFERENCES clients(id) ON DELETE SET NULL,
                attachment_url TEXT,
                created_by TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS invoices (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
                invoice_number TEXT NOT NULL,
                status TEXT NOT NULL,
                client_id INTEGER REFERENCES clients(id) ON DELETE SET NULL,
                issue_date TEXT NOT NULL,
                due_date TEXT,
                subtotal INTEGER NOT NULL,
                tax_amount INTEGER NOT NULL,
                total INTEGER NOT NULL,
                notes TEXT,
                created_by TEXT NOT NULL,
                created_at TEXT NOT NULL,
                UNIQUE(company_id, invoice_number)
            );

            CREATE TABLE IF NOT EXISTS invoice_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                invoice_id INTEGER NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
                description TEXT NOT NULL,
                quantity TEXT NOT NULL,
                unit_price INTEGER NOT NULL,
                total INTEGER NOT NULL
            );

            CREATE INDEX IF NOT EXISTS ix_companies_owner ON companies(owner_id);
            CREATE INDEX IF NOT EXISTS ix_members_user ON company_members(user_id);
            CREATE INDEX IF NOT EXISTS ix_transactions_company_date ON transactions(company_id, date);
            CREATE INDEX IF NOT EXISTS ix_transactions_company_created ON transactions(company_id, created_at);
            CREATE INDEX IF NOT EXISTS ix_invoices_company ON invoices(company_id);
            CREATE INDEX IF NOT EXISTS ix_invoice_items_invoice ON invoice_items(invoice_id);
            """
        )

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def get_user(self, user_id: str) -> Optional[User]:
        row = self._connection.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return _user_from_row(row)

    def upsert_user(self, user: NewUser) -> User:
        now = self._now()
        with self.transaction() as connection:
            connection.execute(
                """
                INSERT INTO users (id, email, first_name, last_name, profile_image_url, created_at, updated_at)
                VALUES (:id, :email, :first_name, :last_name, :profile_image_url, :now, :now)
                ON CONFLICT(id) DO UPDATE SET
                    email=excluded.email,
                    first_name=excluded.first_name,
                    last_name=excluded.last_name,
                    profile_image_url=excluded.profile_image_url,
                    updated_at=excluded.updated_at
                """,
                {
                    "id": user.id,
                    "email": user.email,
                    "first_name": user.first_name,
                    "last_name": user.last_name,
                    "profile_image_url": user.profile_image_url,
                    "now": now,
                },
            )
        stored = self.get_user(user.id)
        assert stored is not None
        return stored

    # ------------------------------------------------------------------
    # Companies and memberships
    # ------------------------------------------------------------------
    def get_company(self, company_id: int) -> Optional[Company]:
        row = self._connection.execute("SELECT * FROM companies WHERE id = ?", (company_id,)).fetchone()
        if row is None:
            return None
        return _company_from_row(row)

    def insert_company(self, company: NewCompany, owner_id: str, currency: str) -> Company:
        now = self._now()
        with self.transaction() as connection:
            cursor = connection.execute(
                """
                INSERT INTO companies (
                    name, logo, currency, tax_rate, address, phone, email,
                    website, owner_id, created_at, updated_at
                ) VALUES (
                    :name, :logo, :currency, :tax_rate, :address, :phone, :email,
                    :website, :owner_id, :now, :now
                )
                """,
                {
                    "name": company.name,
                    "logo": company.logo,
                    "currency": currency,
                    "tax_rate": company.tax_rate,
                    "address": company.address,
                    "phone": company.phone,
                    "email": company.email,
                    "website": company.website,
                    "owner_id": owner_id,
                    "now": now,
                },
            )
            stored = self.get_company(cursor.lastrowid)
        assert stored is not None
        return stored

    def list_owned_companies(self, user_id: str) -> list[Company]:
        rows = self._connection.execute(
            "SELECT * FROM companies WHERE owner_id = ? ORDER BY name, id",
            (user_id,),
        ).fetchall()
        return [_company_from_row(row) for row in rows]

    def list_member_companies(self, user_id: str) -> list[Company]:
        rows = self._connection.execute(
            """
            SELECT c.*
            FROM companies AS c
            JOIN company_members AS m ON m.company_id = c.id
            WHERE m.user_id = ?
            ORDER BY c.name, c.id
            """,
            (user_id,),
        ).fetchall()
        return [_company_from_row(row) for row in rows]

    def get_membership(self, company_id: int, user_id: str) -> Optional[Membership]:
        row = self._connection.execute(
            "SELECT company_id, user_id, created_at FROM company_members WHERE company_id = ? AND user_id = ?",
            (company_id, user_id),
        ).fetchone()
        if row is None:
            return None
        return Membership(
            company_id=row["company_id"],
            user_id=row["user_id"],
            created_at=_parse_datetime(row["created_at"]),
        )

    def insert_membership(self, company_id: int, user_id: str) -> Membership:
        with self.transaction() as connection:
            connection.execute(
                "INSERT INTO company_members (company_id, user_id, created_at) VALUES (?, ?, ?)",
                (company_id, user_id, self._now()),
            )
            stored = self.get_membership(company_id, user_id)
        assert stored is not None
        return stored

    def delete_membership(self, company_id: int, user_id: str) -> bool:
        with self.transaction() as connection:
            cursor = connection.execute(
                "DELETE FROM company_members WHERE company_id = ? AND user_id = ?",
                (company_id, user_id),
            )
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Categories and clients
    # ------------------------------------------------------------------
    def insert_categories(self, categories: Iterable[NewCategory]) -> list[Category]:
        created: list[Category] = []
        now = self._now()
        with self.transaction() as connection:
            for category in categories:
                cursor = connection.execute(
                    """
                    INSERT INTO categories (company_id, name, kind, description, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (category.company_id, category.name, category.kind, category.description, now),
                )
                stored = self.get_category(cursor.lastrowid)
                assert stored is not None
                created.append(stored)
        return created

    def get_category(self, category_id: int) -> Optional[Category]:
        row = self._connection.execute("SELECT * FROM categories WHERE id = ?", (category_id,)).fetchone()
        if row is None:
            return None
        return _category_from_row(row)

    def find_category(self, company_id: int, name: str, kind: str) -> Optional[Category]:
        row = self._connection.execute(
            "SELECT * FROM categories WHERE company_id = ? AND name = ? AND kind = ? ORDER BY id LIMIT 1",
            (company_id, name, kind),
        ).fetchone()
        if row is None:
            return None
        return _category_from_row(row)

    def list_categories(self, company_id: int) -> list[Category]:
        rows = self._connection.execute(
            "SELECT * FROM categories WHERE company_id = ? ORDER BY name, id",
            (company_id,),
        ).fetchall()
        return [_category_from_row(row) for row in rows]

    def insert_client(self, client: NewClient) -> Client:
        with self.transaction() as connection:
            cursor = connection.execute(
                """
                INSERT INTO clients (company_id, name, email, phone, address, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (client.company_id, client.name, client.email, client.phone, client.address, self._now()),
            )
            stored = self.get_client(cursor.lastrowid)
        assert stored is not None
        return stored

    def get_client(self, client_id: int) -> Optional[Client]:
        row = self._connection.execute("SELECT * FROM clients WHERE id = ?", (client_id,)).fetchone()
        if row is None:
            return None
        return _client_from_row(row)

    def find_client(self, company_id: int, name: str) -> Optional[Client]:
        row = self._connection.execute(
            "SELECT * FROM clients WHERE company_id = ? AND name = ? ORDER BY id LIMIT 1",
            (company_id, name),
        ).fetchone()
        if row is None:
            return None
        return _client_from_row(row)

    def list_clients(self, company_id: int) -> list[Client]:
        rows = self._connection.execute(
            "SELECT * FROM clients WHERE company_id = ? ORDER BY name, id",
            (company_id,),
        ).fetchall()
        return [_client_from_row(row) for row in rows]

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        row = self._connection.execute("SELECT * FROM transactions WHERE id = ?", (transaction_id,)).fetchone()
        if row is None:
            return None
        return _transaction_from_row(row)

    def insert_transaction(self, transaction: NewTransaction, created_by: str) -> Transaction:
        now = self._now()
        with self.transaction() as connection:
            cursor = connection.execute(
                """
                INSERT INTO transactions (
                    company_id, kind, amount, description, date, category_id,
                    client_id, attachment_url, created_by, created_at, updated_at
                ) VALUES (
                    :company_id, :kind, :amount, :description, :date, :category_id,
                    :client_id, :attachment_url, :created_by, :now, :now
                )
                """,
                {
                    "company_id": transaction.company_id,
                    "kind": transaction.kind,
                    "amount": _to_cents(transaction.amount),
                    "description": transaction.description,
                    "date": transaction.date.isoformat(),
                    "category_id": transaction.category_id,
                    "client_id": transaction.client_id,
                    "attachment_url": transaction.attachment_url,
                    "created_by": created_by,
                    "now": now,
                },
            )
            stored = self.get_transaction(cursor.lastrowid)
        assert stored is not None
        return stored

    def update_transaction(self, transaction_id: int, transaction: NewTransaction) -> Transaction:
        """Overwrite the mutable columns of a transaction and stamp ``updated_at``."""

        with self.transaction() as connection:
            connection.execute(
                """
                UPDATE transactions SET
                    amount = :amount,
                    description = :description,
                    date = :date,
                    category_id = :category_id,
                    client_id = :client_id,
                    attachment_url = :attachment_url,
                    updated_at = :now
                WHERE id = :id
                """,
                {
                    "id": transaction_id,
                    "amount": _to_cents(transaction.amount),
                    "description": transaction.description,
                    "date": transaction.date.isoformat(),
                    "category_id": transaction.category_id,
                    "client_id": transaction.client_id,
                    "attachment_url": transaction.attachment_url,
                    "now": self._now(),
                },
            )
            stored = self.get_transaction(transaction_id)
        assert stored is not None
        return stored

    def delete_transaction(self, transaction_id: int) -> None:
        with self.transaction() as connection:
            connection.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))

    def list_transaction_rows(self, company_id: int, limit: int, offset: int = 0) -> list[TransactionRow]:
        """Return transactions newest first, annotated with category and client names."""

        rows = self._connection.execute(
            _TRANSACTION_ROW_SELECT
            + """
            WHERE t.company_id = ?
            ORDER BY t.created_at DESC, t.id DESC
            LIMIT ? OFFSET ?
            """,
            (company_id, limit, offset),
        ).fetchall()
        return [_transaction_row_from_row(row) for row in rows]

    def count_transactions(self, company_id: int) -> int:
        row = self._connection.execute(
            "SELECT COUNT(*) AS total FROM transactions WHERE company_id = ?",
            (company_id,),
        ).fetchone()
        return int(row["total"])

    def sum_transactions(self, company_id: int, kind: str, start: date, end: date) -> Decimal:
        row = self._connection.execute(
            """
            SELECT COALESCE(SUM(amount), 0) AS total
            FROM transactions
            WHERE company_id = ? AND kind = ? AND date >= ? AND date <= ?
            """,
            (company_id, kind, start.isoformat(), end.isoformat()),
        ).fetchone()
        return _from_cents(row["total"])

    def monthly_totals(self, company_id: int, since: date) -> list[ChartBucket]:
        rows = self._connection.execute(
            """
            SELECT
                CAST(strftime('%Y', date) AS INTEGER) AS year,
                CAST(strftime('%m', date) AS INTEGER) AS month,
                kind,
                SUM(amount) AS total
            FROM transactions
            WHERE company_id = ? AND date >= ?
            GROUP BY year, month, kind
            ORDER BY year, month, kind
            """,
            (company_id, since.isoformat()),
        ).fetchall()
        return [
            ChartBucket(year=row["year"], month=row["month"], kind=row["kind"], total=_from_cents(row["total"]))
            for row in rows
        ]

    def category_totals(self, company_id: int, kind: str, start: date, end: date) -> list[CategoryTotal]:
        """Sum one kind of transaction per category name; uncategorised rows group under ``None``."""

        rows = self._connection.execute(
            """
            SELECT c.name AS category_name, SUM(t.amount) AS total
            FROM transactions AS t
            LEFT JOIN categories AS c ON c.id = t.category_id
            WHERE t.company_id = ? AND t.kind = ? AND t.date >= ? AND t.date <= ?
            GROUP BY c.name
            ORDER BY c.name
            """,
            (company_id, kind, start.isoformat(), end.isoformat()),
        ).fetchall()
        return [CategoryTotal(category_name=row["category_name"], total=_from_cents(row["total"])) for row in rows]

    def transaction_rows_between(self, company_id: int, start: date, end: date) -> list[TransactionRow]:
        """Return transactions in the inclusive range oldest first, ties broken by id."""

        rows = self._connection.execute(
            _TRANSACTION_ROW_SELECT
            + """
            WHERE t.company_id = ? AND t.date >= ? AND t.date <= ?
            ORDER BY t.date ASC, t.id ASC
            """,
            (company_id, start.isoformat(), end.isoformat()),
        ).fetchall()
        return [_transaction_row_from_row(row) for row in rows]

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------
    def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        row = self._connection.execute("SELECT * FROM invoices WHERE id = ?", (invoice_id,)).fetchone()
        if row is None:
            return None
        return _invoice_from_row(row)

    def insert_invoice(self, invoice: NewInvoice, created_by: str) -> Invoice:
        with self.transaction() as connection:
            cursor = connection.execute(
                """
                INSERT INTO invoices (
                    company_id, invoice_number, status, client_id, issue_date,
                    due_date, subtotal, tax_amount, total, notes, created_by, created_at
                ) VALUES (
                    :company_id, :invoice_number, :status, :client_id, :issue_date,
                    :due_date, :subtotal, :tax_amount, :total, :notes, :created_by, :now
                )
                """,
                {
                    "company_id": invoice.company_id,
                    "invoice_number": invoice.invoice_number,
                    "status": invoice.status,
                    "client_id": invoice.client_id,
                    "issue_date": invoice.issue_date.isoformat(),
                    "due_date": invoice.due_date.isoformat() if invoice.due_date else None,
                    "subtotal": _to_cents(invoice.subtotal),
                    "tax_amount": _to_cents(invoice.tax_amount),
                    "total": _to_cents(invoice.total),
                    "notes": invoice.notes,
                    "created_by": created_by,
                    "now": self._now(),
                },
            )
            stored = self.get_invoice(cursor.lastrowid)
        assert stored is not None
        return stored

    def insert_invoice_items(self, invoice_id: int, items: Iterable[NewInvoiceItem]) -> list[InvoiceItem]:
        with self.transaction() as connection:
            connection.executemany(
                """
                INSERT INTO invoice_items (invoice_id, description, quantity, unit_price, total)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (invoice_id, item.description, item.quantity, _to_cents(item.unit_price), _to_cents(item.total))
                    for item in items
                ],
            )
            return self.list_invoice_items(invoice_id)

    def list_invoice_items(self, invoice_id: int) -> list[InvoiceItem]:
        rows = self._connection.execute(
            "SELECT * FROM invoice_items WHERE invoice_id = ? ORDER BY id",
            (invoice_id,),
        ).fetchall()
        return [
            InvoiceItem(
                id=row["id"],
                invoice_id=row["invoice_id"],
                description=row["description"],
                quantity=Decimal(row["quantity"]),
                unit_price=_from_cents(row["unit_price"]),
                total=_from_cents(row["total"]),
            )
            for row in rows
        ]

    def list_invoice_summaries(self, company_id: int) -> list[InvoiceSummary]:
        rows = self._connection.execute(
            """
            SELECT i.*, cl.name AS client_name, cl.email AS client_email
            FROM invoices AS i
            LEFT JOIN clients AS cl ON cl.id = i.client_id
            WHERE i.company_id = ?
            ORDER BY i.created_at DESC, i.id DESC
            """,
            (company_id,),
        ).fetchall()
        summaries = []
        for row in rows:
            client = None
            if row["client_name"] is not None:
                client = InvoiceClient(id=row["client_id"], name=row["client_name"], email=row["client_email"])
            summaries.append(
                InvoiceSummary(
                    id=row["id"],
                    invoice_number=row["invoice_number"],
                    status=row["status"],
                    issue_date=_parse_date(row["issue_date"]),
                    due_date=_parse_date(row["due_date"]),
                    subtotal=_from_cents(row["subtotal"]),
                    tax_amount=_from_cents(row["tax_amount"]),
                    total=_from_cents(row["total"]),
                    notes=row["notes"],
                    created_at=_parse_datetime(row["created_at"]),
                    client=client,
                )
            )
        return summaries

    def get_invoice_client(self, invoice_id: int) -> Optional[InvoiceClient]:
        """Return the contact fields of the client an invoice is addressed to."""

        row = self._connection.execute(
            """
            SELECT cl.id, cl.name, cl.email, cl.phone, cl.address
            FROM invoices AS i
            JOIN clients AS cl ON cl.id = i.client_id
            WHERE i.id = ?
            """,
            (invoice_id,),
        ).fetchone()
        if row is None:
            return None
        return InvoiceClient(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            phone=row["phone"],
            address=row["address"],
        )

    def sum_invoices(self, company_id: int, status: str) -> Decimal:
        row = self._connection.execute(
            """
            SELECT COALESCE(SUM(total), 0) AS total
            FROM invoices
            WHERE company_id = ? AND status = ?
            """,
            (company_id, status),
        ).fetchone()
        return _from_cents(row["total"])


# ---------------------------------------------------------------------------
# Row mapping helpers
# ---------------------------------------------------------------------------

def _to_cents(value: object) -> int:
    return int(to_money(value).scaleb(2))


def _from_cents(value: Optional[int]) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(value).scaleb(-2)


def _parse_date(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    return date.fromisoformat(value)


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def _integrity_message(exc: sqlite3.IntegrityError) -> str:
    text = str(exc)
    if "UNIQUE" in text:
        return "A record with the same identifying values already exists"
    if "FOREIGN KEY" in text:
        return "A referenced record does not exist"
    if "NOT NULL" in text:
        return "A required value is missing"
    if "CHECK" in text:
        return "A value is outside its allowed range"
    return "Integrity constraint violated"


def _user_from_row(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        profile_image_url=row["profile_image_url"],
        created_at=_parse_datetime(row["created_at"]),
        updated_at=_parse_datetime(row["updated_at"]),
    )


def _company_from_row(row: sqlite3.Row) -> Company:
    return Company(
        id=row["id"],
        name=row["name"],
        currency=row["currency"],
        tax_rate=Decimal(row["tax_rate"]),
        owner_id=row["owner_id"],
        logo=row["logo"],
        address=row["address"],
        phone=row["phone"],
        email=row["email"],
        website=row["website"],
        created_at=_parse_datetime(row["created_at"]),
        updated_at=_parse_datetime(row["updated_at"]),
    )


def _client_from_row(row: sqlite3.Row) -> Client:
    return Client(
        id=row["id"],
        company_id=row["company_id"],
        name=row["name"],
        email=row["email"],
        phone=row["phone"],
        address=row["address"],
        created_at=_parse_datetime(row["created_at"]),
    )


def _category_from_row(row: sqlite3.Row) -> Category:
    return Category(
        id=row["id"],
        company_id=row["company_id"],
        name=row["name"],
        kind=row["kind"],
        description=row["description"],
        created_at=_parse_datetime(row["created_at"]),
    )


def _transaction_from_row(row: sqlite3.Row) -> Transaction:
    return Transaction(
        id=row["id"],
        company_id=row["company_id"],
        kind=row["kind"],
        amount=_from_cents(row["amount"]),
        description=row["description"],
        date=date.fromisoformat(row["date"]),
        created_by=row["created_by"],
        category_id=row["category_id"],
        client_id=row["client_id"],
        attachment_url=row["attachment_url"],
        created_at=_parse_datetime(row["created_at"]),
        updated_at=_parse_datetime(row["updated_at"]),
    )


def _transaction_row_from_row(row: sqlite3.Row) -> TransactionRow:
    return TransactionRow(
        id=row["id"],
        kind=row["kind"],
        amount=_from_cents(row["amount"]),
        description=row["description"],
        date=date.fromisoformat(row["date"]),
        category_id=row["category_id"],
        category_name=row["category_name"],
        client_id=row["client_id"],
        client_name=row["client_name"],
        attachment_url=row["attachment_url"],
        created_at=_parse_datetime(row["created_at"]),
    )


def _invoice_from_row(row: sqlite3.Row) -> Invoice:
    return Invoice(
        id=row["id"],
        company_id=row["company_id"],
        invoice_number=row["invoice_number"],
        status=row["status"],
        issue_date=date.fromisoformat(row["issue_date"]),
        due_date=_parse_date(row["due_date"]),
        subtotal=_from_cents(row["subtotal"]),
        tax_amount=_from_cents(row["tax_amount"]),
        total=_from_cents(row["total"]),
        created_by=row["created_by"],
        client_id=row["client_id"],
        notes=row["notes"],
        created_at=_parse_datetime(row["created_at"]),
    )
