"""CSV importer that loads bulk transactions into a company ledger."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import IO, Iterator, Optional, Union

import pandas as pd
from dateutil import parser as date_parser

from .access import requires_access
from .database import SQLiteRepository
from .errors import ValidationFailed
from .ledger import LedgerRepository
from .models import TRANSACTION_KINDS, NewTransaction

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("date", "type", "amount", "description")

CsvSource = Union[str, Path, IO[str], IO[bytes]]


@dataclass(slots=True)
class ImportRow:
    """One CSV row after parsing, before references are resolved."""

    line: int
    kind: str
    amount: Decimal
    description: str
    date: date
    category: Optional[str]
    client: Optional[str]


class TransactionCsvImporter:
    """Load and validate a CSV export, then insert it all-or-nothing.

    The importer performs three tasks:

    1. Read the file into a :class:`~pandas.DataFrame` of strings.
    2. Parse each row into an :class:`ImportRow`, rejecting the whole file on
       the first malformed value.
    3. Resolve category and client names inside the company and insert every
       transaction in a single database transaction.
    """

    def __init__(self, repository: SQLiteRepository, ledger: LedgerRepository) -> None:
        self._repository = repository
        self._ledger = ledger
        self.guard = ledger.guard

    @requires_access()
    def import_transactions(self, company_id: int, user_id: str, source: CsvSource) -> int:
        """Import ``source`` into the company ledger and return the row count."""

        dataframe = self._load(source)
        payloads = [self._resolve(company_id, row) for row in self._iter_rows(dataframe)]
        with self._repository.transaction():
            for payload in payloads:
                self._ledger.validate_transaction(payload)
                self._repository.insert_transaction(payload, created_by=user_id)
        logger.info("User %s imported %d transactions into company %s", user_id, len(payloads), company_id)
        return len(payloads)

    def _load(self, source: CsvSource) -> pd.DataFrame:
        try:
            dataframe = pd.read_csv(source, dtype=str, keep_default_na=False)
        except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as exc:
            raise ValidationFailed("Could not read the CSV file") from exc
        dataframe.columns = [str(column).strip().lower() for column in dataframe.columns]
        missing = [column for column in REQUIRED_COLUMNS if column not in dataframe.columns]
        if missing:
            raise ValidationFailed(f"Missing columns: {', '.join(missing)}")
        return dataframe

    def _iter_rows(self, dataframe: pd.DataFrame) -> Iterator[ImportRow]:
        # Line numbers count the header as line 1.
        for index, row in dataframe.iterrows():
            line = int(index) + 2
            kind = _clean_string(row.get("type")).lower()
            if kind not in TRANSACTION_KINDS:
                raise ValidationFailed(f"Line {line}: unknown transaction type")
            amount = _parse_decimal(row.get("amount"))
            if amount is None:
                raise ValidationFailed(f"Line {line}: invalid amount")
            parsed_date = _parse_date(row.get("date"))
            if parsed_date is None:
                raise ValidationFailed(f"Line {line}: invalid date")
            yield ImportRow(
                line=line,
                kind=kind,
                amount=amount,
                description=_clean_string(row.get("description")),
                date=parsed_date,
                category=_clean_string(row.get("category")) or None,
                client=_clean_string(row.get("client")) or None,
            )

    def _resolve(self, company_id: int, row: ImportRow) -> NewTransaction:
        category_id = None
        if row.category:
            category = self._repository.find_category(company_id, row.category, row.kind)
            if category is None:
                raise ValidationFailed(f"Line {row.line}: unknown {row.kind} category")
            category_id = category.id
        client_id = None
        if row.client:
            client = self._repository.find_client(company_id, row.client)
            if client is None:
                raise ValidationFailed(f"Line {row.line}: unknown client")
            client_id = client.id
        return NewTransaction(
            company_id=company_id,
            kind=row.kind,
            amount=row.amount,
            description=row.description,
            date=row.date,
            category_id=category_id,
            client_id=client_id,
        )


# ---------------------------------------------------------------------------
# Helper utilities
# ---------------------------------------------------------------------------

def _clean_string(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _parse_decimal(value: object) -> Decimal | None:
    stringified = _clean_string(value)
    if not stringified:
        return None
    normalised = stringified.replace("'", "").replace(" ", "").replace(",", "")
    try:
        parsed = Decimal(normalised)
    except InvalidOperation:
        return None
    if not parsed.is_finite():
        return None
    return parsed


def _parse_date(value: object) -> date | None:
    stringified = _clean_string(value)
    if not stringified:
        return None
    try:
        return date_parser.parse(stringified, yearfirst=True).date()
    except (ValueError, OverflowError):
        return None
