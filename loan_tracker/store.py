"""Persistence layer for the loan portfolio.

The whole portfolio is kept as one JSON array under a fixed key in a small
key-value table. It defaults to SQLite for local use, but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL).

Loading is lenient: if the stored blob cannot be decoded the failure is logged
and an empty portfolio is returned.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import InvalidOperation
from typing import List, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .data_models import Loan
from .serialization import dumps_loans, loads_loans

logger = logging.getLogger(__name__)

Base = declarative_base()

STORAGE_KEY = "studentLoanTracker"
DEFAULT_DATABASE_URL = "sqlite:///loan_tracker.sqlite3"


class KeyValueModel(Base):
    __tablename__ = "key_value_store"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class LoanNotFoundError(KeyError):
    """Raised when a loan id is not part of the stored portfolio."""

    def __init__(self, loan_id: str) -> None:
        super().__init__(loan_id)
        self.loan_id = loan_id

    def __str__(self) -> str:
        return f"Loan not found: {self.loan_id}"


class LoanStore:
    """Database-backed portfolio store."""

    def __init__(self, url: str, *, key: str = STORAGE_KEY) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._key = key

    def load_loans(self) -> List[Loan]:
        """Return the stored portfolio, or an empty list if nothing usable is stored."""
        with self._session_factory() as session:
            row = session.get(KeyValueModel, self._key)
            if row is None:
                return []
            raw = row.value
        try:
            return loads_loans(raw)
        except (ValueError, KeyError, TypeError, InvalidOperation) as exc:
            logger.error("Error loading loans from store key %r: %s", self._key, exc)
            return []

    def save_loans(self, loans: List[Loan]) -> None:
        self.write_raw(dumps_loans(loans))
        logger.debug("Saved %d loan(s) under key %r", len(loans), self._key)

    def clear_loans(self) -> None:
        with self._session_factory() as session:
            row = session.get(KeyValueModel, self._key)
            if row is not None:
                session.delete(row)
                session.commit()

    def get_loan(self, loan_id: str) -> Loan:
        for loan in self.load_loans():
            if loan.id == loan_id:
                return loan
        raise LoanNotFoundError(loan_id)

    def add_loan(self, loan: Loan) -> None:
        loans = self.load_loans()
        if any(existing.id == loan.id for existing in loans):
            raise ValueError(f"A loan with id {loan.id} already exists")
        loans.append(loan)
        self.save_loans(loans)

    def update_loan(self, loan: Loan) -> None:
        loans = self.load_loans()
        for index, existing in enumerate(loans):
            if existing.id == loan.id:
                loans[index] = loan
                self.save_loans(loans)
                return
        raise LoanNotFoundError(loan.id)

    def remove_loan(self, loan_id: str) -> None:
        loans = self.load_loans()
        remaining = [loan for loan in loans if loan.id != loan_id]
        if len(remaining) == len(loans):
            raise LoanNotFoundError(loan_id)
        self.save_loans(remaining)

    def write_raw(self, value: str) -> None:
        """Store ``value`` under the portfolio key without encoding it."""
        with self._session_factory() as session:
            row = session.get(KeyValueModel, self._key)
            if row is None:
                session.add(KeyValueModel(key=self._key, value=value))
            else:
                row.value = value
            session.commit()


def create_store_from_env(url: Optional[str]) -> LoanStore:
    return LoanStore(url or DEFAULT_DATABASE_URL)
