"""Sequence numbers and human-readable codes for bills, invoices, products and kits.

Counters live in the ``counter`` table keyed by ``(type, year)``. Every value
is minted by one ``INSERT ... ON CONFLICT DO UPDATE ... RETURNING`` statement,
so concurrent callers never observe the same number. The statement runs in
the caller's transaction: a rolled back bill also rolls back its number.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Optional

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import PersistenceError
from app.models import Counter

logger = logging.getLogger(__name__)

YEAR_BUCKETED_TYPES = {"bill", "invoice"}
NUMBER_PREFIXES = {"bill": "BILL", "invoice": "INV"}

_UPSERT_BUILDERS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def financial_year(today: Optional[date] = None, start_month: Optional[int] = None) -> str:
    today = today or date.today()
    start_month = start_month or settings.fiscal_year_start_month
    if today.month >= start_month:
        return f"{today.year}-{(today.year + 1) % 100:02d}"
    return f"{today.year - 1}-{today.year % 100:02d}"


def next_value(db: Session, counter_type: str, year: Optional[str] = None) -> int:
    dialect = db.get_bind().dialect.name
    builder = _UPSERT_BUILDERS.get(dialect)
    if builder is None:
        raise PersistenceError(f"atomic counters are not supported on {dialect}")
    stmt = (
        builder(Counter)
        .values(type=counter_type, year=year or "", seq=1)
        .on_conflict_do_update(
            index_elements=[Counter.type, Counter.year],
            set_={"seq": Counter.seq + 1},
        )
        .returning(Counter.seq)
    )
    seq = db.execute(stmt).scalar_one()
    logger.debug("counter %s/%s advanced to %s", counter_type, year or "-", seq)
    return seq


def next_sequence(db: Session, counter_type: str, today: Optional[date] = None) -> int:
    year = financial_year(today) if counter_type in YEAR_BUCKETED_TYPES else None
    return next_value(db, counter_type, year)


def generate_number(db: Session, counter_type: str, today: Optional[date] = None) -> str:
    """Mint a formatted document number such as ``BILL/2025-26/000042``."""
    if counter_type not in NUMBER_PREFIXES:
        raise ValueError(f"no number format for counter type {counter_type!r}")
    year = financial_year(today)
    seq = next_value(db, counter_type, year)
    return f"{NUMBER_PREFIXES[counter_type]}/{year}/{seq:06d}"


def _code(value: Optional[str], length: int = 2) -> str:
    if not value:
        return "X" * length
    cleaned = re.sub(r"[^A-Z0-9]", "X", value.upper())
    return cleaned.ljust(length, "X")[:length]


def product_sku(category: Optional[str], brand: Optional[str], seq: int) -> str:
    return f"{_code(category)}-{_code(brand)}-{seq:05d}"


def kit_sku(name: str, seq: int) -> str:
    return f"KIT-{name[:3].upper().ljust(3, 'X')}-{seq:04d}"
