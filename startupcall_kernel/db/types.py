"""
Module: startupcall_kernel.db.types
Responsibility: Annotated type aliases and helpers for monetary columns.
    Centralizes precision and currency-code normalization so that every
    model and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.

Invariants enforced:
    No floats for money.  All monetary amounts use Decimal with explicit
    precision; ``money_from_value`` is the sanctioned way to turn request
    input into an amount, and it refuses fractions of a cent.
    Stored amounts compare exactly in SQL on every backend: SQLite has no
    decimal storage, so MoneyType keeps amounts there as integers in
    units of 10**-9.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from sqlalchemy import BigInteger, Numeric, String
from sqlalchemy.types import TypeDecorator

MONEY_SCALE = 9

# Largest magnitude a signed 64-bit SQLite integer holds at MONEY_SCALE
_SQLITE_MONEY_LIMIT = 2**63 - 1


class MoneyType(TypeDecorator):
    """
    Decimal amount stored exactly on every backend.

    Guarantees:
        - PostgreSQL and other decimal-capable backends store Numeric(38, 9).
        - SQLite stores a BIGINT of the amount scaled by 10**9, so sums and
          comparisons run on integers and never on binary floats.
        - Values read back are always Decimal.
    """

    impl = Numeric(38, MONEY_SCALE)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(BigInteger())
        return dialect.type_descriptor(Numeric(38, MONEY_SCALE))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
        if dialect.name != "sqlite":
            return amount
        scaled = amount.scaleb(MONEY_SCALE)
        if scaled != scaled.to_integral_value():
            raise ValueError(
                f"Amount {amount} has more than {MONEY_SCALE} decimal places"
            )
        if abs(scaled) > _SQLITE_MONEY_LIMIT:
            raise ValueError(f"Amount {amount} is too large to store")
        return int(scaled)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "sqlite":
            return Decimal(int(value)).scaleb(-MONEY_SCALE)
        return value if isinstance(value, Decimal) else Decimal(str(value))


Money = Annotated[Decimal, MoneyType()]

# ISO 4217 style code (e.g. "USD", "EUR")
Currency = Annotated[str, String(3)]

MONEY_DECIMAL_PLACES = 2

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def round_money(amount: Decimal, places: int = MONEY_DECIMAL_PLACES) -> Decimal:
    """Round a monetary amount half-up to ``places`` decimal places."""
    return amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def money_from_value(value: Any) -> Decimal:
    """
    Convert request input (str, int, float, Decimal) into a Decimal amount.

    Floats are converted through their string form so that 0.1 stays 0.1.
    Amounts are kept to whole cents: what is stored is what is shown.

    Raises:
        ValueError: the value is not a finite number, or it carries more
            than MONEY_DECIMAL_PLACES decimal places.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    if amount != round_money(amount):
        raise ValueError(
            f"Amount {value!r} has fractions of a cent; "
            f"at most {MONEY_DECIMAL_PLACES} decimal places are allowed"
        )
    return amount


def normalize_currency(code: str) -> str:
    """
    Upper-case and validate a three-letter currency code.

    Raises:
        ValueError: the code is not three letters.
    """
    normalized = (code or "").strip().upper()
    if not _CURRENCY_RE.match(normalized):
        raise ValueError(f"Invalid currency code: {code!r}")
    return normalized
