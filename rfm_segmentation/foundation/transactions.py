"""Sales transaction records and input validation.

Transactions are the only input to the RFM pipeline. Every record is
validated when it is built: a malformed date, a missing customer or order
identifier, or a bad amount fails the run with a message naming the
offending record instead of being silently dropped or defaulted.
"""

from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

# Order dates arrive as DD/MM/YYYY or DD/MM/YY. Formats are tried in order;
# %Y only accepts four digits and %y leaves trailing digits unconverted, so
# the two never both match the same string.
DEFAULT_DATE_FORMATS: tuple[str, ...] = ("%d/%m/%Y", "%d/%m/%y")


@dataclass(frozen=True, slots=True)
class SalesTransaction:
    """A single sales line.

    Attributes
    ----------
    order_id:
        Order identifier. Several lines may share one order.
    customer_id:
        Customer identifier (required, non-blank)
    amount:
        Line amount, non-negative
    order_date:
        Calendar date of the order
    product_line:
        Optional product line, descriptive only
    country:
        Optional customer country, descriptive only
    city:
        Optional customer city, descriptive only
    deal_size:
        Optional deal size bucket (e.g. Small/Medium/Large), descriptive only
    """

    order_id: str
    customer_id: str
    amount: Decimal
    order_date: date
    product_line: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    deal_size: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise TypeError(
                f"Transaction amount must be a Decimal, got {type(self.amount).__name__} (order_id={self.order_id})"
            )
        if not self.customer_id or not self.customer_id.strip():
            raise ValueError(
                f"Customer identifier is required (order_id={self.order_id})"
            )
        if not self.order_id or not self.order_id.strip():
            raise ValueError(
                f"Order identifier is required (customer_id={self.customer_id})"
            )
        if self.amount < 0:
            raise ValueError(
                f"Transaction amount cannot be negative: {self.amount} (order_id={self.order_id})"
            )


def parse_order_date(
    value: object, date_formats: Sequence[str] = DEFAULT_DATE_FORMATS
) -> date:
    """Parse an order date using explicit formats only.

    ``date`` and ``datetime`` values are accepted as-is (datetimes are
    truncated to their date). Strings are tried against ``date_formats``
    in order; the first that matches wins.

    Raises
    ------
    ValueError
        If the value is missing or matches none of the formats.

    Examples
    --------
    >>> parse_order_date("24/02/2003")
    datetime.date(2003, 2, 24)
    >>> parse_order_date("24/02/03")
    datetime.date(2003, 2, 24)
    """
    # NaN and NaT compare unequal to themselves
    if value is None or value != value:
        raise ValueError(f"Order date is missing or not a string: {value!r}")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Order date is missing or not a string: {value!r}")

    text = value.strip()
    for fmt in date_formats:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(
        f"Unparseable order date {value!r}; expected one of {list(date_formats)}"
    )


def _is_missing(value: object) -> bool:
    if value is None or value != value:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def _parse_amount(value: object) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (numbers.Number, str)):
        raise TypeError(f"Expected numeric amount, got {type(value).__name__}")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise TypeError(f"Expected numeric amount, got {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")
    return amount


def _optional_text(value: object) -> Optional[str]:
    if _is_missing(value):
        return None
    return str(value).strip()


def build_transactions(
    records: Iterable[Mapping[str, object]],
    date_formats: Sequence[str] = DEFAULT_DATE_FORMATS,
) -> list[SalesTransaction]:
    """Validate raw mappings and build ``SalesTransaction`` objects.

    Each record must provide ``order_id``, ``customer_id``, ``amount`` and
    ``order_date``. ``product_line``, ``country``, ``city`` and ``deal_size``
    are optional.

    Parameters
    ----------
    records:
        Raw records, e.g. rows read from a CSV file
    date_formats:
        Explicit ``strptime`` formats tried in order for string dates

    Returns
    -------
    list[SalesTransaction]
        One transaction per input record, in input order

    Raises
    ------
    ValueError
        If a record lacks a customer/order identifier, has an unparseable
        date or a negative amount. The message names the record index.
    TypeError
        If a record's amount is not numeric.
    """
    transactions: list[SalesTransaction] = []
    for idx, record in enumerate(records):
        customer_id = record.get("customer_id")
        if _is_missing(customer_id):
            raise ValueError(
                f"Transaction at index {idx} is missing a customer identifier"
            )
        order_id = record.get("order_id")
        if _is_missing(order_id):
            raise ValueError(
                f"Transaction at index {idx} is missing an order identifier"
            )

        try:
            order_date = parse_order_date(record.get("order_date"), date_formats)
        except ValueError as exc:
            raise ValueError(f"Transaction at index {idx}: {exc}") from exc

        try:
            amount = _parse_amount(record.get("amount"))
        except (TypeError, ValueError) as exc:
            raise type(exc)(f"Transaction at index {idx}: {exc}") from exc

        try:
            transactions.append(
                SalesTransaction(
                    order_id=str(order_id).strip(),
                    customer_id=str(customer_id).strip(),
                    amount=amount,
                    order_date=order_date,
                    product_line=_optional_text(record.get("product_line")),
                    country=_optional_text(record.get("country")),
                    city=_optional_text(record.get("city")),
                    deal_size=_optional_text(record.get("deal_size")),
                )
            )
        except ValueError as exc:
            raise ValueError(f"Transaction at index {idx}: {exc}") from exc

    logger.debug(f"Validated {len(transactions)} transactions")
    return transactions
