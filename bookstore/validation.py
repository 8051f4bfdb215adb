"""Field validation for book writes.

Every validator returns a ValidationResult; malformed input is a rejection,
never an exception.
"""
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, NamedTuple, Optional, Tuple

from bookstore.models import BookInput

MAX_PRICE = Decimal("10000")
MAX_STOCK = 100000
CENT = Decimal("0.01")

ISBN10_RE = re.compile(r"^(?:\d{9}X|\d{10})$")
ISBN13_RE = re.compile(r"^97[89]\d{10}$")

REQUIRED_FIELDS = ("title", "author", "isbn")


class ValidationResult(NamedTuple):
    ok: bool
    reason: Optional[str] = None


VALID = ValidationResult(True)


def _reject(reason: str) -> ValidationResult:
    return ValidationResult(False, reason)


def normalize_isbn(isbn: str) -> str:
    """Strip hyphens and whitespace."""
    return re.sub(r"[-\s]", "", isbn)


def validate_isbn(isbn: Any) -> ValidationResult:
    """Accept ISBN-10 (last character may be X) or ISBN-13 (978/979 prefix)."""
    if not isinstance(isbn, str):
        return _reject("Invalid ISBN format. Must be ISBN-10 or ISBN-13")
    clean = normalize_isbn(isbn)
    if ISBN10_RE.match(clean) or ISBN13_RE.match(clean):
        return VALID
    return _reject("Invalid ISBN format. Must be ISBN-10 or ISBN-13")


def parse_price(price: Any) -> Optional[Decimal]:
    """
    Parse a price, returning None if it is not a finite number.

    The value is rounded to cents the way the NUMERIC(10, 2) column stores it.
    """
    if isinstance(price, bool) or price is None:
        return None
    try:
        value = Decimal(str(price).strip())
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    try:
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # too many digits to quantize; far out of range anyway
        return None


def validate_price(price: Any) -> ValidationResult:
    """Price must be a number between 0 and 10000."""
    value = parse_price(price)
    if value is None or value < 0 or value > MAX_PRICE:
        return _reject("Invalid price. Must be between 0 and 10000")
    return VALID


def parse_stock(stock: Any) -> Optional[int]:
    """Parse a stock count, returning None if it is not an integer."""
    if isinstance(stock, bool) or stock is None:
        return None
    if isinstance(stock, int):
        return stock
    if isinstance(stock, (float, Decimal)):
        try:
            if stock != int(stock):
                return None
        except (ValueError, OverflowError, InvalidOperation):
            # NaN and infinities
            return None
        return int(stock)
    if isinstance(stock, str):
        try:
            return int(stock.strip())
        except ValueError:
            return None
    return None


def validate_stock(stock: Any) -> ValidationResult:
    """Stock must be an integer between 0 and 100000."""
    value = parse_stock(stock)
    if value is None or value < 0 or value > MAX_STOCK:
        return _reject("Invalid stock. Must be between 0 and 100000")
    return VALID


def validate_required(payload: Dict[str, Any]) -> ValidationResult:
    """Title, author and ISBN must be present and non-blank."""
    for field in REQUIRED_FIELDS:
        value = payload.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            return _reject("Title, author, and ISBN are required")
    return VALID


def validate_book(
    payload: Any,
    require_all: bool = True
) -> Tuple[ValidationResult, Optional[BookInput]]:
    """
    Validate a create or update payload.

    Args:
        payload: Decoded request body
        require_all: Enforce the required-field check (creates)

    Returns:
        (result, book) where book is None unless result.ok
    """
    if not isinstance(payload, dict):
        return _reject("Request body must be a JSON object"), None

    if require_all:
        result = validate_required(payload)
        if not result.ok:
            return result, None

    for field in ("title", "author"):
        value = payload.get(field)
        if value is not None and not isinstance(value, str):
            return _reject(f"Invalid {field}. Must be a string"), None
        if value is not None and not value.strip():
            return _reject(f"Invalid {field}. Must not be blank"), None

    isbn = payload.get("isbn")
    if isbn is not None:
        result = validate_isbn(isbn)
        if not result.ok:
            return result, None

    price = payload.get("price")
    if price is not None:
        result = validate_price(price)
        if not result.ok:
            return result, None

    stock = payload.get("stock")
    if stock is not None:
        result = validate_stock(stock)
        if not result.ok:
            return result, None

    book = BookInput(
        title=payload.get("title"),
        author=payload.get("author"),
        isbn=isbn,
        price=parse_price(price) if price is not None else Decimal("0"),
        stock=parse_stock(stock) if stock is not None else 0
    )
    return VALID, book
