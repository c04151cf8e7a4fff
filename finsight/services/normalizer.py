"""Normalization utilities shared by ingestion and reporting.

Covers:
  - Date parsing to ISO ``YYYY-MM-DD`` (day granularity)
  - Amount parsing and integer-cents conversion
  - Display casing for payees, frequencies and provider categories
"""

import decimal
import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

# ─────────────────────────────────────────────────────────────────────────────
# Date parsing
# ─────────────────────────────────────────────────────────────────────────────

_DATE_FORMATS = [
    "%Y-%m-%d",             # 2026-01-15
    "%Y-%m-%dT%H:%M:%S",    # 2026-01-15T12:00:00
    "%Y-%m-%dT%H:%M:%S.%f", # 2026-01-15T12:00:00.000000
    "%Y-%m-%d %H:%M:%S",    # 2026-01-15 12:00:00
    "%m/%d/%Y",             # 01/15/2026
]


_ZONE_RE = re.compile(r"(?<=\d{2}:\d{2})(?::\d{2}(?:\.\d+)?)?(Z|[+-]\d{2}:?\d{2})$")


def _split_zone(v: str) -> tuple[str, Optional[timezone]]:
    m = _ZONE_RE.search(v)
    if m is None:
        return v, None
    designator = m.group(1)
    naive = v[:m.start(1)]
    if designator == "Z":
        return naive, timezone.utc
    sign = -1 if designator[0] == "-" else 1
    digits = designator[1:].replace(":", "")
    offset = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
    return naive, timezone(sign * offset)


def parse_day(value: Union[str, date, datetime, None]) -> Optional[date]:
    """Return the UTC calendar day of ``value``.

    Datetimes carrying a zone (``Z`` or ``±HH:MM``) are converted to UTC first;
    naive values are taken as already UTC. Returns None for empty input or an
    unrecognised format.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    v = value.strip()
    if not v:
        return None
    v, tz = _split_zone(v)
    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(v, fmt)
        except ValueError:
            continue
        if tz is not None:
            parsed = parsed.replace(tzinfo=tz).astimezone(timezone.utc)
        return parsed.date()
    return None


# ─────────────────────────────────────────────────────────────────────────────
# Amounts
# ─────────────────────────────────────────────────────────────────────────────


def parse_amount(value: Union[str, int, float, decimal.Decimal, None]) -> decimal.Decimal:
    """Parse a provider amount into a Decimal.

    Handles numbers as well as strings like ``42.99``, ``-42.99``, ``(42.99)``
    and ``$1,234.56``. ``None`` is read as zero.
    """
    if value is None:
        return decimal.Decimal(0)
    if isinstance(value, decimal.Decimal):
        return value
    if isinstance(value, (int, float)):
        return decimal.Decimal(str(value))

    v = value.strip()
    if not v:
        raise ValueError("empty amount string")

    negative = v.startswith("(") and v.endswith(")")
    if negative:
        v = v[1:-1]
    v = v.lstrip("$€£").replace(",", "").replace(" ", "")

    try:
        amount = decimal.Decimal(v)
    except decimal.InvalidOperation as exc:
        raise ValueError(f"not an amount: {value!r}") from exc
    return -amount if negative else amount


def to_cents(amount: Union[float, decimal.Decimal]) -> int:
    """Convert dollars to integer cents (ROUND_HALF_UP)."""
    return int(
        (decimal.Decimal(str(amount)) * 100).quantize(
            decimal.Decimal("1"), rounding=decimal.ROUND_HALF_UP
        )
    )


def cents_to_dollars(cents: int) -> float:
    return round(cents / 100, 2)


# ─────────────────────────────────────────────────────────────────────────────
# Display casing
# ─────────────────────────────────────────────────────────────────────────────


def title_words(value: str, sep: str = " ") -> str:
    """``"NETFLIX inc"`` → ``"Netflix Inc"``; splits on ``sep``, joins on a space."""
    words = [w for w in value.split(sep) if w]
    return " ".join(w[:1].upper() + w[1:].lower() for w in words)


def format_payee(merchant_name: Optional[str]) -> str:
    return title_words(merchant_name or "") or "Unknown"


def format_frequency(frequency: Optional[str]) -> str:
    """``"SEMI_MONTHLY"`` → ``"Semi Monthly"``."""
    return title_words(frequency or "", sep="_") or "Unknown"


def format_provider_category(category: Optional[str]) -> str:
    """``"FOOD_AND_DRINK"`` → ``"Food/Drink"``; ``"GENERAL_SERVICES"`` → ``"General Services"``."""
    if not category:
        return ""
    words = []
    for word in category.split("_"):
        if not word:
            continue
        words.append("/" if word.upper() == "AND" else word[:1].upper() + word[1:].lower())
    return re.sub(r"\s+/\s+", "/", " ".join(words))
