"""Fonctions pures partagées par la conversion de devises et l'upload Notion."""

import logging
import math
import numbers
import re
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional, Union

from dateutil import parser as date_parser

from .errors import InvalidAmountError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

_AMOUNT_NOISE = re.compile(r"[^0-9+\-.,]")
_ISO_DATE = re.compile(r"(\d{4}-\d{2}-\d{2})")
_AT_SEPARATOR = re.compile(r" at ", flags=re.IGNORECASE)

_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def to_number(value: Any) -> float:
    """
    Convertit un montant en nombre.

    - nombre : renvoyé tel quel
    - texte : on ne garde que chiffres, `+`, `-`, `.` et `,`, puis on supprime les `,`
      ("1,234.50 SEK" → 1234.5)

    Lève `InvalidAmountError` si le résultat n'est pas un nombre fini.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    if isinstance(value, numbers.Integral):
        return value  # type: ignore[return-value]
    if isinstance(value, (numbers.Real, Decimal)):
        if not math.isfinite(value):
            raise InvalidAmountError(f"Invalid amount: {value!r}")
        return value  # type: ignore[return-value]
    if not isinstance(value, str):
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    try:
        # littéral numérique complet ("1e400", "NaN") avant le nettoyage qui supprime les lettres
        number = float(Decimal(value.strip()))
    except (InvalidOperation, ValueError):
        cleaned = _AMOUNT_NOISE.sub("", value).replace(",", "")
        try:
            number = float(Decimal(cleaned))
        except (InvalidOperation, ValueError):
            raise InvalidAmountError(f"Invalid amount: {value}") from None
    if not math.isfinite(number):
        raise InvalidAmountError(f"Invalid amount: {value}")
    return number


def convert_amount(amount: Union[str, float, int], rate: float) -> float:
    """Multiplie par le taux et arrondit au centime (demi-centime arrondi loin de zéro)."""
    numeric = Decimal(str(to_number(amount)))
    try:
        converted = (numeric * Decimal(str(rate))).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # plus de 28 chiffres significatifs au centime
        raise InvalidAmountError(f"Amount out of range: {amount}") from None
    return float(converted)


def today_iso() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def extract_iso_date(value: Any, today: Optional[str] = None) -> str:
    """
    Extrait une date calendaire `YYYY-MM-DD`.

    Une date absente ou illisible retombe toujours sur la date du jour : une
    transaction n'est jamais rejetée à cause de sa date.
    """
    fallback = today or today_iso()
    if not value:
        return fallback
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        iso = _ISO_DATE.search(value)
        if iso:
            return iso.group(1)
        # "22 August 2025 at 13:11" → "22 August 2025 13:11"
        normalized = _AT_SEPARATOR.sub(" ", value)
        try:
            return date_parser.parse(normalized).date().isoformat()
        except (ValueError, OverflowError) as exc:
            logger.debug("Date illisible %r (%s)", value, exc)
    logger.debug("Échec du parsing de date, utilisation du jour: %s", fallback)
    return fallback


def format_date_with_ordinal(d: date) -> str:
    """`date(2025, 8, 22)` → `"22nd Aug 2025"`."""
    day = d.day
    if day in (1, 21, 31):
        suffix = "st"
    elif day in (2, 22):
        suffix = "nd"
    elif day in (3, 23):
        suffix = "rd"
    else:
        suffix = "th"
    return f"{day}{suffix} {_MONTHS[d.month - 1]} {d.year}"
