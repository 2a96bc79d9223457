import logging
import numbers
import re
from typing import Any, List, Optional

import requests

from .errors import ConfigurationError, MissingParameterError, PipelineError, RateLookupError
from .parsing import convert_amount
from .types import ConversionResult, PipelineConfig

logger = logging.getLogger(__name__)

_CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")


class CurrencyRateService:
    """
    Client du service de taux (currencyapi.com).

    Aucun cache : chaque appel à `get_rate` déclenche une requête.
    """

    def __init__(self, cfg: PipelineConfig, session: Optional[requests.Session] = None) -> None:
        self.cfg = cfg
        self.session = session or requests.Session()

    def get_rate(self, from_currency: str, to_currency: str) -> float:
        base = (from_currency or "").strip().upper()
        target = (to_currency or "").strip().upper()
        if not base or not target:
            raise MissingParameterError("Both from and to currencies are required")
        if base == target:
            return 1
        if not self.cfg.currency_api_key:
            raise ConfigurationError("Variable manquante: CURRENCY_API_KEY (clé du service de taux)")
        for code in (base, target):
            if not _CURRENCY_CODE.match(code):
                raise RateLookupError(f"Code devise invalide: {code!r}")

        try:
            resp = self.session.get(
                self.cfg.currency_base_url,
                params={
                    "apikey": self.cfg.currency_api_key,
                    "currencies": target,
                    "base_currency": base,
                },
                timeout=self.cfg.api_timeout,
            )
        except requests.RequestException as exc:
            raise RateLookupError(f"Currency API injoignable: {exc}") from exc

        if not resp.ok:
            raise RateLookupError(f"Currency API error {resp.status_code}: {resp.text}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise RateLookupError("Unexpected currency API response structure") from exc

        entry = data.get("data", {}).get(target) if isinstance(data, dict) and isinstance(data.get("data"), dict) else None
        value = entry.get("value") if isinstance(entry, dict) else None
        if not isinstance(value, numbers.Real) or isinstance(value, bool):
            raise RateLookupError("Unexpected currency API response structure")
        logger.debug("Taux %s→%s = %s", base, target, value)
        return value


def _convert_one(record: Any, target: str, rates: CurrencyRateService) -> ConversionResult:
    if not isinstance(record, dict) or not (record.get("currency") and record.get("amount")):
        return ConversionResult(record=record)

    current = str(record["currency"]).upper()
    if current == target:
        return ConversionResult(record=record)

    try:
        rate = rates.get_rate(current, target)
        amount = convert_amount(record["amount"], rate)
    except PipelineError as exc:
        logger.warning("Conversion %s→%s impossible pour %r: %s", current, target, record.get("purpose"), exc)
        record["conversion_error"] = str(exc)
        return ConversionResult(record=record, error=str(exc))

    record["amount"] = amount
    record["currency"] = target
    return ConversionResult(record=record, converted=True)


def convert_records(records: List[Any], target_currency: str, rates: CurrencyRateService) -> List[ConversionResult]:
    """
    Convertit chaque transaction vers `target_currency`, une par une et dans l'ordre.

    Retourne un `ConversionResult` par transaction : un échec (taux introuvable,
    montant illisible...) n'affecte que la transaction concernée, annotée avec
    `conversion_error`, et n'interrompt jamais le lot.
    """
    target = target_currency.upper()
    return [_convert_one(record, target, rates) for record in records]


def normalize_currencies(
    records: List[Any],
    target_currency: str = "EUR",
    rates: Optional[CurrencyRateService] = None,
    cfg: Optional[PipelineConfig] = None,
) -> List[Any]:
    """Convertit la liste en place et la retourne (même ordre, même longueur)."""
    rates = rates or CurrencyRateService(cfg or PipelineConfig())
    results = convert_records(records, target_currency, rates)
    failed = sum(1 for r in results if not r.ok)
    converted = sum(1 for r in results if r.converted)
    logger.info("Conversion vers %s: %d convertie(s), %d échec(s) sur %d", target_currency, converted, failed, len(results))
    return records
