import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Du premier `[`/`{` au dernier `]`/`}` (glouton, multi-lignes)
_JSON_SPAN = re.compile(r"([\[{].*[\]}])", flags=re.DOTALL)


def _strip_fences_and_think(raw: str) -> str:
    s = re.sub(r"<think>[\s\S]*?</think>", "", raw)
    s = s.strip()
    if s.startswith("```json"):
        s = s[7:]
    if s.startswith("```"):
        s = s[3:]
    if s.endswith("```"):
        s = s[:-3]
    return s.strip()


def _extract_json_span(s: str) -> Optional[str]:
    match = _JSON_SPAN.search(s)
    if not match:
        return None
    return match.group(1)


_FAILED = object()


def _finite_float(literal: str) -> Any:
    # `1e400` ou `NaN` restent du texte : un float infini ne se resérialise pas en JSON
    value = float(literal)
    return value if math.isfinite(value) else literal


def _try_loads(s: str) -> Any:
    try:
        return json.loads(s, parse_float=_finite_float, parse_constant=str)
    except ValueError:
        return _FAILED


def safe_parse_json(value: Any) -> Any:
    """
    Transforme une sortie de modèle en valeur JSON, sans jamais lever d'exception.

    Les modèles entourent souvent le JSON de prose, de balises ```json``` ou de
    blocs <think>. Ordre des tentatives :
    1. parsing direct du texte ;
    2. parsing de la plage allant du premier `[`/`{` au dernier `]`/`}`.
    En cas d'échec, renvoie `{}` (= aucune transaction extraite).
    """
    if value is None:
        return {}
    if not isinstance(value, str):
        return value
    trimmed = value.strip()
    if not trimmed:
        return {}

    parsed = _try_loads(trimmed)
    if parsed is not _FAILED:
        return parsed

    span = _extract_json_span(_strip_fences_and_think(trimmed))
    if span is not None:
        parsed = _try_loads(span)
        if parsed is not _FAILED:
            return parsed

    logger.warning("Sortie du modèle non décodable en JSON (%d caractères)", len(trimmed))
    return {}


def normalize_transactions(candidate: Any) -> List[Dict[str, Any]]:
    """
    Ramène la sortie du modèle à une liste de transactions.

    Priorité (la première règle qui s'applique gagne) :
    1. objet avec une clé `transactions` de type liste → cette liste ;
    2. liste → telle quelle ;
    3. objet non vide → liste à un élément ;
    4. sinon → liste vide.
    """
    if isinstance(candidate, dict) and isinstance(candidate.get("transactions"), list):
        return list(candidate["transactions"])
    if isinstance(candidate, list):
        return list(candidate)
    # `{}` est la valeur d'échec du décodeur : aucune transaction extraite
    if isinstance(candidate, dict) and candidate:
        return [candidate]
    return []
