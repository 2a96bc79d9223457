import logging
from typing import Any, Dict, List, Optional, Union

import requests

from .errors import ConfigurationError, InvalidAmountError, StoreWriteError
from .parsing import extract_iso_date, to_number
from .types import PipelineConfig, UploadOutcome

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 2000


def build_page_payload(database_id: str, raw: Any, today: Optional[str] = None) -> Dict[str, Any]:
    """
    Construit le corps `POST /pages` d'une transaction (colonnes Notion : Name, Price, Date).

    Le montant illisible est simplement omis ; la date retombe sur le jour courant.
    """
    tx: Dict[str, Any] = raw if isinstance(raw, dict) else {}
    name = str(tx.get("purpose") or tx.get("name") or "Unknown")

    properties: Dict[str, Any] = {
        "Name": {"title": [{"text": {"content": name[:NAME_MAX_LENGTH]}}]},
    }
    if tx.get("amount") is not None:
        try:
            properties["Price"] = {"number": to_number(tx["amount"])}
        except InvalidAmountError as exc:
            logger.debug("Montant omis pour %r: %s", name, exc)

    date_str = extract_iso_date(tx.get("time") or tx.get("date"), today=today)
    properties["Date"] = {"date": {"start": date_str}}

    return {"parent": {"database_id": database_id}, "properties": properties}


class NotionStore:
    """Écrit chaque transaction comme une page de la base Notion configurée."""

    def __init__(self, cfg: PipelineConfig, session: Optional[requests.Session] = None) -> None:
        self.cfg = cfg
        self.session = session or requests.Session()

    def _check_config(self) -> None:
        if not self.cfg.notion_token:
            raise ConfigurationError("Missing env notion_API_KEY / NOTION_API_KEY")
        if not self.cfg.notion_database_id:
            raise ConfigurationError("Missing env Database_ID / DATABASE_ID")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.cfg.notion_token}",
            "Content-Type": "application/json",
            "Notion-Version": self.cfg.notion_version,
        }

    def create_page(self, payload: Dict[str, Any]) -> str:
        """Crée une page et retourne son identifiant ; lève `StoreWriteError` sinon."""
        try:
            resp = self.session.post(
                f"{self.cfg.notion_base_url}/pages",
                headers=self._headers(),
                json=payload,
                timeout=self.cfg.api_timeout,
            )
        except requests.RequestException as exc:
            raise StoreWriteError(str(exc)) from exc

        if not resp.ok:
            try:
                err = resp.json()
            except ValueError:
                err = {}
            message = err.get("message") if isinstance(err, dict) else None
            raise StoreWriteError(message or f"HTTP {resp.status_code}")

        try:
            page = resp.json()
        except ValueError as exc:
            raise StoreWriteError("Réponse Notion illisible") from exc
        if not isinstance(page, dict) or not page.get("id"):
            raise StoreWriteError("Réponse Notion sans identifiant de page")
        return str(page["id"])

    def upload_transactions(self, transactions: Union[Dict[str, Any], List[Any]]) -> Dict[str, Any]:
        """
        Upload une à une les transactions, dans l'ordre.

        Un échec d'écriture n'impacte que sa propre transaction : le résultat
        contient exactement un `UploadOutcome` par transaction reçue.
        Seule une configuration manquante fait échouer l'appel entier.
        """
        self._check_config()
        items = transactions if isinstance(transactions, list) else [transactions]
        if not items:
            return {"message": "No transactions"}

        results: List[UploadOutcome] = []
        for idx, raw in enumerate(items, start=1):
            try:
                payload = build_page_payload(self.cfg.notion_database_id, raw)
                page_id = self.create_page(payload)
                results.append(UploadOutcome(success=True, id=page_id))
            except StoreWriteError as exc:
                logger.warning("Échec upload Notion de la transaction %d/%d: %s", idx, len(items), exc)
                results.append(UploadOutcome(success=False, error=str(exc)))

        ok = sum(1 for r in results if r.success)
        logger.info("Upload Notion: %d/%d transaction(s) créée(s)", ok, len(results))
        return {"uploaded": [r.to_dict() for r in results]}
