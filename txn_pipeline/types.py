from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, TypedDict, Union


class TransactionRecord(TypedDict, total=False):
    """Transaction telle qu'extraite par le modèle (tous les champs sont optionnels)."""
    time: str
    date: str
    amount: Union[str, float, int]
    currency: str
    purpose: str
    name: str
    conversion_error: str


@dataclass
class PipelineConfig:
    """Configuration de haut niveau pour exécuter le pipeline."""
    ai_base_url: str = "https://ai-gateway.vercel.sh/v1"
    ai_api_key: Optional[str] = None
    ai_model: str = "openai/gpt-5-mini"
    currency_api_key: Optional[str] = None
    currency_base_url: str = "https://api.currencyapi.com/v3/latest"
    notion_token: Optional[str] = None
    notion_database_id: Optional[str] = None
    notion_base_url: str = "https://api.notion.com/v1"
    notion_version: str = "2022-06-28"
    target_currency: str = "EUR"
    api_timeout: float = 300.0
    out_root: Optional[Path] = None      # None = pas d'artefacts locaux


@dataclass
class StepResult:
    name: str
    ok: bool
    duration_sec: float
    output_paths: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass
class ConversionResult:
    """Résultat de conversion d'une transaction (un par transaction, dans l'ordre)."""
    record: Any
    converted: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class UploadOutcome:
    success: bool
    id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success}
        if self.id is not None:
            out["id"] = self.id
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass
class PipelineReport:
    transactions: List[Any]
    notion: Dict[str, Any]
    steps: List[StepResult] = field(default_factory=list)
    process_dir: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        return {"transactions": self.transactions, "notion": self.notion}
