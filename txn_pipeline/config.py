import logging
import os
from pathlib import Path
from typing import Optional

from .types import PipelineConfig

logger = logging.getLogger(__name__)


def _env(*names: str) -> Optional[str]:
    """Première variable d'environnement non vide parmi `names` (alias historiques inclus)."""
    for name in names:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    return None


def load_config(
    out_root: Optional[str] = None,
    target_currency: Optional[str] = None,
    model: Optional[str] = None,
) -> PipelineConfig:
    root_value = out_root or os.getenv("PIPELINE_OUT_ROOT")
    root: Optional[Path] = None
    if root_value:
        root = Path(root_value).expanduser().resolve()
        root.mkdir(parents=True, exist_ok=True)

    cfg = PipelineConfig(
        ai_base_url=(_env("AI_GATEWAY_BASE_URL") or PipelineConfig.ai_base_url).rstrip("/"),
        ai_api_key=_env("AI_GATEWAY_API_KEY"),
        ai_model=model or _env("AI_MODEL") or PipelineConfig.ai_model,
        currency_api_key=_env("CURRENCY_API_KEY", "currency_API_KEY"),
        currency_base_url=_env("CURRENCY_API_BASE_URL") or PipelineConfig.currency_base_url,
        notion_token=_env("NOTION_API_KEY", "notion_API_KEY"),
        notion_database_id=_env("DATABASE_ID", "Database_ID"),
        notion_base_url=(_env("NOTION_BASE_URL") or PipelineConfig.notion_base_url).rstrip("/"),
        notion_version=_env("NOTION_VERSION") or PipelineConfig.notion_version,
        target_currency=(target_currency or _env("TARGET_CURRENCY") or "EUR").upper(),
        api_timeout=float(os.getenv("API_TIMEOUT", "300")),
        out_root=root,
    )
    if not cfg.ai_api_key:
        logger.warning("Clé API de la passerelle IA manquante (AI_GATEWAY_API_KEY)")
    return cfg
