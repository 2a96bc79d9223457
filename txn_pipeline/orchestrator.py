import asyncio
import logging
import time
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import load_config
from .currency_service import CurrencyRateService, normalize_currencies
from .extraction_service import DEMO_PROMPT, DEMO_TEXT, ChatExtractionService
from .json_service import normalize_transactions
from .notion_service import NotionStore
from .storage import ensure_process_dir, write_errors, write_status
from .types import PipelineConfig, PipelineReport, StepResult
from .writer import write_input_text, write_notion_report, write_transactions

logger = logging.getLogger(__name__)


def _write_run_artifacts(
    process_dir: Optional[Path],
    steps: List[StepResult],
    errors: Dict[str, str],
    transactions: Optional[List[Any]] = None,
    notion: Optional[Dict[str, Any]] = None,
) -> None:
    if process_dir is None:
        return
    if transactions is not None:
        write_transactions(process_dir, transactions)
    if notion is not None:
        write_notion_report(process_dir, notion)
    write_status(process_dir, steps)
    if errors:
        write_errors(process_dir, errors)


async def run_text_pipeline(
    text: str,
    cfg: Optional[PipelineConfig] = None,
    *,
    run_name: Optional[str] = None,
    extractor: Optional[ChatExtractionService] = None,
    rates: Optional[CurrencyRateService] = None,
    store: Optional[NotionStore] = None,
    today: Optional[date] = None,
) -> PipelineReport:
    """
    Orchestrateur principal: texte OCR → JSON → conversion de devise → Notion.

    Étapes:
    1. Extraction des transactions par le modèle (échec = fatal, l'exception remonte).
    2. Normalisation de la sortie en liste de transactions.
    3. Conversion de chaque transaction vers la devise cible (échecs isolés par transaction).
    4. Upload Notion, une page par transaction. Une configuration Notion manquante
       est rapportée dans `notion["error"]` sans perdre les transactions extraites.
    """
    cfg = cfg or load_config()
    extractor = extractor or ChatExtractionService(cfg)
    rates = rates or CurrencyRateService(cfg)
    store = store or NotionStore(cfg)

    steps: List[StepResult] = []
    errors: Dict[str, str] = {}

    process_dir: Optional[Path] = None
    if cfg.out_root is not None:
        process_dir = ensure_process_dir(cfg.out_root, run_name)
        write_input_text(process_dir, text)

    # 1) + 2) Texte OCR → transactions
    t0 = time.time()
    try:
        candidate = await asyncio.to_thread(extractor.extract, text, today)
    except Exception as e:
        steps.append(StepResult(name="extract_transactions", ok=False, duration_sec=time.time() - t0, error=str(e)))
        errors["extract_transactions"] = str(e)
        _write_run_artifacts(process_dir, steps, errors)
        raise
    transactions = normalize_transactions(candidate)
    steps.append(StepResult(name="extract_transactions", ok=True, duration_sec=time.time() - t0))
    logger.info("%d transaction(s) extraite(s)", len(transactions))

    # 3) Conversion vers la devise cible
    t0 = time.time()
    await asyncio.to_thread(normalize_currencies, transactions, cfg.target_currency, rates)
    conversion_errors = [tx.get("conversion_error") for tx in transactions if isinstance(tx, dict) and tx.get("conversion_error")]
    steps.append(
        StepResult(
            name="currency_conversion",
            ok=not conversion_errors,
            duration_sec=time.time() - t0,
            error="; ".join(conversion_errors) or None,
        )
    )

    # 4) Upload Notion
    t0 = time.time()
    try:
        notion = await asyncio.to_thread(store.upload_transactions, transactions)
        failed = [r["error"] for r in notion.get("uploaded", []) if not r["success"]]
        steps.append(
            StepResult(
                name="notion_upload",
                ok=not failed,
                duration_sec=time.time() - t0,
                error="; ".join(failed) or None,
            )
        )
    except Exception as e:
        logger.error("Upload Notion impossible: %s", e)
        notion = {"error": str(e)}
        steps.append(StepResult(name="notion_upload", ok=False, duration_sec=time.time() - t0, error=str(e)))
        errors["notion_upload"] = str(e)

    _write_run_artifacts(process_dir, steps, errors, transactions=transactions, notion=notion)

    return PipelineReport(
        transactions=transactions,
        notion=notion,
        steps=steps,
        process_dir=str(process_dir) if process_dir else None,
    )


async def run_demo_extraction(cfg: Optional[PipelineConfig] = None, extractor: Optional[ChatExtractionService] = None) -> Any:
    """Extraction de démonstration sur une capture Uber Eats, sans conversion ni upload."""
    cfg = cfg or load_config()
    extractor = extractor or ChatExtractionService(cfg)
    return await asyncio.to_thread(extractor.extract, DEMO_TEXT, None, DEMO_PROMPT)
