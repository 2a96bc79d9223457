from pathlib import Path
from typing import Any, Dict, List

from .storage import write_json


def write_input_text(out_dir: Path, text: str) -> Path:
    """Conserve le texte OCR reçu, tel quel."""
    path = out_dir / "input.txt"
    path.write_text(text, encoding="utf-8")
    return path


def write_transactions(out_dir: Path, transactions: List[Any]) -> Path:
    """
    Écrit les transactions après conversion de devise dans `transactions.json`.
    Les transactions en échec de conversion gardent leur champ `conversion_error`.
    """
    path = out_dir / "transactions.json"
    return write_json(path, transactions)


def write_notion_report(out_dir: Path, report: Dict[str, Any]) -> Path:
    return write_json(out_dir / "notion.json", report)
