import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


def _safe_dir_name(name: str) -> str:
    return "".join(c if c.isalnum() or c in ("_", "-", ".") else "_" for c in name)


def ensure_process_dir(out_root: Path, run_name: Optional[str] = None) -> Path:
    """
    Crée le dossier d'un run sous `out_root`.

    Sans nom explicite, le run est horodaté (`run_20250822T131100`). Si le dossier
    existe déjà, un suffixe aléatoire évite d'écraser un run précédent.
    """
    base = _safe_dir_name(run_name or "run_" + datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S"))
    candidate = out_root / base
    if not candidate.exists():
        candidate.mkdir(parents=True, exist_ok=True)
        return candidate
    unique = out_root / f"{base}_{uuid.uuid4().hex[:8]}"
    unique.mkdir(parents=True, exist_ok=True)
    return unique


def write_json(path: Path, data: Any) -> Path:
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    return path


def write_status(process_dir: Path, steps: list) -> Path:
    """`status.json` : une entrée par étape (nom, succès, durée, erreur)."""
    return write_json(process_dir / "status.json", {"steps": [s.__dict__ for s in steps]})


def write_errors(process_dir: Path, errors: Dict[str, str]) -> Path:
    return write_json(process_dir / "errors.json", errors)
