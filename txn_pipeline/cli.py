import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from .config import load_config
from .errors import PipelineError
from .orchestrator import run_demo_extraction, run_text_pipeline


def find_text_files(input_dir: str):
    """Retourne tous les fichiers texte OCR (.txt) du dossier d'entrée, récursivement."""
    root = Path(input_dir).expanduser().resolve()
    return sorted(p for p in root.rglob("*.txt") if p.is_file())


def _print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def main() -> None:
    # Charger .env avant toute lecture d'os.getenv (config/services)
    load_dotenv(find_dotenv(usecwd=True), override=False)

    parser = argparse.ArgumentParser(
        description="Pipeline: texte OCR de capture bancaire → transactions (devise cible) → Notion."
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--text", required=False, help="Texte OCR à traiter directement.")
    source.add_argument("--text-file", required=False, help="Fichier texte OCR à traiter ('-' pour stdin).")
    source.add_argument("--input", required=False, help="Dossier contenant des fichiers .txt (mode batch).")
    source.add_argument("--demo", action="store_true", help="Extraction de démonstration (Uber Eats), sans upload.")
    parser.add_argument("--target-currency", required=False, help="Devise de reporting (défaut via env TARGET_CURRENCY=EUR)")
    parser.add_argument("--model", required=False, help="Modèle de génération (défaut via env AI_MODEL)")
    parser.add_argument("--out-root", required=False, help="Dossier racine des artefacts de run (désactivé par défaut)")
    parser.add_argument("--verbose", action="store_true", help="Logs DEBUG")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    cfg = load_config(out_root=args.out_root, target_currency=args.target_currency, model=args.model)

    try:
        if args.demo:
            _print_json(asyncio.run(run_demo_extraction(cfg)))
            return

        if args.input:
            files = find_text_files(args.input)
            if not files:
                print("Aucun fichier .txt trouvé.")
                sys.exit(0)
            print(f"{len(files)} fichier(s) texte détecté(s)", file=sys.stderr)
            for i, path in enumerate(files, start=1):
                print(f"\n[{i}/{len(files)}] {path}", file=sys.stderr)
                try:
                    text = path.read_text(encoding="utf-8")
                    report = asyncio.run(run_text_pipeline(text, cfg, run_name=path.stem))
                    _print_json({"file": str(path), **report.to_response()})
                except PipelineError as e:
                    print(f"❌ Échec: {path} → {e}", file=sys.stderr)
            return

        if args.text is not None:
            text = args.text
        elif args.text_file:
            text = sys.stdin.read() if args.text_file == "-" else Path(args.text_file).read_text(encoding="utf-8")
        else:
            print("Erreur: --text, --text-file, --input ou --demo est obligatoire.", file=sys.stderr)
            sys.exit(1)

        report = asyncio.run(run_text_pipeline(text, cfg))
        _print_json(report.to_response())
    except KeyboardInterrupt:
        print("Interrompu par l'utilisateur.", file=sys.stderr)
        sys.exit(130)
    except PipelineError as e:
        print(f"❌ Échec pipeline → {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
