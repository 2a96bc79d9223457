import logging
from datetime import date
from typing import Any, Dict, List, Optional

import openai
from openai import OpenAI

from .errors import ConfigurationError, GatewayError
from .json_service import safe_parse_json
from .parsing import format_date_with_ordinal
from .types import PipelineConfig

logger = logging.getLogger(__name__)


DEMO_PROMPT = (
    "Extract structured financial transaction data from text. "
    "Return JSON array of objects: time, amount, currency, purpose."
)

DEMO_TEXT = "\n".join(
    [
        "Uber Eats",
        "Pending",
        "742.52 SEK",
        "Uber Eats",
        "Eating out",
        "22 August 2025 at 13:11",
    ]
)

TARGET_FIELDS: List[str] = ["time", "amount", "currency", "purpose"]


def _get_chat_client(cfg: PipelineConfig) -> OpenAI:
    if not cfg.ai_api_key:
        raise ConfigurationError("Variable manquante: AI_GATEWAY_API_KEY (clé de la passerelle IA)")
    # Pas de retry : un échec de la passerelle est fatal pour la requête.
    return OpenAI(
        api_key=cfg.ai_api_key,
        base_url=cfg.ai_base_url,
        timeout=cfg.api_timeout,
        max_retries=0,
    )


def build_system_prompt(today: str) -> str:
    cols = ", ".join(TARGET_FIELDS)
    parts: List[str] = []
    parts.append(
        "Extract all available structured financial transaction data from an OCR result of a bank app "
        "transaction record screenshot, presenting the information clearly in a concise and structured "
        f"JSON format. Today is {today} "
    )
    parts.append(
        "\nFirst, carefully analyze the screenshot OCR result to understand the overall layout and accurately "
        "identify the boundaries of each individual transaction. Think step-by-step, ensuring each transaction "
        "and its components are located before starting extraction.\n"
    )
    parts.append(
        "For each transaction you identify, systematically extract and record the following fields:\n"
        "- Time \n"
        "- Amount \n"
        "- Currency \n"
        "- Purpose or transaction description \n"
        "\n"
        "Make sure that each field you extract is as complete and accurate as possible, directly based on "
        "the content in the OCR result. \n"
        "\n"
        "If a particular field for any transaction is missing or cannot be confidently identified, use the "
        "placeholder value [unclear] for that field.\n"
    )
    parts.append(
        "# Steps\n"
        "\n"
        "1. Review the OCR output to determine the layout and structure of the transaction data.\n"
        "2. Identify where each transaction starts and ends.\n"
        f"3. For each transaction, extract the requested fields ({cols}), using [unclear] for any missing "
        "information.\n"
        "4. Ensure your extracted data covers all transaction records present in the OCR result and reflects "
        "the data faithfully.\n"
        "5. If the OCR is too blurry, corrupted, or unreadable, return an empty array as your output.\n"
    )
    parts.append(
        "# Output Format\n"
        "\n"
        "Return your answer as a JSON array. Each transaction is a JSON object containing these fields:\n"
        '- "time": [date]\n'
        '- "amount": [number or string, as given]\n'
        '- "currency": [string]\n'
        '- "purpose": [string]\n'
        "\n"
        "Do not include any explanation, commentary, or extra information; output the JSON array only.\n"
    )
    parts.append(
        "# Examples\n"
        "\n"
        "Input:\n"
        "OCR result content (as extracted text from an image of a bank statement).\n"
        "\n"
        "Example Output:\n"
        "[\n"
        "  {\n"
        '    "time": "2023-06-01",\n'
        '    "amount": "1000.00",\n'
        '    "currency": "CNY",\n'
        '    "purpose": "ATM Withdrawal"\n'
        "  },\n"
        "  {\n"
        '    "time": "2023-06-01",\n'
        '    "amount": "-25.00",\n'
        '    "currency": "CNY",\n'
        '    "purpose": "Coffee Shop"\n'
        "  }\n"
        "]\n"
        "(For real tasks, populate fields with actual data extracted from the OCR result. "
        "Use [unclear] where fields cannot be determined.)\n"
    )
    parts.append(
        "# Notes\n"
        "\n"
        "- If you cannot reliably extract any transactions or the text is unreadable, output only: []\n"
        "- Apply a step-by-step approach: analyze and identify before extracting.\n"
        "- All required fields should be present in each transaction; use [unclear] if any are missing.\n"
        "- Format strictly as a JSON array, with no extra commentary.\n"
    )
    parts.append(
        "[Reminder: Your objective is to analyze the OCR result for all available transaction records, reason "
        "through the structure, and output them as clearly and completely as possible in the specified JSON "
        "format. If the task involves multiple reasoning steps (e.g., identifying then extracting), ensure you "
        "approach each step methodically before producing the final answer.]"
    )
    return "\n".join(parts)


class ChatExtractionService:
    """
    Transforme le texte OCR d'une capture d'écran bancaire en valeur JSON candidate
    via l'API chat completions (`POST {base}/chat/completions`).

    La sortie peut être une liste, un objet `{"transactions": [...]}`, un objet
    unique ou `{}` : c'est `normalize_transactions` qui tranche.
    """

    def __init__(self, cfg: PipelineConfig, client: Optional[OpenAI] = None) -> None:
        self.cfg = cfg
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = _get_chat_client(self.cfg)
        return self._client

    def _chat(self, messages: List[Dict[str, str]]) -> str:
        try:
            resp = self.client.chat.completions.create(
                model=self.cfg.ai_model,
                messages=messages,
                stream=False,
            )
        except openai.APIStatusError as exc:
            raise GatewayError(exc.status_code, exc.response.text) from exc
        except openai.APIError as exc:
            raise GatewayError(None, str(exc)) from exc

        content: Optional[str] = None
        if resp.choices:
            content = resp.choices[0].message.content
        return content or "{}"

    def extract(self, raw_text: str, today: Optional[date] = None, system_prompt: Optional[str] = None) -> Any:
        today_label = format_date_with_ordinal(today or date.today())
        prompt = system_prompt or build_system_prompt(today_label)
        logger.info("Extraction des transactions (%d caractères OCR, modèle %s)", len(raw_text or ""), self.cfg.ai_model)
        content = self._chat(
            [
                {"role": "system", "content": prompt},
                {"role": "user", "content": raw_text},
            ]
        )
        logger.debug("Réponse brute du modèle: %s", content)
        return safe_parse_json(content)
