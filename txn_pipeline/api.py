import logging

from dotenv import find_dotenv, load_dotenv
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config import load_config
from .errors import ConfigurationError, GatewayError
from .orchestrator import run_demo_extraction, run_text_pipeline

load_dotenv(find_dotenv(usecwd=True), override=False)

logger = logging.getLogger(__name__)

app = FastAPI(title="OCR Transaction Pipeline", version="0.1.0")


class OcrRequest(BaseModel):
    text: str


def _error_response(exc: Exception) -> JSONResponse:
    status_code = 502 if isinstance(exc, GatewayError) else 500
    logger.error("Échec du pipeline: %s", exc)
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


@app.get("/")
async def demo():
    try:
        return await run_demo_extraction(load_config())
    except (GatewayError, ConfigurationError) as exc:
        return _error_response(exc)


@app.post("/")
async def process_ocr(req: OcrRequest):
    try:
        report = await run_text_pipeline(req.text, load_config())
    except (GatewayError, ConfigurationError) as exc:
        return _error_response(exc)
    return report.to_response()
