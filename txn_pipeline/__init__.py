"""Pipeline package: OCR text → transactions → reporting currency → Notion.

This package provides:
- Configuration loading utilities
- Typed structures for configuration, per-record outcomes and reporting
- A resilient JSON decoder for model outputs
- Service wrappers around the chat-completions, currency-rate and Notion APIs
- A clean orchestrator to run the end-to-end pipeline
- A CLI and a thin HTTP surface
"""

__all__ = [
    "config",
    "types",
    "errors",
    "parsing",
    "json_service",
    "extraction_service",
    "currency_service",
    "notion_service",
    "storage",
    "writer",
    "orchestrator",
]
