import logging

from langsmith import traceable

from docingest.config import settings
from docingest.services.openai_service import generate_text, is_generation_available

logger = logging.getLogger(__name__)

SUMMARY_CHUNK_LIMIT = 10
SUMMARY_CHAR_LIMIT = 5000

SUMMARY_SYSTEM_PROMPT = (
    "You are a document summarizer. Generate exactly 3 concise sentences that "
    "capture the key information of the document. Do not include any preamble, "
    "just output the 3 sentences directly."
)


def build_summary_input(chunks: list[str]) -> str:
    """Leading chunks only, capped in length to keep the prompt small."""
    return "\n".join(chunks[:SUMMARY_CHUNK_LIMIT])[:SUMMARY_CHAR_LIMIT]


@traceable(name="summarize_document")
def summarize_document(chunks: list[str], models: list[str] | None = None) -> str | None:
    """Summarize a document from its leading chunks.

    Tries each model in order and returns the first non-empty answer. Returns
    None when no generation service is configured or every model fails.
    """
    if not is_generation_available() or not chunks:
        return None

    text = build_summary_input(chunks)
    for model in models or settings.summary_models:
        try:
            summary = generate_text(
                model,
                SUMMARY_SYSTEM_PROMPT,
                f"Summarize this document:\n\n{text}",
                max_tokens=settings.summary_max_tokens,
                temperature=settings.summary_temperature,
                timeout=settings.summary_timeout_seconds,
            )
        except Exception as e:
            logger.warning(f"Summary model {model} failed: {e}")
            continue
        if summary:
            return summary

    logger.warning("No summary model produced a result")
    return None
