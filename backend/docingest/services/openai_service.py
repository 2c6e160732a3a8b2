import os
import threading

from langsmith import traceable
from langsmith.wrappers import wrap_openai
from openai import OpenAI

from docingest.config import settings

os.environ["LANGSMITH_TRACING"] = settings.langsmith_tracing
os.environ["LANGSMITH_API_KEY"] = settings.langsmith_api_key
os.environ["LANGSMITH_PROJECT"] = settings.langsmith_project

_client: OpenAI | None = None
_client_lock = threading.Lock()


def is_generation_available() -> bool:
    return bool(settings.openrouter_api_key)


def _get_client() -> OpenAI:
    """Lazy-init OpenRouter client for chat completions."""
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                _client = wrap_openai(
                    OpenAI(
                        api_key=settings.openrouter_api_key,
                        base_url=settings.openrouter_base_url,
                        max_retries=0,
                    )
                )
    return _client


@traceable(name="generate_text")
def generate_text(
    model: str,
    system_prompt: str,
    user_prompt: str,
    max_tokens: int,
    temperature: float,
    timeout: float | None = None,
) -> str:
    """Single non-streaming completion against one named model."""
    response = _get_client().chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        max_tokens=max_tokens,
        temperature=temperature,
        timeout=timeout,
    )
    return (response.choices[0].message.content or "").strip()
