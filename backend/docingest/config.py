from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    supabase_url: str
    supabase_anon_key: str
    supabase_service_role_key: str = ""
    storage_bucket: str = "user_uploads"
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    # Strongest first; the summarizer stops at the first model that answers.
    summary_models: list[str] = [
        "meta-llama/llama-3.3-70b-instruct",
        "meta-llama/llama-3.1-8b-instruct",
        "google/gemma-2-9b-it",
    ]
    summary_timeout_seconds: float = 20.0
    summary_max_tokens: int = 200
    summary_temperature: float = 0.3
    max_upload_mb: int = 5
    chunk_size: int = 1000
    chunk_overlap: int = 200
    chunk_batch_size: int = 500
    storage_quota_mb: int = 50
    langsmith_api_key: str = ""
    langsmith_project: str = "document-ingestion"
    langsmith_tracing: str = "true"
    frontend_url: str = "http://localhost:5173"
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
