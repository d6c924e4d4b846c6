"""Application configuration. Loads from env vars."""
from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    """App settings. Override via environment variables."""

    # Relabeling service endpoint used by the pipeline client (both required for `run`)
    RELABEL_SERVICE_URL: str = ""
    RELABEL_SERVICE_TOKEN: str = ""
    RELABEL_REQUEST_TIMEOUT_SECONDS: float = 120.0

    # Batch planning: "fixed" = window_size/overlap; "token_budget" = estimated tokens per window
    BATCH_POLICY: Literal["fixed", "token_budget"] = "fixed"
    BATCH_WINDOW_SIZE: int = 50
    BATCH_OVERLAP: int = 10
    BATCH_TOKEN_BUDGET: int = 3000
    BATCH_OVERLAP_RATIO: float = 0.25
    # Fixed policy drops the trailing window shorter than BATCH_WINDOW_SIZE unless this is set
    BATCH_EMIT_TRAILING: bool = False

    # Stitching: raise LengthMismatch (window fails) instead of only reporting it
    STITCH_STRICT_LENGTH: bool = False

    # Output layout: {OUTPUT_DIR}/{stem}_realigned_partial.json, {stem}_realigned.json, batches/
    OUTPUT_DIR: str = "./output"
    BATCH_ARTIFACT_DIR: str = "realigned_batches"

    # Relabeling service (server side): OpenAI-compatible chat completions
    LLM_API_URL: str = "https://api.together.xyz/v1/chat/completions"
    LLM_API_KEY: str = ""
    LLM_MODEL: str = "deepseek-ai/DeepSeek-R1-Distill-Llama-70B-free"
    LLM_TEMPERATURE: float = 0.3
    LLM_TIMEOUT_SECONDS: float = 60.0
    RELABEL_MAX_ATTEMPTS: int = 3
    RELABEL_RETRY_DELAY_SECONDS: float = 1.0  # fixed delay between attempts, no backoff

    # Logging: level (DEBUG, INFO, WARNING, ERROR); file path = also write log to file (empty = console only)
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"


def get_settings() -> Settings:
    return Settings()
