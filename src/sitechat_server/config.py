from typing import List, Literal, Optional

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Language model providers, ranked openai > anthropic > groq
    openai_api_key: Optional[SecretStr] = None
    openai_model: str = "gpt-4o-mini"
    anthropic_api_key: Optional[SecretStr] = None
    anthropic_model: str = "claude-3-5-sonnet-20241022"
    groq_api_key: Optional[SecretStr] = None
    groq_model: str = "meta-llama/llama-4-scout-17b-16e-instruct"

    llm_temperature: float = 0.2
    llm_max_tokens: int = 800
    llm_timeout_seconds: float = 60.0
    answer_language: str = "Danish"

    # External document index (Upstash Search REST API)
    search_url: Optional[str] = None
    search_token: Optional[SecretStr] = None
    search_index: str = "sitechat"
    search_timeout_seconds: float = 15.0

    # Site metadata storage
    storage_backend: Literal["auto", "redis", "file", "memory"] = "auto"
    redis_url: Optional[str] = None
    storage_path: str = Field(
        default=".sitechat-indexes.json",
        validation_alias=AliasChoices("sitechat_storage_path", "storage_path"),
    )
    max_indexes: int = 50

    # Retrieval and context limits
    max_results: int = 100
    max_sources_display: int = 20
    max_context_docs: int = 10
    max_context_length: int = 1500
    min_context_length: int = 100
    snippet_length: int = 200

    # Chat-completion compatibility endpoint
    model_prefix: str = "sitechat-"

    cors_allow_origins: List[str] = ["*"]
    cors_allow_methods: List[str] = ["GET", "POST", "OPTIONS"]
    cors_allow_headers: List[str] = ["Content-Type", "Authorization"]

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
