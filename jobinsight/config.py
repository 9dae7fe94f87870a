"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
No secrets are hardcoded.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LLMSettings(BaseSettings):
    """Inference service configuration for insight generation.

    Any OpenAI-compatible chat completions endpoint works.
    """

    model_config = SettingsConfigDict(env_prefix="LLM_")

    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="LLM API base URL",
    )
    model: str = Field(
        default="gpt-4",
        description="Model name to use for generation",
    )
    api_key: SecretStr = Field(
        default=SecretStr("not-required"),
        description="API key (not required for local servers)",
    )
    timeout: float = Field(
        default=120.0,
        description="Request timeout in seconds",
    )
    max_tokens: int = Field(
        default=2000,
        description="Maximum tokens in response",
    )
    temperature: float = Field(
        default=0.7,
        description="Sampling temperature",
    )


class EmbeddingSettings(BaseSettings):
    """Embedding service configuration."""

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Embedding service base URL",
    )
    model: str = Field(
        default="text-embedding-ada-002",
        description="Embedding model name",
    )
    api_key: SecretStr = Field(
        default=SecretStr("not-required"),
        description="API key (not required for local servers)",
    )
    native_dimensions: int = Field(
        default=1536,
        gt=0,
        description="Vector width the embedding model produces",
    )
    batch_size: int = Field(
        default=32,
        description="Batch size for embedding requests",
    )
    timeout: float = Field(
        default=60.0,
        description="Request timeout in seconds",
    )


class QdrantSettings(BaseSettings):
    """Qdrant vector database configuration."""

    model_config = SettingsConfigDict(env_prefix="QDRANT_")

    url: str = Field(
        default="http://localhost:6333",
        description="Qdrant server URL",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Qdrant API key (optional for local)",
    )
    collection_name: str = Field(
        default="career_insights",
        description="Collection holding insight vectors",
    )
    dimensions: int = Field(
        default=1024,
        gt=0,
        description="Vector width of the collection index",
    )


class ScraperSettings(BaseSettings):
    """Headless browser scraping configuration."""

    model_config = SettingsConfigDict(env_prefix="SCRAPER_")

    search_url: str = Field(
        default="https://www.dice.com/jobs?q={keywords}&location={location}",
        description="Search results URL template",
    )
    source_name: str = Field(
        default="Dice",
        description="Identifier recorded on every scraped listing",
    )
    headless: bool = Field(default=True, description="Run the browser headless")
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        description="Browser user agent",
    )
    viewport_width: int = Field(default=1280, description="Viewport width")
    viewport_height: int = Field(default=800, description="Viewport height")
    navigation_timeout: float = Field(
        default=60.0,
        description="Per-attempt navigation timeout in seconds",
    )
    navigation_retries: int = Field(
        default=3,
        ge=1,
        description="Navigation attempts before giving up",
    )
    retry_delay: float = Field(
        default=2.0,
        ge=0.0,
        description="Fixed delay between navigation attempts in seconds",
    )
    selector_timeout: float = Field(
        default=10.0,
        description="Selector wait timeout in seconds",
    )
    max_listings: int = Field(
        default=3,
        ge=1,
        description="Listings extracted per search",
    )
    min_description_length: int = Field(
        default=50,
        description="Descriptions this short or shorter are rejected",
    )


class PipelineSettings(BaseSettings):
    """Search pipeline configuration."""

    model_config = SettingsConfigDict(env_prefix="PIPELINE_")

    request_timeout: float = Field(
        default=600.0,
        ge=0.0,
        description="Wall-clock limit for one search request in seconds (0 disables)",
    )
    combined_insights: bool = Field(
        default=True,
        description="Generate one combined insight across all listings",
    )
    context_top_k: int = Field(
        default=5,
        ge=0,
        le=5,
        description="Similar prior insights added to prompts",
    )
    context_excerpt_chars: int = Field(
        default=500,
        description="Characters of each prior insight included in prompts",
    )


class Settings(BaseSettings):
    """Main application settings.

    Aggregates all configuration sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # API settings
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    api_port: int = Field(
        default=8000,
        description="API server port",
    )

    # Nested settings
    llm: LLMSettings = Field(default_factory=LLMSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    scraper: ScraperSettings = Field(default_factory=ScraperSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
