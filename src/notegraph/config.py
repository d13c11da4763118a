"""Configuration management using Pydantic Settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # LLM Configuration (remote OpenAI-compatible endpoint)
    llm_base_url: str = "http://localhost:11434/v1"
    llm_model: str = "qwen3:8b"
    llm_api_key: str = "ollama"
    llm_max_concurrent: int = 4
    llm_timeout: float = 60.0
    llm_temperature: float = Field(
        default=0.3,
        description="Low temperature keeps connection analysis stable between runs"
    )

    # Embeddings (served by the same OpenAI-compatible endpoint)
    embedding_model: str = "text-embedding-3-small"

    # Note fetching
    note_fetch_limit: int = Field(
        default=75,
        description="Max notes pulled into one graph snapshot (bounds the O(n^2) pair scan)"
    )
    oracle_note_limit: int = 50
    oracle_excerpt_chars: int = 200
    min_notes_for_analysis: int = 2

    # Graph Builder
    tag_edge_weight: float = Field(
        default=0.2,
        description="Edge weight contributed by each shared tag"
    )
    cluster_edge_weight: float = 0.1
    node_base_size: float = 10.0
    node_size_per_tag: float = 2.0
    node_chars_per_size: float = 80.0
    node_max_size: float = 20.0
    label_max_chars: int = 20

    # Layout Simulator
    link_distance: float = 120.0
    ai_link_distance_scale: float = Field(
        default=1.0,
        description="Multiplier on link_distance for AI-sourced edges"
    )
    ai_link_strength: float = 0.3
    link_strength: float = 0.05
    charge_strength: float = -400.0
    collision_margin: float = 30.0
    center_strength: float = 0.1
    velocity_decay: float = 0.4
    alpha_decay: float = 1 - 0.001 ** (1 / 300)
    alpha_min: float = 0.001
    drag_alpha_target: float = 0.3
    reheat_alpha: float = 1.0
    reheat_jitter: float = 1.0
    viewport_width: float = 960.0
    viewport_height: float = 500.0
    tick_interval: float = Field(
        default=1 / 60,
        description="Seconds between layout ticks (display refresh cadence)"
    )

    # Search / Relevance
    search_match_threshold: float = 0.5
    search_match_count: int = 10
    search_debounce: float = Field(
        default=0.15,
        description="Seconds to wait before sending a query; superseded queries are never sent"
    )

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False
    notes_file: str | None = Field(
        default=None,
        description="Optional JSON list of notes loaded into the in-memory store at startup"
    )


def get_dev_settings() -> Settings:
    """Get development environment settings."""
    return Settings(
        llm_base_url="http://localhost:11434/v1",
        embedding_model="nomic-embed-text",
        api_debug=True,
    )


def get_test_settings() -> Settings:
    """Get test environment settings."""
    return Settings(
        search_debounce=0.0,
        tick_interval=0.0,
        llm_max_concurrent=1,
    )


# Global settings instance
settings = Settings()
