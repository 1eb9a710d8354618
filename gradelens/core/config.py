"""
Application configuration management
"""


from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbeddingConfig(BaseModel):
    """Configuration for the sentence-embedding model"""

    model_name: str = "sentence-transformers/all-MiniLM-L6-v2"
    device: str | None = None  # Let sentence-transformers pick
    max_chars: int = 512  # Character limit applied before encoding
    timeout: float = Field(30.0, gt=0)  # seconds, per embedding call
    load_timeout: float = Field(300.0, gt=0)  # seconds, for the first model load
    preload: bool = False  # Load the model during application startup


class SimilarityConfig(BaseModel):
    """Configuration for plagiarism matching"""

    enabled: bool = True
    match_threshold: float = Field(0.75, ge=0.0, le=1.0)  # Similarity fraction to report a match
    flag_threshold: int = Field(85, ge=0)  # Percentage at which a report is flagged
    snippet_length: int = Field(200, gt=0)  # Stored characters per matched submission


class GradingConfig(BaseModel):
    """Configuration for heuristic rubric grading"""

    default_max_score: int = Field(100, gt=0)
    graded_by: str = "ai"


class DatabaseConfig(BaseModel):
    """Database configuration"""

    url: str = "sqlite+aiosqlite:///./gradelens.db"
    echo: bool = False  # SQL logging


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False
    )

    # Application
    app_name: str = "GradeLens"
    debug: bool = False
    log_level: str = "INFO"
    version: str = "0.1.0"

    # API
    api_prefix: str = "/api/v1"
    host: str = "localhost"
    port: int = 8000

    # Pipeline configuration
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    similarity: SimilarityConfig = Field(default_factory=SimilarityConfig)
    grading: GradingConfig = Field(default_factory=GradingConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)


# Global settings instance
settings = Settings()
