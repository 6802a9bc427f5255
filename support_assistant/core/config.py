"""Configuration management for the support assistant."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Required infrastructure
    OPENAI_API_KEY: str = Field(..., description="OpenAI API key")
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")
    REDIS_URL: str = Field(..., description="Redis URL for conversation history")
    APP_HOST: str = Field(..., description="Platform API host, e.g. waivio.com")

    # Environment
    ASSISTANT_ENV: str = Field(default="dev", description="Environment: dev, staging, prod, test")

    # Chat model
    CHAT_MODEL: str = Field(default="gpt-4o", description="Model used for plan and synthesis")
    CHAT_TEMPERATURE: float = Field(default=0.0, description="Chat model temperature")
    LLM_TIMEOUT_SECONDS: float = Field(default=60.0, description="Per-call model timeout")

    # Embeddings
    EMBEDDING_MODEL: str = Field(
        default="text-embedding-3-small", description="OpenAI embedding model"
    )
    EMBEDDING_DIM: int = Field(default=1536, description="Embedding vector dimension")

    # Session history
    SESSION_TTL_SECONDS: int = Field(default=600, description="Inactivity window for a session")
    SESSION_KEY_PREFIX: str = Field(
        default="api_res_cache:assistant", description="Redis key prefix for session lists"
    )

    # Knowledge retrieval
    CURATED_QA_COLLECTION: str = Field(default="WaivioQnA", description="Curated Q&A collection")
    CURATED_LANE_CAP: int = Field(default=3, description="Max results taken from the curated lane")
    TOPIC_SEARCH_K: int = Field(default=4, description="Results per topic search capability")
    SITE_SEARCH_K: int = Field(default=10, description="Results per tenant search capability")

    # Tool execution
    TOOL_CALL_TIMEOUT_SECONDS: float = Field(default=30.0, description="Per tool call timeout")
    TOOL_FORCING_KEYWORDS: str = Field(
        default="", description="Comma separated override for the tool-forcing keyword set"
    )
    MAX_ATTACHED_IMAGES: int = Field(default=2, description="Max images considered per request")

    # Platform API
    PLATFORM_API_TIMEOUT_SECONDS: float = Field(default=20.0, description="Platform API timeout")

    # Account service (Hive JSON-RPC)
    HIVE_NODES: str = Field(
        default=(
            "https://api.hive.blog,https://api.deathwing.me,https://api.openhive.network,"
            "https://techcoderx.com,https://anyx.io"
        ),
        description="Comma separated Hive RPC nodes, tried in order",
    )
    HIVE_TIMEOUT_SECONDS: float = Field(default=10.0, description="Hive RPC timeout")
    IMPORT_BOT_ACCOUNT: str = Field(
        default="waivio.import", description="Account granted posting authority for imports"
    )

    # Images
    IMAGE_MODEL: str = Field(default="gpt-image-1", description="Image generation model")
    IMAGE_SIZE: str = Field(default="1024x1024", description="Default generated image size")
    IMAGE_QUALITY: str = Field(default="medium", description="Image generation quality")
    IMAGE_TIMEOUT_SECONDS: float = Field(default=120.0, description="Image generation timeout")
    VISION_MODEL: str = Field(default="gpt-4o-mini", description="Model used to describe images")

    @property
    def hive_nodes(self) -> list[str]:
        return [n.strip() for n in self.HIVE_NODES.split(",") if n.strip()]


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
