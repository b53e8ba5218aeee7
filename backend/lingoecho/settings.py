from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-3-flash-preview", validation_alias="GEMINI_MODEL")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")
	gemini_timeout_seconds: float = Field(default=30.0, validation_alias="GEMINI_TIMEOUT_SECONDS")

	# Auth configuration
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=60 * 24 * 30, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
	# Auth sessions idle longer than this are purged by the cleanup loop
	auth_session_ttl_days: int = Field(default=30, validation_alias="AUTH_SESSION_TTL_DAYS")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")
	# Top-level node of the realtime store
	store_root: str = Field(default="lingoecho", validation_alias="STORE_ROOT")

	# Games
	quiz_question_count: int = Field(default=10, validation_alias="QUIZ_QUESTION_COUNT")
	matching_pair_count: int = Field(default=8, validation_alias="MATCHING_PAIR_COUNT")
	matching_clear_delay_ms: int = Field(default=500, validation_alias="MATCHING_CLEAR_DELAY_MS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
