from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# Auth: short-lived access tokens, rotating refresh tokens, long-lived QR tokens
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_refresh_secret_key: str = Field(default="change-me-too", validation_alias="JWT_REFRESH_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=15, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
	refresh_token_expire_days: int = Field(default=7, validation_alias="REFRESH_TOKEN_EXPIRE_DAYS")
	qr_token_expire_days: int = Field(default=365, validation_alias="QR_TOKEN_EXPIRE_DAYS")
	# Seed admin, created at startup when both are set
	seed_admin_username: str | None = Field(default=None, validation_alias="SEED_ADMIN_USERNAME")
	seed_admin_password: str | None = Field(default=None, validation_alias="SEED_ADMIN_PASSWORD")

	# Game
	# "lifetime" folds each game into stored mastery counters, "session" replaces them
	mastery_scope: Literal["session", "lifetime"] = Field(default="lifetime", validation_alias="MASTERY_SCOPE")
	questions_per_game: int = Field(default=10, validation_alias="QUESTIONS_PER_GAME")
	questions_per_category_mixed: int = Field(default=10, validation_alias="QUESTIONS_PER_CATEGORY_MIXED")
	default_lang: str = Field(default="th", validation_alias="DEFAULT_LANG")

	# Rate limits (fixed window)
	rate_limit_auth_max: int = Field(default=5, validation_alias="RATE_LIMIT_AUTH_MAX")
	rate_limit_auth_window_seconds: int = Field(default=15 * 60, validation_alias="RATE_LIMIT_AUTH_WINDOW_SECONDS")
	rate_limit_game_max: int = Field(default=30, validation_alias="RATE_LIMIT_GAME_MAX")
	rate_limit_game_window_seconds: int = Field(default=60, validation_alias="RATE_LIMIT_GAME_WINDOW_SECONDS")
	# Only enable behind a proxy that sets X-Forwarded-For itself
	trust_proxy_headers: bool = Field(default=False, validation_alias="TRUST_PROXY_HEADERS")

	# Comma separated; "*" allows any origin without credentials
	cors_origins: str = Field(default="*", validation_alias="CORS_ORIGINS")

	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# OpenRouter fallback configuration (optional)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="x-ai/grok-4-fast:free", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="Quiz Game", validation_alias="OPENROUTER_TITLE")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
