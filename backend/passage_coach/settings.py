from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	# Default model, used when no per-purpose override is set
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	gemini_model_chunk: str | None = Field(default=None, validation_alias="GEMINI_MODEL_CHUNK")
	gemini_model_questions: str | None = Field(default=None, validation_alias="GEMINI_MODEL_QUESTIONS")
	gemini_model_grade: str | None = Field(default=None, validation_alias="GEMINI_MODEL_GRADE")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")
	gemini_timeout_seconds: float = Field(default=30.0, validation_alias="GEMINI_TIMEOUT_SECONDS")

	# Chunk plans are cached per passage content hash
	chunk_cache_ttl_seconds: int = Field(default=3600, validation_alias="CHUNK_CACHE_TTL_SECONDS")
	min_paras_per_chunk: int = Field(default=1, validation_alias="MIN_PARAS_PER_CHUNK")
	max_paras_per_chunk: int = Field(default=4, validation_alias="MAX_PARAS_PER_CHUNK")

	question_count_min: int = Field(default=5, validation_alias="QUESTION_COUNT_MIN")
	question_count_max: int = Field(default=7, validation_alias="QUESTION_COUNT_MAX")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")
	# Attempts untouched for longer than this are purged
	attempt_retention_days: int = Field(default=7, validation_alias="ATTEMPT_RETENTION_DAYS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

	def model_for(self, purpose: str) -> str:
		override = {
			"chunk": self.gemini_model_chunk,
			"questions": self.gemini_model_questions,
			"grade": self.gemini_model_grade,
		}.get(purpose)
		return override or self.gemini_model

settings = Settings()
