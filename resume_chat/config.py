from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Local SQLite by default; production points this at PostgreSQL.
    database_url: str = "sqlite:///./resume_chat.db"
    secret_key: str = "replace-with-a-long-random-secret-key"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days
    app_env: str = "development"  # development, staging, production

    # Primary provider: any OpenAI-compatible chat-completions endpoint (Groq by default)
    ai_base_url: str = "https://api.groq.com/openai/v1"
    ai_api_key: str = ""
    ai_model: str = "llama-3.3-70b-versatile"
    ai_vision_model: str = "meta-llama/llama-4-scout-17b-16e-instruct"
    ai_request_timeout_seconds: float = 120.0
    ai_retry_count: int = 3

    # Fallback provider: none | ollama | bedrock
    ai_fallback_provider: str = "none"
    ai_fallback_retry_count: int = 2
    ollama_base_url: str = "http://localhost:11434/v1"
    ollama_model: str = "deepseek-r1:8b"
    bedrock_llm_model_id: str = "mistral.mistral-large-2407-v1:0"
    aws_region: str = "us-west-2"

    # Aggregate budget for one AI call chain (all retries, primary + fallback)
    ai_total_timeout_seconds: float = 120.0

    # Benefit values used when no billing service is wired in
    default_daily_token_limit: int = 20000
    default_chat_session_limit: int = 50

    # CORS origins as comma-separated values
    # Example: "https://app.example.com,https://admin.example.com"
    cors_allow_origins: str = "http://localhost:4200"

    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR

    max_resume_upload_mb: int = 10

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
