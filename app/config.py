from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./data/db.sqlite3"
    api_key: str = ""  # empty = no auth check (local dev)
    openai_api_key: str = ""
    openai_base_url: str = "https://ai.gateway.lovable.dev/v1"
    openai_model: str = "google/gemini-2.5-flash"
    search_api_key: str = ""  # empty = enrichment disabled
    search_engine_id: str = ""
    enrichment_site: str = "drugs.com"
    enrichment_confidence_boost: float = 0.1
    data_dir: str = "./data"
    max_image_size_bytes: int = 10 * 1024 * 1024  # 10MB
    cors_origins: list[str] = ["*"]
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
