from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Criteria Analyzer API"
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    cors_origins: str = "http://localhost:5173"
    log_level: str = "INFO"
    request_id_header: str = "X-Request-ID"

    # Server-side only. The browser never sees this value; every upstream call goes through the proxy.
    upstage_api_key: str = ""
    parse_api_url: str = "https://api.upstage.ai/v1/document-digitization"
    chat_api_url: str = "https://api.upstage.ai/v1/solar/chat/completions"
    parse_model: str = "document-parse"
    parse_ocr: str = "force"
    parse_mode: str = "enhanced"
    chat_model: str = "solar-pro"
    chat_temperature: float = 0.1
    chat_max_tokens: int = 1000
    prompt_max_document_chars: int = 8000
    # Empty means the in-process proxy; otherwise proxy requests are POSTed to this relay.
    proxy_url: str = ""
    upstream_timeout_seconds: float = 120.0

    supported_extensions: str = ".pdf,.hwp"
    max_upload_file_bytes: int = 50 * 1024 * 1024
    csv_filename_prefix: str = "에듀집_선정기준"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def supported_extensions_list(self) -> list[str]:
        extensions: list[str] = []
        for raw in self.supported_extensions.split(","):
            value = raw.strip().lower()
            if not value:
                continue
            extensions.append(value if value.startswith(".") else f".{value}")
        return extensions


settings = Settings()
