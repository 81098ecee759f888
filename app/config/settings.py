from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "receipts"
    db_username: str = "receipts"
    db_password: str = "secret"

    worker_concurrency: int = 2
    job_poll_interval_seconds: int = 5
    stale_job_grace_seconds: int = 30

    storage_backend: str = "local"
    files_root: str = "/app/files"
    public_files_url: str = "/files"
    max_upload_bytes: int = 10 * 1024 * 1024
    processing_estimate_seconds: int = 30

    ocr_default_provider: str = "tesseract"
    ocr_enable_fallback: bool = True

    tesseract_cmd: str = "tesseract"
    tesseract_lang: str = "fra"
    tesseract_timeout_seconds: int = 45

    pdf_engine: str = "pdfplumber"

    llm_provider: str = "openai"
    llm_api_key: str = ""
    llm_model_name: str = ""
    llm_base_url: str = ""
    llm_timeout_seconds: int = 30
    llm_temperature: float = 0.0
