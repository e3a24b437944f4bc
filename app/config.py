from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    supplier_base_url: str = "http://localhost:3001/api"
    supplier_timeout_seconds: float = 30.0
    supplier_retry_attempts: int = 3
    supplier_retry_delay: float = 1.0  # seconds, multiplied by attempt number
    supplier_language: str = "en"
    supplier_residency: str = "us"
    enrichment_limit: int = 15
    enrichment_stagger_seconds: float = 0.05
    booking_poll_interval: float = 5.0
    booking_poll_max_attempts: int = 24
    stripe_secret_key: str = ""
    log_level: str = "INFO"
