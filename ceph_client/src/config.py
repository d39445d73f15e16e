from pydantic_settings import BaseSettings, SettingsConfigDict

# -----------------------
# Settings and constants
# -----------------------

class Settings(BaseSettings):

    service_name: str = "ceph-client"
    log_level: str = "INFO"

    # HTTP client
    request_timeout_s: float = 60
    connect_timeout_s: float = 5
    max_connections: int = 20

    # Transport retry (same request, same body)
    transport_retry_count: int = 10
    transport_retry_wait_s: float = 10

    # Operation retry (whole submit + task wait)
    max_attempts: int = 3

    # Task polling
    task_poll_interval_s: float = 2
    task_max_poll_cycles: int = 150

    # Global settings configuration (Pydantic v2)
    model_config = SettingsConfigDict(env_prefix="CEPH_", env_file=".env", extra="ignore")


settings = Settings()
