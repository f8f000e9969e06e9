from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Backend
    api_base_url: str = "https://staging.plane.lascade.com"
    country: str = "IN"
    currency: str = "INR"
    language: str = "en-GB"
    app_code: str = "D1WF"
    user_id: str = "-0"
    http_timeout_seconds: float = 30.0

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Destination cache: "memory" | "redis"
    destination_cache_backend: str = "memory"
    destination_cache_ttl_seconds: int = 6 * 3600

    # Polling
    initial_page_size: int = 8
    page_size: int = 20
    backend_poll_interval_seconds: float = 2.0
    max_backend_waits: int = 60
    retry_delays_seconds: list[float] = [1.0, 2.0, 4.0]
    load_more_timeout_seconds: float = 15.0
    auto_paginate: bool = False

    # Page 2 workaround (backend quirk right after search creation)
    page_two_fast_retry: bool = True
    page_two_retry_delay_seconds: float = 0.5
    page_two_retry_page_size: int = 15

    # Sessions: evicted after this long without a request, 0 keeps them forever
    session_idle_ttl_seconds: int = 30 * 60
    # Snapshots buffered per events() subscriber, oldest dropped when full
    events_queue_size: int = 64

    # App
    app_env: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"


# Global instance used across the project
settings = Settings()
