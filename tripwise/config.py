from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TRIPWISE_", env_file=".env")

    osrm_url: str = "https://router.project-osrm.org"
    nominatim_url: str = "https://nominatim.openstreetmap.org"
    nominatim_user_agent: str = "tripwise_app"
    # public Nominatim allows one request per second
    nominatim_min_delay_seconds: float = 1.0
    geocode_cache_size: int = 128

    request_timeout_seconds: float = 30.0
    resolver_max_workers: int = 4

    log_level: str = "INFO"


settings = Settings()
