from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Storefront Dashboard"

    # Read cache
    CACHE_MAX_AGE_MS: int = 5 * 60 * 1000
    CACHE_BACKEND: str = "memory"  # "memory" or "file"
    CACHE_FILE_PATH: str = "data/cache/local_storage.json"
    CACHE_QUOTA_BYTES: int = 0  # 0 = unlimited, memory backend only

    LOG_LEVEL: str = "INFO"

    class Config:
        case_sensitive = True
        env_prefix = "DASHBOARD_"

settings = Settings()
