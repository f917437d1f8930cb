from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SECRET_KEY = "cleancity-dev-secret-key-change-in-production"


class Settings(BaseSettings):
    app_name: str = "CleanCity API"

    # JWT settings
    secret_key: str = DEFAULT_SECRET_KEY
    # Retired secrets still accepted when verifying tokens (rotation window)
    previous_secret_keys: list[str] = []
    jwt_alg: str = "HS256"
    access_token_expire_days: int = 7

    database_url: str = "sqlite:///./cleancity.db"

    # Image upload settings
    blob_storage_dir: str = "storage/images"
    max_upload_bytes: int = 5 * 1024 * 1024  # 5MB
    allowed_image_types: list[str] = [
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/webp",
    ]
    upload_timeout_seconds: float = 30.0

    # Comma-separated list of exact origins, or "*"
    cors_origins: str = "*"

    log_level: str = "INFO"

    # Pydantic v2 settings
    model_config = SettingsConfigDict(env_file=".env")

    @property
    def cors_origin_list(self) -> list[str]:
        """Split the configured CORS origins into a list"""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def verification_keys(self) -> list[str]:
        """Current secret first, then any retired ones"""
        return [self.secret_key, *self.previous_secret_keys]

    @property
    def uses_default_secret(self) -> bool:
        return self.secret_key == DEFAULT_SECRET_KEY


settings = Settings()
