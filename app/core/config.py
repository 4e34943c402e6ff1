from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(7 * 24 * 60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    environment: str = Field("development", alias="ENVIRONMENT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_origins: str = Field("*", alias="CORS_ORIGINS")

    upload_dir: str = Field("uploads", alias="UPLOAD_DIR")
    max_photo_size_bytes: int = Field(5 * 1024 * 1024, alias="MAX_PHOTO_SIZE_BYTES")
    max_import_size_bytes: int = Field(10 * 1024 * 1024, alias="MAX_IMPORT_SIZE_BYTES")

    seed_admin_name: str = Field("System Admin", alias="SEED_ADMIN_NAME")
    seed_admin_email: str = Field("admin@example.com", alias="SEED_ADMIN_EMAIL")
    seed_admin_password: str = Field("Admin@123", alias="SEED_ADMIN_PASSWORD")
    seed_student_count: int = Field(50, alias="SEED_STUDENT_COUNT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def cors_origin_list(self) -> List[str]:
        raw = self.cors_origins.strip()
        if raw == "*":
            return ["*"]
        return [o.strip().rstrip("/") for o in raw.split(",") if o.strip()]


settings = Settings()
