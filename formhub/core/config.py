from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "development"  # development | production | test
    APP_NAME: str = "formhub-api"

    DATABASE_URL: str = "sqlite+pysqlite:///./formhub.db"
    DATABASE_ECHO: bool = False

    # Identity provider (Supabase GoTrue compatible)
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_ANON_KEY: str = ""
    SUPABASE_JWT_SECRET: str = ""  # when set, access tokens are verified locally
    SUPABASE_JWT_AUDIENCE: str = "authenticated"
    IDENTITY_TIMEOUT_SECONDS: float = 10.0

    CORS_ORIGINS: str = "http://localhost:3000"
    ACCESS_TOKEN_COOKIE_NAME: str = "access_token"

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.strip().lower() == "production"

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

settings = Settings()
