from pydantic_settings import BaseSettings
from functools import lru_cache

DEFAULT_JWT_SECRET = "change-me-in-production-cuentas-2024"


class Settings(BaseSettings):
    database_url: str = "sqlite:///./cuentas.db"
    environment: str = "development"
    allowed_origins: str = ""

    # --- Auth ---
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 480  # 8 horas
    allow_insecure_jwt_secret: bool = False
    allow_public_register: bool = False
    create_default_admin_on_boot: bool = True
    default_admin_username: str = "admin"
    default_admin_password: str = "admin123"
    default_admin_email: str = "admin@cuentas.local"
    default_admin_full_name: str = "Administrador"

    # --- Plataforma ---
    rate_limit_enabled: bool = True
    sentry_dsn: str = ""
    sentry_traces_sample_rate: float = 0.0
    enable_prometheus_metrics: bool = True

    # --- Listados ---
    default_per_page: int = 20
    max_per_page: int = 200
    default_outline: str = "long"
    auto_complete_limit: int = 10
    session_ttl_minutes: int = 480  # igual a la vida del token

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_default_jwt_secret(self) -> bool:
        return self.jwt_secret.strip() == DEFAULT_JWT_SECRET

    def get_cors_origins(self) -> list[str]:
        """Orígenes permitidos. Si ALLOWED_ORIGINS está vacío: ninguno en prod, todos en desarrollo."""
        if self.allowed_origins and self.allowed_origins.strip():
            lista = [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
            if lista:
                return lista
        if self.is_production:
            return []
        return ["*"]


@lru_cache
def get_settings() -> Settings:
    return Settings()
