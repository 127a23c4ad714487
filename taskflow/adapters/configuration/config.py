# taskflow/adapters/configuration/config.py

"""
Application Settings Configuration
"""

from pathlib import Path
from dotenv import load_dotenv

# configura corretamente para a raiz do projeto
env_path = Path(__file__).parent.parent.parent.parent / ".env"
load_dotenv(env_path)

from pydantic import SecretStr, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List, Union
from logging import getLevelName

from taskflow.domain.exceptions import ConfigurationError

# Minimum length, in bytes, of each JWT signing secret
MIN_SECRET_BYTES = 32

# HMAC algorithms only: verification is symmetric-key based
SUPPORTED_JWT_ALGORITHMS = ("HS256", "HS384", "HS512")


class Settings(BaseSettings):
    """
    Application Settings for environment, database, cache, auth and logging.
    """
    model_config = SettingsConfigDict(
        env_file=str(env_path),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # General Project Info
    PROJECT_NAME: str = Field(default="TaskFlow API", description="Name of the project")
    VERSION: str = Field(default="1.0.0", description="Application version")
    ENVIRONMENT: str = Field(default="development", description="Environment: development, production, testing")
    DEBUG: bool = Field(default=False, description="Enable debug mode (detailed error logs)")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")

    # Database
    DB_DRIVER: str = Field(default="asyncpg", description="Database driver (asyncpg)")
    POSTGRES_USER: str = Field(default="taskflow")
    POSTGRES_PASSWORD: str = Field(default="taskflow")
    POSTGRES_DB: str = Field(default="taskflow")
    POSTGRES_HOST: str = Field(default="localhost")
    POSTGRES_PORT: int = Field(default=5432)
    DATABASE_URL: Optional[str] = Field(default=None, description="Database connection URL")
    DB_POOL_SIZE: int = Field(default=10, description="Connection pool size")
    DB_OPERATION_TIMEOUT_SECONDS: float = Field(default=5.0, description="Timeout for each ledger/identity query")

    # Redis (revocation cache)
    REDIS_URL: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    REDIS_OPERATION_TIMEOUT_SECONDS: float = Field(default=1.0, description="Timeout for each cache command")

    # Auth Settings
    JWT_ACCESS_SECRET: SecretStr
    JWT_REFRESH_SECRET: SecretStr
    TOKEN_HASH_PEPPER: Optional[SecretStr] = Field(
        default=None, description="Key for refresh/access token digests (defaults to the refresh secret)"
    )
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_ISSUER: str = Field(default="taskflow-api", description="Issuer claim for every token")
    JWT_AUDIENCE: str = Field(default="taskflow-client", description="Audience claim for every token")
    JWT_LEEWAY_SECONDS: int = Field(default=0, description="Clock skew tolerated on expiry checks")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=15, description="Access token expiration time (minutes)")
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default=7, description="Refresh token expiration time (days)")
    REFRESH_WHITELIST_TTL_SECONDS: int = Field(
        default=7 * 24 * 60 * 60, description="Maximum lifetime of a refresh whitelist cache entry"
    )
    BCRYPT_ROUNDS: int = Field(default=12, description="bcrypt work factor")
    HASHER_TIMEOUT_SECONDS: float = Field(default=5.0, description="Timeout for password hashing/verification")
    AUTH_RATE_LIMIT_ATTEMPTS: int = Field(
        default=10, description="Failed signup/signin attempts allowed per client IP within the window"
    )
    AUTH_RATE_LIMIT_WINDOW_SECONDS: int = Field(default=15 * 60, description="Auth attempt counting window")

    # Cookies
    REFRESH_COOKIE_NAME: str = Field(default="refreshToken", description="Cookie holding the refresh token")
    COOKIE_DOMAIN: Optional[str] = Field(default=None, description="Domain for cookies (e.g. example.com)")
    COOKIE_PATH: str = Field(default="/api/v1/auth", description="Path for the refresh token cookie")
    COOKIE_SAMESITE: str = Field(default="strict", description="SameSite policy for cookies: lax, strict, or none")

    # Security (CORS)
    CORS_ORIGINS: List[str] = Field(default=["http://localhost:5173"], description="Allowed CORS origins")

    def model_post_init(self, __context) -> None:
        """Build DATABASE_URL from its parts when it is not given directly."""
        if not self.DATABASE_URL:
            self.DATABASE_URL = (
                f"postgresql+{self.DB_DRIVER}://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
                f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def token_hash_key(self) -> str:
        pepper = self.TOKEN_HASH_PEPPER or self.JWT_REFRESH_SECRET
        return pepper.get_secret_value()

    @field_validator("DEBUG", mode="before")
    def parse_boolean(cls, v: Union[str, bool]) -> bool:
        """Convert string boolean values to proper boolean."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower() in ("true", "1", "yes", "y", "on")
        return bool(v)

    @field_validator("CORS_ORIGINS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """
        Assemble CORS origins if provided as comma-separated string.
        """
        if isinstance(v, str) and not v.startswith("["):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, list):
            return v
        raise ValueError(f"Invalid CORS_ORIGINS format: {v!r}")

    @field_validator("LOG_LEVEL", mode="before")
    def validate_log_level(cls, v: str) -> str:
        """
        Validate that the log level is a valid level name.
        """
        lvl = v.upper()
        if getLevelName(lvl) == "Level %s" % lvl:
            raise ValueError(f"Invalid LOG_LEVEL: {v}")
        return lvl

    @field_validator("JWT_ALGORITHM", mode="before")
    def validate_jwt_algorithm(cls, v: str) -> str:
        alg = v.upper()
        if alg not in SUPPORTED_JWT_ALGORITHMS:
            raise ValueError(f"JWT_ALGORITHM must be one of {SUPPORTED_JWT_ALGORITHMS}, got: {v}")
        return alg

    @field_validator("COOKIE_SAMESITE", mode="before")
    def validate_cookie_samesite(cls, v: str) -> str:
        """Valida a política SameSite do cookie."""
        if v.lower() not in ["lax", "strict", "none"]:
            raise ValueError(f"COOKIE_SAMESITE must be 'lax', 'strict' or 'none', got: {v}")
        return v.lower()

    @field_validator(
        "ACCESS_TOKEN_EXPIRE_MINUTES",
        "REFRESH_TOKEN_EXPIRE_DAYS",
        "REFRESH_WHITELIST_TTL_SECONDS",
        "BCRYPT_ROUNDS",
    )
    def validate_positive(cls, v: int, info) -> int:
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive, got: {v}")
        return v

    @model_validator(mode="after")
    def validate_jwt_secrets(self) -> "Settings":
        """Both signing secrets must be long enough and must differ."""
        access = self.JWT_ACCESS_SECRET.get_secret_value()
        refresh = self.JWT_REFRESH_SECRET.get_secret_value()
        for name, secret in (("JWT_ACCESS_SECRET", access), ("JWT_REFRESH_SECRET", refresh)):
            if len(secret.encode("utf-8")) < MIN_SECRET_BYTES:
                raise ValueError(f"{name} must be at least {MIN_SECRET_BYTES} bytes long")
        if access == refresh:
            raise ValueError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must be different")
        return self


def load_settings(**overrides) -> Settings:
    """
    Build the settings, turning any validation failure into a ConfigurationError.

    Raises:
        ConfigurationError: Missing or invalid configuration (fatal at startup).
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        # Only field names and messages: never echo secret values
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from None


# Create settings instance
settings = load_settings()
