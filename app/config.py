from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")


class Settings(BaseSettings):
    # --- DB 設定 ---
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_NAME: str = "Course"
    # 有設定就直接使用 (e.g. sqlite:///./dev.db)
    DATABASE_URL: str = ""

    # --- JWT 設定 ---
    # every service that issues or verifies tokens must get the same value
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24
    TOKEN_LEEWAY_SECONDS: int = 60

    # --- 帳號 ---
    MIN_PASSWORD_LENGTH: int = 8
    BCRYPT_ROUNDS: int = 12

    # --- 服務拆分 ---
    SERVICES: str = "identity,courses,enrollments"
    COURSE_SERVICE_URL: str = ""
    COURSE_LOOKUP_TIMEOUT_SECONDS: float = 2.0

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # 設定檔配置
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        frozen=True,
    )

    @field_validator("JWT_SECRET")
    @classmethod
    def _secret_long_enough(cls, v: str) -> str:
        if len(v) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters")
        return v

    @field_validator("JWT_ALGORITHM")
    @classmethod
    def _hmac_only(cls, v: str) -> str:
        if v not in HMAC_ALGORITHMS:
            raise ValueError(f"JWT_ALGORITHM must be one of {HMAC_ALGORITHMS}")
        return v

    @field_validator("TOKEN_LEEWAY_SECONDS")
    @classmethod
    def _small_leeway(cls, v: int) -> int:
        if not 0 <= v <= 60:
            raise ValueError("TOKEN_LEEWAY_SECONDS must be between 0 and 60")
        return v

    @field_validator("BCRYPT_ROUNDS")
    @classmethod
    def _bcrypt_rounds(cls, v: int) -> int:
        if not 4 <= v <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        return v

    @field_validator("COURSE_LOOKUP_TIMEOUT_SECONDS")
    @classmethod
    def _positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("COURSE_LOOKUP_TIMEOUT_SECONDS must be positive")
        return v

    @property
    def service_names(self) -> set[str]:
        return {s.strip() for s in self.SERVICES.split(",") if s.strip()}


settings = Settings()
