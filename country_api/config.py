from pydantic_settings import BaseSettings
from pathlib import Path
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    model_config = {"extra": "ignore", "env_file": ".env", "env_file_encoding": "utf-8"}

    # Database: a full URL wins; otherwise DB_* parts build a MySQL URL when DB_HOST is set.
    DATABASE_URL: str | None = None
    DB_HOST: str | None = None
    DB_PORT: int = 3306
    DB_USER: str = "root"
    DB_PASSWORD: str = ""
    DB_NAME: str = "countries_db"
    SQLITE_FALLBACK_URL: str = "sqlite:///./dev.db"

    HOST: str = "0.0.0.0"
    PORT: int = 8000

    COUNTRY_API: str = "https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies"
    EXCHANGE_API: str = "https://open.er-api.com/v6/latest/USD"
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Logging configuration used by country_api.logging
    LOG_LEVEL: str = "INFO"
    CONSOLE_LOG_LEVEL: str = "INFO"
    SLOW_QUERY_THRESHOLD_MS: float = 200.0

    # Base directory of the project
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    CACHE_DIR: Path | None = None

    # Rate limiting / Redis configuration
    # If REDIS_URL is not provided, rate limiting will be disabled gracefully.
    REDIS_URL: str | None = None
    RATE_LIMIT_DEFAULT_TIMES: int = 60
    RATE_LIMIT_DEFAULT_SECONDS: int = 60
    RATE_LIMIT_REFRESH_TIMES: int = 10
    RATE_LIMIT_REFRESH_SECONDS: int = 60
    RATE_LIMIT_IMAGE_TIMES: int = 30
    RATE_LIMIT_IMAGE_SECONDS: int = 60

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            url = self.DATABASE_URL.strip()
            # Hosting platforms hand out bare mysql:// URLs; SQLAlchemy needs a driver.
            if url.startswith("mysql://"):
                url = "mysql+pymysql://" + url[len("mysql://"):]
            return url
        if self.DB_HOST:
            return URL.create(
                "mysql+pymysql",
                username=self.DB_USER,
                password=self.DB_PASSWORD or None,
                host=self.DB_HOST,
                port=self.DB_PORT,
                database=self.DB_NAME,
                query={"charset": "utf8mb4"},
            ).render_as_string(hide_password=False)
        return self.SQLITE_FALLBACK_URL

    @property
    def cache_dir(self) -> Path:
        return Path(self.CACHE_DIR) if self.CACHE_DIR else self.BASE_DIR / "cache"

    @property
    def summary_image_path(self) -> Path:
        return self.cache_dir / "summary.png"


settings = Settings()
