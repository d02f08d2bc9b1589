from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from decimal import Decimal
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'backoffice_user'
    POSTGRES_PASSWORD: str = 'backoffice_pass'
    POSTGRES_DB: str = 'backoffice_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432
    DATABASE_URL: Optional[str] = None  # Overrides the POSTGRES_* settings (e.g. sqlite:// for tests)

    # JWT settings
    APP_SECRET_STRING: str = 'your-super-secret-key-here-change-in-production-2024'
    ALGORITHM: str = 'HS256'
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Invoice numbering: PREFIX/<serial>/<YY-YY>
    SALES_INVOICE_PREFIX: str = 'SRIHM'
    PURCHASE_INVOICE_PREFIX: str = 'SRIHM'
    INVOICE_SERIAL_WIDTH: int = 2

    # GST: intra-state supplies split into CGST + SGST, inter-state use IGST
    COMPANY_STATE_CODE: str = '36'

    # Payments
    ALLOW_OVERPAYMENT: bool = False
    PAYMENT_TOLERANCE: Decimal = Decimal('0.01')

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("ALLOW_OVERPAYMENT", mode="before")
    @classmethod
    def parse_allow_overpayment(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

settings = Settings()
