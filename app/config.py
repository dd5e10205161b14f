import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./fhir_analytics.db")
    PHI_ENCRYPTION_KEY: str = os.getenv("PHI_ENCRYPTION_KEY", "")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Last pasted NDJSON is kept for 24 hours by default
    INPUT_STORE_TTL_SECONDS: int = int(os.getenv("INPUT_STORE_TTL_SECONDS", "86400"))

    PREVIEW_MAX_RECORDS: int = int(os.getenv("PREVIEW_MAX_RECORDS", "5"))
    EXPORT_SAMPLE_SIZE: int = int(os.getenv("EXPORT_SAMPLE_SIZE", "5"))
    GENERIC_SAMPLE_SIZE: int = int(os.getenv("GENERIC_SAMPLE_SIZE", "1000"))


settings = Settings()
