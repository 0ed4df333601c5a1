"""
Application settings and configuration
"""

import os
from pathlib import Path
from dotenv import load_dotenv
from typing import Optional

# Load environment variables from .env file
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings:
    """Application settings loaded from environment variables"""

    # Encryption
    ENCRYPTION_SECRET: str = os.getenv("ENCRYPTION_SECRET", "worknotes-encryption-key")

    # Supabase
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "")
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = os.getenv("SUPABASE_SERVICE_ROLE_KEY", None)

    # Local storage
    LOCAL_STORAGE_PATH: str = os.getenv(
        "LOCAL_STORAGE_PATH",
        str(Path.home() / ".worknotes" / "local_storage.json"),
    )

    # Remote timeouts (seconds)
    REMOTE_FETCH_TIMEOUT: float = float(os.getenv("REMOTE_FETCH_TIMEOUT", "0.8"))
    REMOTE_PERSIST_TIMEOUT: float = float(os.getenv("REMOTE_PERSIST_TIMEOUT", "10"))

    # Application
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = os.getenv("LOG_DIR", str(Path(__file__).parent.parent.parent / "logs"))
    WEB_PORT: int = int(os.getenv("WEB_PORT", "8000"))

    @classmethod
    def validate_remote(cls) -> bool:
        """Validate that the remote store settings are present"""
        required = {
            "SUPABASE_URL": cls.SUPABASE_URL,
            "SUPABASE_ANON_KEY": cls.SUPABASE_ANON_KEY,
        }

        missing = [name for name, value in required.items() if not value]

        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        return True

    @classmethod
    def remote_enabled(cls) -> bool:
        """Whether a remote store is configured"""
        return bool(cls.SUPABASE_URL and cls.SUPABASE_ANON_KEY)


# Global settings instance
settings = Settings()
