"""
Configuration settings for the Job Board core.
Loads values from .env file and provides typed access.
"""

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Determine project root
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
env_path = os.path.join(project_root, ".env")
load_dotenv(env_path)


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # Remote backend (Firebase). Remote mode is on only when both are set.
    firebase_api_key: str = field(
        default_factory=lambda: os.getenv("FIREBASE_API_KEY", "").strip()
    )
    firebase_project_id: str = field(
        default_factory=lambda: os.getenv("FIREBASE_PROJECT_ID", "").strip()
    )

    # Network behaviour
    request_timeout: int = field(
        default_factory=lambda: int(os.getenv("REQUEST_TIMEOUT", "30"))
    )
    max_retries: int = field(
        default_factory=lambda: int(os.getenv("MAX_RETRIES", "3"))
    )
    poll_interval: float = field(
        default_factory=lambda: float(os.getenv("POLL_INTERVAL", "15"))
    )

    # Paths
    data_dir: str = field(
        default_factory=lambda: os.getenv("DATA_DIR", os.path.join(project_root, "data"))
    )
    db_path: str = field(
        default_factory=lambda: os.getenv("DB_PATH", "")
    )
    content_path: str = field(
        default_factory=lambda: os.getenv(
            "CONTENT_PATH", os.path.join(project_root, "config", "content.yaml")
        )
    )

    @property
    def remote_enabled(self) -> bool:
        return bool(self.firebase_api_key and self.firebase_project_id)

    @property
    def store_path(self) -> str:
        """Path of the sqlite file backing the local durable store."""
        return self.db_path or os.path.join(self.data_dir, "job_board.db")


# Singleton instance
settings = Settings()
