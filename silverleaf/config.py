"""
Configuration management for the Silver Leaf portal backend.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Base paths
BASE_DIR = Path(__file__).parent.parent
PACKAGE_DIR = Path(__file__).parent

# Flat-file dataset (courses, assignments, rubrics, students, submissions...)
DATASET_DIR = os.getenv("DATASET_DIR", str(BASE_DIR / "dataset"))

# Provider -> environment variable holding its key
API_KEY_VARS = {
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

# Admin login (demo credentials unless overridden)
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@university.edu")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")

# Server configuration
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
DEBUG = os.getenv("FLASK_DEBUG", "0") == "1"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Upload handling
SUPPORTED_UPLOAD_TYPES = ['.pdf', '.docx', '.doc', '.txt']
MAX_UPLOAD_BYTES = 16 * 1024 * 1024


def get_api_key(provider: str) -> str:
    """Read a provider key at call time so a rotated .env or test env is honored."""
    var = API_KEY_VARS.get(provider, "")
    return os.getenv(var, "") if var else ""


def get_jwt_secret() -> str:
    """Token signing secret; empty means the API runs without auth."""
    return os.getenv("PORTAL_JWT_SECRET", "")


class Config:
    """Model invocation settings shared by the chat and analyzer routes."""

    def __init__(self):
        self.default_model = os.getenv("LLM_MODEL", "gemini-flash")
        self.llm_timeout = float(os.getenv("LLM_TIMEOUT", "45"))
        self.llm_max_retries = int(os.getenv("LLM_MAX_RETRIES", "3"))
        self.llm_retry_delay = float(os.getenv("LLM_RETRY_DELAY", "2"))


# Global config instance
config = Config()
