from pydantic_settings import BaseSettings
from pathlib import Path
from planner.constants import PLACEMENT_TIMEOUT_SECONDS

# Get the project root directory (parent of planner folder)
PROJECT_ROOT = Path(__file__).parent.parent

class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""
    database_url: str = "sqlite:///./study_planner.db"

    # Placement provider: "ollama", "claude" or "none" (deterministic only)
    ai_provider: str = "ollama"

    # Ollama settings (for local development)
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2:latest"

    # Claude API settings (for production)
    claude_api_key: str = ""
    claude_model: str = "claude-3-5-haiku-20241022"

    # Hard budget for one placement proposal, in seconds
    placement_timeout_seconds: float = PLACEMENT_TIMEOUT_SECONDS

    log_level: str = "INFO"

    class Config:
        env_file = str(PROJECT_ROOT / ".env")
        extra = "ignore"

settings = Settings()
