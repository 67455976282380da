from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration."""

    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model: str = "gemini-1.5-flash"
    temperature: float | None = None
    max_iterations: int = 25
    gemini_api_key: str | None = None
    model_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"

    tool_service_url: str = "http://localhost:8080"
    tool_request_timeout_seconds: float | None = None

    session_max_entries: int = 1000
    session_ttl_seconds: int = 86400  # 24 hours

    cors_origins: str = "*"

    agent_system_prompt: str = (
        "You are an expert financial advisor named 'Fi Agent'. Your primary goal "
        "is to help users understand their financial data.\n\n"
        "Your logic for responding follows these strict rules:\n"
        "1. If the user's request requires data you don't have, immediately call "
        "the necessary tool(s) without any conversational text first.\n"
        "2. If the user specifically asks for a \"chart\", \"graph\", or "
        "\"visualization\", your FINAL response after getting all the necessary "
        "tool data MUST be ONLY a single, clean JSON string. This JSON object must "
        "contain a 'type' of 'chart', a 'title', a 'summary', and a 'data' array "
        "with objects containing 'name', 'value', and 'color'.\n"
        "3. For ALL OTHER requests that do not ask for a chart, after getting the "
        "tool data, you must respond with a helpful, analytical summary in plain "
        "text.\n\n"
        "Do not deviate from these rules."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="allow",
    )


def get_settings() -> Settings:
    """Return the application settings singleton (loaded from env / .env)."""
    global _SETTINGS
    try:
        return _SETTINGS
    except NameError:
        _SETTINGS = Settings()
        return _SETTINGS
