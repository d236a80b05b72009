"""
Configuration module for Order Parser.

Handles settings for the Gemini extraction service, upload limits,
and application-wide defaults.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass
class GeminiConfig:
    """Configuration for the Gemini generateContent REST API."""
    base_url: str = field(
        default_factory=lambda: os.getenv(
            "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
        )
    )
    model: str = field(default_factory=lambda: os.getenv("GEMINI_MODEL", "gemini-3-flash-preview"))
    api_key: str = field(default_factory=lambda: os.getenv("GEMINI_API_KEY", ""))
    temperature: float = 0.1  # Low temperature for deterministic extraction
    timeout: int = field(default_factory=lambda: _env_int("GEMINI_TIMEOUT", 120))  # Seconds
    max_retries: int = 3

    def validate_api_key(self, api_key: Optional[str] = None) -> tuple[bool, str]:
        """Validate a Gemini API key looks usable."""
        key = self.api_key if api_key is None else api_key
        if not key:
            return False, (
                "Gemini API key not set.\n"
                "Set it via environment variable: GEMINI_API_KEY=your_key\n"
                "Or enter it on the start screen."
            )
        if len(key) < 20:
            return False, "Gemini API key appears to be invalid (too short)"
        return True, "Gemini API key is configured"

    def endpoint(self) -> str:
        """URL of the generateContent call for the configured model."""
        return f"{self.base_url.rstrip('/')}/models/{self.model}:generateContent"


@dataclass
class AppConfig:
    """Main application configuration."""
    gemini: GeminiConfig = field(default_factory=GeminiConfig)

    # Upload settings
    max_file_size_mb: int = 20
    max_image_size: int = 2048  # Longest edge in pixels before downscaling
    accepted_media_types: tuple[str, ...] = (
        "application/pdf",
        "image/jpeg",
        "image/png",
        "image/webp",
    )

    # Line item defaults
    default_unit: str = "個"
    unknown_item_name: str = "不明な商品"

    # Export settings
    export_dir: Path = field(default_factory=lambda: Path.home() / "Downloads")

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig()
    return _config


def update_config(**kwargs) -> AppConfig:
    """Update configuration with new values."""
    config = get_config()
    for key, value in kwargs.items():
        if hasattr(config, key):
            setattr(config, key, value)
    return config


def reset_config() -> None:
    """Drop the global configuration so the next get_config() rebuilds it."""
    global _config
    _config = None
