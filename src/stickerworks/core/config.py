"""Configuration management for the Stickerworks sticker generator.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the STICKERWORKS_
prefix, allowing endpoints and credentials to be changed without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (STICKERWORKS_* prefix)
2. .env file in the project root
3. Default values defined in StickerworksConfig

Example .env file:
    STICKERWORKS_HF_TOKEN=hf_xxxxxxxxxxxxxxxx
    STICKERWORKS_REMOVEBG_API_KEY=xxxxxxxxxxxxxxxx
    STICKERWORKS_STICKERS_DIR=~/Documents/Stickers
    STICKERWORKS_GENERATION_TIMEOUT=180

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time and
is used by the API entry point.  Library classes (store, clients, orchestrator)
never read it directly; they receive configuration values through their
constructors so tests can build isolated instances.

Usage Example
-------------
    from stickerworks.core.config import config

    print(config.generation_url)
    print(config.stickers_dir)

Network Timeouts
----------------
Neither remote service documents a latency bound.  The generation endpoint is
called with ``wait_for_model`` so a cold model can take minutes to respond,
hence the generous default.  Both values are in seconds and are applied to the
whole request by ``httpx``.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_GENERATION_URL = "https://router.huggingface.co/hf-inference/models/fofr/sdxl-emoji"
DEFAULT_REMOVEBG_URL = "https://api.remove.bg/v1.0/removebg"


class StickerworksConfig(BaseSettings):
    """Main configuration for the Stickerworks sticker generator.

    Attributes
    ----------
    Generation Endpoint:
        generation_url : str
            Text-to-image inference endpoint (JSON in, image bytes out)
        hf_token : str | None
            Bearer token for the inference endpoint (omitted when empty)
        style_suffix : str
            Fixed qualifier appended to every prompt
        generation_timeout : float
            Seconds to wait for the generation round trip

    Background Removal Endpoint:
        removebg_url : str
            Background-removal endpoint (multipart in, image bytes out)
        removebg_api_key : str | None
            Value of the ``X-API-Key`` header
        removal_timeout : float
            Seconds to wait for the removal round trip

    Storage:
        stickers_dir : Path
            Directory holding one PNG per generated sticker

    Export:
        sticker_max_dimension : int
            Longest side of an exported sticker, in pixels

    Server:
        server_host : str
            Bind address for the API server
        server_port : int
            Port for the API server (1024-65535)

    Notes
    -----
    - ``stickers_dir`` is created lazily by the image store, not here
    - Configuration is immutable after initialization
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STICKERWORKS_",
        case_sensitive=False,
    )

    # Generation endpoint
    generation_url: str = Field(
        default=DEFAULT_GENERATION_URL,
        description="Text-to-image inference endpoint",
    )
    hf_token: str | None = Field(
        default=None,
        description="Bearer token for the inference endpoint",
    )
    style_suffix: str = Field(
        default=" emoji",
        description="Qualifier appended to every prompt before generation",
    )
    generation_timeout: float = Field(
        default=120.0,
        description="Generation request timeout in seconds",
        gt=0,
    )

    # Background removal endpoint
    removebg_url: str = Field(
        default=DEFAULT_REMOVEBG_URL,
        description="Background-removal endpoint",
    )
    removebg_api_key: str | None = Field(
        default=None,
        description="API key sent in the X-API-Key header",
    )
    removal_timeout: float = Field(
        default=60.0,
        description="Background-removal request timeout in seconds",
        gt=0,
    )

    # Storage
    stickers_dir: Path = Field(
        default=Path.home() / "Documents" / "Stickers",
        description="Directory where generated stickers are persisted",
    )

    # Export
    sticker_max_dimension: int = Field(
        default=300,
        description="Longest side of an exported sticker in pixels",
        ge=16,
        le=2048,
    )

    # Server settings
    server_host: str = Field(
        default="127.0.0.1",
        description="API server bind address",
    )
    server_port: int = Field(
        default=7860,
        description="API server port",
        ge=1024,
        le=65535,
    )

    @field_validator("stickers_dir")
    @classmethod
    def _expand_stickers_dir(cls, value: Path) -> Path:
        """Expand ``~`` so env values like ``~/Documents/Stickers`` work."""
        return Path(value).expanduser()


# Global configuration instance used by the API entry point.
config = StickerworksConfig()
