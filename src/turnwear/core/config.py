"""Configuration management for Turnwear.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the TURNWEAR_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (TURNWEAR_* prefix)
2. .env file in the project root
3. Default values defined in TurnwearConfig

Example .env file:
    TURNWEAR_GATEWAY_API_KEY=sk-...
    TURNWEAR_SUPABASE_URL=https://xyz.supabase.co
    TURNWEAR_SUPABASE_KEY=service-role-key
    TURNWEAR_PER_ANGLE_TIMEOUT=90

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
This ensures a single source of truth for all configuration values across
the application.

Usage Example
-------------
    from turnwear.core.config import config

    print(config.generation_model)
    print(config.storage_bucket)

Generation Gateway
------------------
Every angle of a turntable is one chat-completions call to the image gateway.
The calls are strictly sequential, so the worst-case wall time of a request
is roughly ``8 * per_angle_timeout``.  Keep the timeout generous: image
models routinely take 20-40 seconds per render.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TurnwearConfig(BaseSettings):
    """Main configuration for Turnwear.

    Values are loaded from environment variables with the TURNWEAR_ prefix,
    with fallback to defaults defined here.

    Attributes
    ----------
    Generation Gateway:
        gateway_url : str
            Chat-completions endpoint of the image generation gateway
        gateway_api_key : str | None
            Bearer token for the gateway (generation fails without it)
        generation_model : str
            Model identity sent with every generation request
        per_angle_timeout : float
            Deadline in seconds for a single angle's whole generation call,
            from sending the request to the last byte of the response

    Supabase:
        supabase_url : str | None
            Project URL of the Supabase instance
        supabase_key : str | None
            API key used by the backend (service role or anon key)
        storage_bucket : str
            Bucket that holds rendered frames
        designs_table : str
            Table holding one row per outfit design
        frames_table : str
            Table holding one row per persisted frame
        signed_url_ttl : int
            Lifetime in seconds of gallery signed URLs

    Input Limits:
        max_reference_image_bytes : int
            Largest accepted decoded reference image

    Server:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn (1024-65535)
        log_level : Literal["DEBUG", "INFO", "WARNING", "ERROR"]
            Root log level applied by the API entry point

    Examples
    --------
    Create a custom configuration:

        >>> custom_config = TurnwearConfig(
        ...     gateway_api_key="test-key",
        ...     per_angle_timeout=30.0,
        ... )

    Use the global configuration instance:

        >>> from turnwear.core.config import config
        >>> print(config.storage_bucket)
        'outfit-images'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TURNWEAR_",
        case_sensitive=False,
    )

    # Generation gateway
    gateway_url: str = Field(
        default="https://ai.gateway.lovable.dev/v1/chat/completions",
        description="Chat-completions endpoint of the image generation gateway",
    )
    gateway_api_key: str | None = Field(
        default=None,
        description="Bearer token for the image generation gateway",
    )
    generation_model: str = Field(
        default="google/gemini-2.5-flash-image-preview",
        description="Model identity sent with every generation request",
    )
    per_angle_timeout: float = Field(
        default=120.0,
        description="Deadline in seconds for one angle's whole generation call",
        gt=0,
    )

    # Supabase
    supabase_url: str | None = Field(
        default=None,
        description="Supabase project URL",
    )
    supabase_key: str | None = Field(
        default=None,
        description="Supabase API key used by the backend",
    )
    storage_bucket: str = Field(
        default="outfit-images",
        description="Storage bucket for rendered frames",
    )
    designs_table: str = Field(
        default="outfit_designs",
        description="Table holding outfit design rows",
    )
    frames_table: str = Field(
        default="outfit_frames",
        description="Table holding frame metadata rows",
    )
    signed_url_ttl: int = Field(
        default=3600,
        description="Lifetime in seconds of gallery signed URLs",
        ge=60,
    )

    # Input limits
    max_reference_image_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Largest accepted decoded reference image in bytes",
        gt=0,
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level",
    )


# Global configuration instance
# Loads values from environment variables (TURNWEAR_* prefix) and .env file.
config = TurnwearConfig()
