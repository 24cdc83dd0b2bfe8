"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use MDSTREAM_ prefix (e.g., MDSTREAM_IDLE_FLUSH_SECONDS=0.5).

Settings can also be loaded from a .env file in the project root. Components
never read the singleton themselves: entry points hand an AppSettings value
to the Renderer, Assembler, Theme and Session at construction.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use MDSTREAM_ prefix.

    Examples:
        MDSTREAM_THEME_MODE=dark
        MDSTREAM_IDLE_FLUSH_SECONDS=0.5
        MDSTREAM_LINK_MESSAGE_HANDLER=linkClicked
    """

    model_config = SettingsConfigDict(
        env_prefix="MDSTREAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Stream configuration
    chunk_size: int = Field(
        default=1024,
        gt=0,
        description="Number of bytes requested from the input source per read",
    )

    idle_flush_seconds: float = Field(
        default=0.25,
        ge=0.0,
        description="Idle period after which a boundary-safe buffer is re-rendered "
        "even though no newline was completed",
    )

    # Appearance configuration
    theme_mode: Literal["light", "dark", "system"] = Field(
        default="system",
        description="Colour scheme of the generated document",
    )

    font_family: Literal["system", "menlo", "monaco", "helvetica"] = Field(
        default="system",
        description="Body font family of the generated document",
    )

    font_size: float = Field(
        default=14.0,
        ge=8.0,
        le=72.0,
        description="Body font size in pixels",
    )

    pygments_style_light: str = Field(
        default="default",
        description="Pygments style used for code blocks in light mode",
    )

    pygments_style_dark: str = Field(
        default="monokai",
        description="Pygments style used for code blocks in dark mode",
    )

    # Rendering configuration
    highlight_code: bool = Field(
        default=True,
        description="Syntax highlight fenced blocks whose language Pygments knows",
    )

    link_message_handler: str = Field(
        default="linkClicked",
        pattern=r"^[A-Za-z_][A-Za-z0-9_]*$",
        description="Name of the host message handler that receives activated external links",
    )

    document_title: str = Field(
        default="Piped Input",
        description="Title used for documents read from stdin",
    )


# Singleton instance - import this in entry points only
appsettings = AppSettings()
