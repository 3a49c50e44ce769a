"""
Configuration module for Cheatsheet AI.

This module handles loading and validating configuration from environment variables and CLI arguments.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

import click


DEFAULT_GEMINI_MODEL = "gemini-2.5-pro-exp-03-25"
DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class LogLevel(str, Enum):
    """Log levels for the application."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass
class AppConfig:
    """Application configuration for Cheatsheet AI."""

    # Required settings
    gemini_api_key: Optional[str]

    # Optional settings with defaults
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_api_base: str = DEFAULT_API_BASE
    output_dir: str = "output"
    temp_repo_dir: str = "repo_temp"
    sources_dir: str = "sources"
    log_level: LogLevel = LogLevel.INFO

    # External tools
    git_executable: str = "git"
    files_to_prompt_executable: str = "files-to-prompt"

    debug: bool = False

    @classmethod
    def from_env_and_args(
        cls,
        output_dir: Optional[str] = None,
        sources_dir: Optional[str] = None,
        debug: bool = False,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "AppConfig":
        """Create configuration from environment variables and CLI arguments.

        CLI arguments take precedence over environment variables.

        Args:
            output_dir: Directory for generated cheatsheets
            sources_dir: Directory bare source filenames are resolved against
            debug: Enable debug mode
            environ: Environment to read from (defaults to os.environ)

        Returns:
            AppConfig: Application configuration
        """
        env = os.environ if environ is None else environ

        # Empty strings count as unset, the same way the model default applies
        env_output_dir = env.get("OUTPUT_DIR") or "output"
        env_sources_dir = env.get("SOURCES_DIR") or "sources"
        env_log_level = (env.get("LOG_LEVEL") or LogLevel.INFO.value).upper()
        try:
            log_level = LogLevel(env_log_level)
        except ValueError:
            click.echo(
                f"⚠️ Unknown LOG_LEVEL '{env_log_level}', using {LogLevel.INFO.value} "
                f"(expected one of: {', '.join(level.value for level in LogLevel)})"
            )
            log_level = LogLevel.INFO

        return cls(
            gemini_api_key=env.get("GEMINI_API_KEY") or None,
            gemini_model=env.get("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL,
            gemini_api_base=env.get("GEMINI_API_BASE") or DEFAULT_API_BASE,
            output_dir=output_dir or env_output_dir,
            temp_repo_dir=env.get("TEMP_REPO_DIR") or "repo_temp",
            sources_dir=sources_dir or env_sources_dir,
            log_level=log_level,
            git_executable=env.get("GIT_EXECUTABLE_PATH") or "git",
            files_to_prompt_executable=env.get("FILES_TO_PROMPT_PATH") or "files-to-prompt",
            debug=debug,
        )

    def validate(self) -> bool:
        """Validate the configuration.

        Returns:
            bool: True if configuration is valid, False otherwise
        """
        missing = []

        if not self.gemini_api_key:
            missing.append("Gemini API key (GEMINI_API_KEY)")

        if not self.output_dir:
            missing.append("Output directory (OUTPUT_DIR)")

        if missing:
            click.echo("❌ Missing required configuration:")
            for field in missing:
                click.echo(f"   - {field}")
            return False

        if self.debug and self.log_level != LogLevel.DEBUG:
            self.log_level = LogLevel.DEBUG
            click.echo("🔍 Debug mode enabled")

        return True
