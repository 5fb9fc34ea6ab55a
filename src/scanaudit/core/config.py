"""Configuration management for the audit workflow.

Loads configuration from environment variables using Pydantic models.
Provides sensible defaults for all settings while allowing override via
environment.

Provides:
- Config: Pydantic model with all application settings
- load_config: Factory function to create Config instance
"""

import os
from pathlib import Path

from pydantic import BaseModel, Field


def _default_preferences_path() -> str:
    return str(Path.home() / ".scanaudit")


class Config(BaseModel):
    """Application configuration loaded from environment.

    Attributes:
        api_key: Scanner API key used to fetch matched file contents
            (SCANAUDIT_API_KEY). Empty means metadata-only mode unless a key
            is stored in the preference file.
        preferences_path: Location of the preference file
        github_token: Optional token for GitHub API lookups (GITHUB_TOKEN)
        branch_lookup_timeout: Seconds allowed per default-branch lookup
        fallback_revision: Revision used when a default-branch lookup fails
        content_timeout: Seconds allowed per file content fetch
    """

    # API Keys
    api_key: str = Field(default_factory=lambda: os.getenv("SCANAUDIT_API_KEY", ""))
    github_token: str = Field(default_factory=lambda: os.getenv("GITHUB_TOKEN", ""))

    # Preferences
    preferences_path: str = Field(
        default_factory=lambda: os.getenv("SCANAUDIT_PREFERENCES", _default_preferences_path())
    )

    # Remote lookups
    branch_lookup_timeout: float = Field(default=2.0)
    fallback_revision: str = Field(default="master")
    content_timeout: float = Field(default=30.0)


def load_config() -> Config:
    """Load configuration from environment.

    Creates a Config instance with values from environment variables,
    falling back to defaults for any unset values.

    Returns:
        Populated Config instance
    """
    return Config()
