"""
Environment-driven settings.

Only ``GITHUB_TOKEN`` is needed in practice; every other value is read from a
``WEBI_``-prefixed variable and has a default that targets the public
webinstall/webi-installers repository.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import Field, ValidationError, ValidationInfo, ValidatorFunctionWrapHandler, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "GITHUB_TOKEN"
ENV_PREFIX = "WEBI_"


class Settings(BaseSettings):
    """
    Settings for the catalog pipeline and the HTTP service.
    """

    github_token: Optional[str] = Field(
        default=None,
        validation_alias=TOKEN_ENV_VAR,
        description="Token sent as a bearer credential for the higher GitHub rate limit.",
    )
    github_api_url: str = Field(default="https://api.github.com")
    repo_owner: str = Field(default="webinstall")
    repo_name: str = Field(default="webi-installers")
    repo_branch: str = Field(default="main")
    http_timeout: float = Field(default=30.0, gt=0)

    tree_ttl_seconds: float = Field(default=24 * 60 * 60, gt=0)
    file_ttl_seconds: float = Field(default=24 * 60 * 60, gt=0)
    file_cache_size: int = Field(default=1000, ge=1)
    catalog_ttl_seconds: float = Field(default=30 * 60, gt=0)

    batch_size: int = Field(default=10, ge=1, description="README fetches issued concurrently per batch.")
    batch_delay_seconds: float = Field(default=0.1, ge=0, description="Pause between batches.")
    warm_catalog: bool = Field(default=True, description="Populate the catalog once at startup.")

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("github_token", mode="before")
    @classmethod
    def _blank_token_is_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator(
        "github_api_url",
        "repo_owner",
        "repo_name",
        "repo_branch",
        "http_timeout",
        "tree_ttl_seconds",
        "file_ttl_seconds",
        "file_cache_size",
        "catalog_ttl_seconds",
        "batch_size",
        "batch_delay_seconds",
        "warm_catalog",
        mode="wrap",
    )
    @classmethod
    def _invalid_value_uses_default(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> Any:
        # A bad value is logged and replaced by the default, never fatal.
        try:
            return handler(value)
        except ValidationError:
            default = cls.model_fields[info.field_name].default
            logger.warning(
                f"Ignoring invalid {ENV_PREFIX}{info.field_name.upper()}={value!r}; using default {default!r}"
            )
            return default

    @property
    def homepage_base(self) -> str:
        return f"https://github.com/{self.repo_owner}/{self.repo_name}/tree/{self.repo_branch}"
