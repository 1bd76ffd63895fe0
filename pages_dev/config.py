"""
Gateway options, from code or from the environment.
"""
import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator

ENV_PROXY_PORT = "PAGES_DEV_PROXY_PORT"
ENV_DIRECTORY = "PAGES_DEV_DIRECTORY"
ENV_PROXY_TIMEOUT = "PAGES_DEV_PROXY_TIMEOUT"
ENV_WATCH = "PAGES_DEV_WATCH"


class GatewayOptions(BaseModel):
    """What the gateway serves: a proxied local port, a directory, or (misconfigured) neither."""
    proxy_port: Optional[int] = Field(None, ge=1, le=65535)
    directory: Optional[str] = None
    proxy_timeout: float = Field(30.0, gt=0)
    watch: bool = True

    @field_validator("directory")
    @classmethod
    def absolute_directory(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return os.path.abspath(os.path.expanduser(value))

    @property
    def configured(self) -> bool:
        return bool(self.proxy_port) or self.directory is not None

    @classmethod
    def from_env(cls, **overrides) -> "GatewayOptions":
        """Build options from PAGES_DEV_* variables; keyword arguments win."""
        values = {}
        if os.getenv(ENV_PROXY_PORT):
            values["proxy_port"] = os.getenv(ENV_PROXY_PORT)
        if os.getenv(ENV_DIRECTORY):
            values["directory"] = os.getenv(ENV_DIRECTORY)
        if os.getenv(ENV_PROXY_TIMEOUT):
            values["proxy_timeout"] = os.getenv(ENV_PROXY_TIMEOUT)
        if os.getenv(ENV_WATCH):
            values["watch"] = os.getenv(ENV_WATCH)
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
