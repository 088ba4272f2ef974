"""Settings for the authorization flows.

Defaults target Dropbox-style endpoints. Every value can be overridden
through ``CLOUDAUTH_*`` environment variables, optionally loaded from a
``.env`` file.
"""

from __future__ import annotations

import os

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError

from cloudauth.models.errors import ConfigurationError

ENV_PREFIX = "CLOUDAUTH_"


def loopback_redirect_uri(port: int) -> str:
    return f"http://localhost:{port}/callback"


class AuthSettings(BaseModel):
    client_id: str = ""
    authorize_endpoint: str = "https://www.dropbox.com/oauth2/authorize"
    token_endpoint: str = "https://api.dropboxapi.com/oauth2/token"
    callback_host: str = "127.0.0.1"
    callback_port: int = Field(default=8742, ge=0, le=65535)
    mobile_redirect_uri: str = "cloudauth://oauth/callback"
    callback_timeout: float = Field(default=300.0, gt=0)  # 5 minutes
    http_timeout: float = Field(default=30.0, gt=0)

    @property
    def desktop_redirect_uri(self) -> str:
        """Loopback redirect for the configured port.

        With port 0 the desktop flow binds an ephemeral port and uses
        ``loopback_redirect_uri`` with the bound port instead.
        """
        return loopback_redirect_uri(self.callback_port)

    @classmethod
    def from_env(cls, dotenv: bool = True, **overrides: object) -> AuthSettings:
        """Build settings from the environment.

        Args:
            dotenv: Load the nearest ``.env`` file from the working directory
                first (existing variables win)
            **overrides: Explicit values taking precedence over the environment

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))

        values: dict[str, object] = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None:
                values[name] = raw
        values.update(overrides)

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid authorization settings: {e}") from e
