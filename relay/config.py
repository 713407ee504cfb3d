from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from relay.core.types import DEFAULT_IMAGE_MODEL_ID, DEFAULT_TEXT_MODEL_ID

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class RelaySettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", env_prefix="relay_", env_file=".env")

    image_model: str = DEFAULT_IMAGE_MODEL_ID
    text_model: str = DEFAULT_TEXT_MODEL_ID
    cloudflare_account_id: str | None = None
    cloudflare_api_token: SecretStr | None = None
    api_base: str = "https://api.cloudflare.com/client/v4"
    # None leaves the hosting platform's limits in charge.
    request_timeout: float | None = None
    log_level: str = "INFO"

    @property
    def has_backend_credentials(self) -> bool:
        return bool(self.cloudflare_account_id and self.cloudflare_api_token)


@lru_cache
def get_settings() -> RelaySettings:
    return RelaySettings()


def configure_logging(level: str) -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger("relay").setLevel(level.upper())
