import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Matrix connection
    hostname: str = ""  # empty = https://matrix-client.matrix.org
    token: str = ""
    room: str = ""

    # Event settings
    notify_only_broken_pipelines: bool = True
    branches_to_be_notified: str = "default"
    # Comma-separated branch names or wildcards, e.g. "main,release/*"
    protected_branches: str = ""

    # Avatar download bound (seconds)
    avatar_timeout: float = 5.0
    # Comma-separated hosts allowed to resolve to private addresses,
    # e.g. a self-hosted GitLab serving avatars from the LAN
    avatar_allowed_hosts: str = ""

    # timestamp, counter or random
    message_id_strategy: str = "timestamp"

    # Shared secret expected in X-Gitlab-Token (empty = no check)
    webhook_secret: str = ""

    app_name: str = "Matrix Notifier"
    debug: bool = False

    model_config = {"env_file": ".env", "env_prefix": "MATRIX_", "extra": "ignore"}

    @field_validator("hostname")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @property
    def protected_branch_patterns(self) -> list[str]:
        return [b.strip() for b in self.protected_branches.split(",") if b.strip()]

    @property
    def avatar_allowed_host_list(self) -> list[str]:
        return [h.strip() for h in self.avatar_allowed_hosts.split(",") if h.strip()]


settings = Settings()

if not (settings.token and settings.room):
    logger.warning(
        "MATRIX_TOKEN or MATRIX_ROOM is not set; notifications will not be delivered."
    )
