"""Matrix notifier: classify, filter, render and deliver project events."""

import logging
from typing import Any, Callable, Iterable, Optional

import httpx

from notifier.channels.avatar import relay_avatar
from notifier.channels.classify import classify
from notifier.channels.delivery import deliver
from notifier.channels.endpoint import (
    MESSAGE_ID_STRATEGIES,
    MessageIdFactory,
    build_base_url,
    final_url,
    message_id_factory,
)
from notifier.channels.filters import should_notify
from notifier.channels.matrix import format_matrix, render
from notifier.channels.validate import validate_matrix_config
from notifier.reporting import Reporter, log_reporter
from notifier.security import safe_http_client

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], httpx.AsyncClient]


class MatrixNotifier:
    """
    Relays project events to one Matrix room.

    The base send URL is derived whenever the connection settings change and
    is the only state kept between ``notify`` calls.
    """

    def __init__(
        self,
        *,
        hostname: Optional[str] = None,
        token: Optional[str] = None,
        room: Optional[str] = None,
        notify_only_broken_pipelines: bool = True,
        branches_to_be_notified: str = "default",
        protected_branches: Iterable[str] = (),
        avatar_timeout: float = 5.0,
        avatar_allowed_hosts: Iterable[str] = (),
        next_message_id: Optional[MessageIdFactory] = None,
        client_factory: Optional[ClientFactory] = None,
        fetch_client_factory: Optional[ClientFactory] = None,
        reporter: Reporter = log_reporter,
    ):
        self.notify_only_broken_pipelines = notify_only_broken_pipelines
        self.branches_to_be_notified = branches_to_be_notified
        self.protected_branches = tuple(protected_branches)
        self.avatar_timeout = avatar_timeout
        self.avatar_allowed_hosts = tuple(avatar_allowed_hosts)
        self.next_message_id = next_message_id or message_id_factory("timestamp")
        self.client_factory = client_factory or (lambda: httpx.AsyncClient(timeout=15))
        self.fetch_client_factory = fetch_client_factory or (
            lambda: safe_http_client(
                timeout=avatar_timeout, allowed_hosts=self.avatar_allowed_hosts
            )
        )
        self.reporter = reporter
        self.configure(hostname=hostname, token=token, room=room)

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "MatrixNotifier":
        """
        Build a notifier from ``notifier.config.Settings``.

        Invalid settings are logged and leave the notifier unconfigured, so
        every event is dropped until ``configure`` is called.
        """
        token = settings.token
        err = validate_matrix_config(settings.model_dump())
        if err:
            logger.warning("Matrix integration misconfigured, notifications disabled: %s", err)
            token = None

        strategy = settings.message_id_strategy
        if strategy not in MESSAGE_ID_STRATEGIES:
            strategy = "timestamp"

        return cls(
            hostname=settings.hostname,
            token=token,
            room=settings.room,
            notify_only_broken_pipelines=settings.notify_only_broken_pipelines,
            branches_to_be_notified=settings.branches_to_be_notified,
            protected_branches=settings.protected_branch_patterns,
            avatar_timeout=settings.avatar_timeout,
            avatar_allowed_hosts=settings.avatar_allowed_host_list,
            next_message_id=message_id_factory(strategy),
            **kwargs,
        )

    def configure(
        self,
        *,
        hostname: Optional[str],
        token: Optional[str],
        room: Optional[str],
    ) -> None:
        """Store connection settings and recompute the cached send URL."""
        self.hostname = hostname
        self.token = token
        self.room = room
        self.base_url = build_base_url(hostname, token, room)

    @property
    def is_configured(self) -> bool:
        return self.base_url is not None

    async def notify(self, event: Any) -> Optional[httpx.Response]:
        """
        Deliver one event to the configured room.

        Returns the Matrix response on success and None otherwise. Failures
        are reported and logged, never raised.
        """
        try:
            return await self._notify(event)
        except Exception as e:
            logger.error("Failed to notify Matrix room %s: %s", self.room, e, exc_info=True)
            return None

    async def _notify(self, event: Any) -> Optional[httpx.Response]:
        payload = classify(event)

        if not should_notify(
            payload,
            notify_only_broken_pipelines=self.notify_only_broken_pipelines,
            branches_to_be_notified=self.branches_to_be_notified,
            protected_branches=self.protected_branches,
        ):
            logger.debug("Skipping %s event by integration settings", payload.kind)
            return None

        # Read once so a concurrent configure() cannot mix two targets
        base_url, token, hostname = self.base_url, self.token, self.hostname
        if base_url is None:
            logger.info("Matrix target not configured, dropping %s event", payload.kind)
            return None

        async with self.client_factory() as client:
            async with self.fetch_client_factory() as fetch_client:
                avatar_ref = await relay_avatar(
                    payload.user_avatar,
                    hostname=hostname,
                    token=token,
                    client=client,
                    fetch_client=fetch_client,
                    timeout=self.avatar_timeout,
                    reporter=self.reporter,
                )

            rendered = render(payload, avatar_ref)
            url = final_url(base_url, self.next_message_id)
            return await deliver(client, format_matrix(url, rendered, token), self.reporter)
