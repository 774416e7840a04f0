# Selection-capture channel.
# Created: 2026-10-13
#
# The context-menu side publishes the text the user selected; the chat shell
# subscribes and copies it into its input field.  One active subscriber at a
# time, and a value is only delivered when it differs from the last one.

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

SelectionHandler = Callable[[str], None]


class Subscription:
    """Handle returned by ``SelectionChannel.subscribe()``."""

    def __init__(self, channel: SelectionChannel, handler: SelectionHandler):
        self._channel = channel
        self.handler = handler

    @property
    def active(self) -> bool:
        return self._channel._subscription is self

    def cancel(self) -> None:
        self._channel.unsubscribe(self)


class SelectionChannel:
    """Publish-on-change channel with a single subscriber."""

    def __init__(self) -> None:
        self._value: str | None = None
        self._subscription: Subscription | None = None

    @property
    def value(self) -> str | None:
        return self._value

    def subscribe(self, handler: SelectionHandler) -> Subscription:
        """Register *handler*, replacing any previous subscriber."""
        if self._subscription is not None:
            logger.debug("Replacing previous selection subscriber")
        self._subscription = Subscription(self, handler)
        return self._subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if self._subscription is subscription:
            self._subscription = None

    def publish(self, text: str) -> bool:
        """Store *text* and notify the subscriber if it changed.

        Returns True when a subscriber was notified.
        """
        if text == self._value:
            return False
        self._value = text
        if self._subscription is None:
            return False
        self._subscription.handler(text)
        return True
