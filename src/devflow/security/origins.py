"""Origin allow-list for the relay.

An ``Origin`` is admitted when it is one of the configured exact origins, a
browser-extension origin (optionally pinned to known extension ids), or a
localhost origin on any port.  Requests without an ``Origin`` header come from
non-browser callers and are admitted unless ``allow_missing`` is False.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from devflow.config import Settings

EXTENSION_SCHEME = "chrome-extension://"

LOCALHOST_ORIGIN_REGEX = r"^https?://(localhost|127\.0\.0\.1|\[::1\])(:\d+)?$"
EXTENSION_ORIGIN_REGEX = r"^chrome-extension://[a-z0-9]+$"

_LOCALHOST_RE = re.compile(LOCALHOST_ORIGIN_REGEX)
_EXTENSION_RE = re.compile(EXTENSION_ORIGIN_REGEX)


class OriginPolicy:
    """Decides which browser origins may call the relay."""

    def __init__(
        self,
        origins: Iterable[str] = (),
        extension_ids: Iterable[str] = (),
        allow_missing: bool = True,
    ):
        self.origins = frozenset(o.rstrip("/") for o in origins if o)
        self.extension_ids = frozenset(extension_ids)
        self.allow_missing = allow_missing

    @classmethod
    def from_settings(cls, settings: Settings) -> OriginPolicy:
        return cls(
            origins=[settings.deployment_origin, *settings.allowed_origins],
            extension_ids=settings.extension_ids,
            allow_missing=settings.allow_missing_origin,
        )

    def is_allowed(self, origin: str | None) -> bool:
        if not origin:
            return self.allow_missing
        origin = origin.rstrip("/")
        if origin in self.origins:
            return True
        if _EXTENSION_RE.match(origin):
            if not self.extension_ids:
                return True
            return origin[len(EXTENSION_SCHEME):] in self.extension_ids
        return bool(_LOCALHOST_RE.match(origin))

    @property
    def cors_origin_regex(self) -> str:
        """Regex handed to ``CORSMiddleware`` for the pattern-based origins."""
        if self.extension_ids:
            ids = "|".join(re.escape(i) for i in sorted(self.extension_ids))
            extension = rf"^chrome-extension://({ids})$"
        else:
            extension = EXTENSION_ORIGIN_REGEX
        return f"{LOCALHOST_ORIGIN_REGEX}|{extension}"
