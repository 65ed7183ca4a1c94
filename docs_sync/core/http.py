"""HTTP access to the GitHub contents API with throttling-aware retries."""

import asyncio
import json
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import aiohttp

from docs_sync.core.config import Settings

logger = logging.getLogger(__name__)

GITHUB_JSON_ACCEPT = "application/vnd.github.v3+json"

# Statuses GitHub uses to signal throttling
THROTTLE_STATUSES = {429}


@dataclass
class HttpResponse:
    """A fully read response. The body is kept as raw bytes."""

    url: str
    status: int
    body: bytes
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        """Body decoded as UTF-8. Raises UnicodeDecodeError on invalid bytes."""
        return self.body.decode("utf-8")

    def json(self) -> Any:
        return json.loads(self.text)


def build_headers(settings: Settings) -> Dict[str, str]:
    """Default headers sent on every request."""
    headers = {"User-Agent": settings.user_agent}
    if settings.github_token is not None and settings.github_token.get_secret_value():
        headers["Authorization"] = f"Bearer {settings.github_token.get_secret_value()}"
    return headers


def create_session(settings: Settings) -> aiohttp.ClientSession:
    """Create a client session configured from settings.

    The caller owns the session and must close it.
    """
    timeout = aiohttp.ClientTimeout(total=settings.request_timeout)
    return aiohttp.ClientSession(timeout=timeout, headers=build_headers(settings))


def header_value(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup."""
    name = name.lower()
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def is_throttled(status: int, headers: Mapping[str, str]) -> bool:
    """Whether a response is a rate-limit rejection worth retrying."""
    if status in THROTTLE_STATUSES:
        return True
    return status == 403 and str(header_value(headers, "X-RateLimit-Remaining")).strip() == "0"


class GitHubClient:
    """Thin wrapper over an aiohttp session that retries throttled requests.

    Retries use exponential backoff with full jitter, honouring ``Retry-After``
    when GitHub sends one. Non-throttling failures are returned to the caller
    untouched so it can decide how fatal they are.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        backoff_factor: float = 2.0,
        max_delay: float = 30.0,
        headers: Optional[Mapping[str, str]] = None,
    ):
        self.session = session
        self.headers = dict(headers or {})
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay

    @classmethod
    def from_settings(cls, session: aiohttp.ClientSession, settings: Settings) -> "GitHubClient":
        return cls(
            session,
            max_retries=settings.max_retries,
            initial_delay=settings.retry_initial_delay,
            backoff_factor=settings.retry_backoff_factor,
            max_delay=settings.retry_max_delay,
            headers=build_headers(settings),
        )

    def _backoff_delay(self, attempt: int, retry_after: Optional[str] = None) -> float:
        if retry_after:
            try:
                return min(float(retry_after), self.max_delay)
            except ValueError:
                pass
        cap = min(self.max_delay, self.initial_delay * (self.backoff_factor**attempt))
        return random.uniform(0, cap)

    async def get(self, url: str, accept: Optional[str] = None) -> HttpResponse:
        """GET ``url`` and read the whole body.

        The client's default headers are sent on every request, so an injected
        session still carries the configured token and User-Agent.
        """
        headers = dict(self.headers)
        if accept:
            headers["Accept"] = accept
        headers = headers or None

        for attempt in range(self.max_retries + 1):  # +1 for initial attempt
            try:
                async with self.session.get(url, headers=headers) as response:
                    body = await response.read()
                    result = HttpResponse(
                        url=url,
                        status=response.status,
                        body=body,
                        headers=dict(response.headers),
                    )
            except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
                if attempt >= self.max_retries:
                    raise
                delay = self._backoff_delay(attempt)
                logger.warning(
                    f"Request to {url} failed ({e!r}), retrying in {delay:.2f}s "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(delay)
                continue

            if is_throttled(result.status, result.headers) and attempt < self.max_retries:
                delay = self._backoff_delay(attempt, header_value(result.headers, "Retry-After"))
                logger.warning(
                    f"Throttled by upstream ({result.status}) for {url}, retrying in "
                    f"{delay:.2f}s (attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(delay)
                continue

            return result

        # Unreachable: the loop either returns or raises on the last attempt
        raise RuntimeError(f"Retry loop exited without a response for {url}")
