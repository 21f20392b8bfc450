"""Connection establishment with bounded retries.

Handles:
- Connection target resolution (full URL or discrete fields)
- Credential redaction for anything that ends up in logs
- Retry policy: N attempts, linear backoff (attempt * base_delay)
- Raw TCP reachability diagnostic

Connection failures are reported as `Unreachable`, never raised. Deciding
what an unreachable backend means is up to the degradation policy.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
import logging
from typing import Any
from urllib.parse import urlsplit, urlunsplit

from sqlalchemy.engine import URL, make_url

logger = logging.getLogger("uvicorn.error")

ASYNC_PG_DRIVER = "postgresql+asyncpg"
REDACTED = "***"


def _with_async_driver(url: str) -> str:
    """Railway/Heroku style postgres:// URLs need the asyncpg driver for async."""
    for prefix in ("postgresql://", "postgres://"):
        if url.startswith(prefix):
            return url.replace(prefix, f"{ASYNC_PG_DRIVER}://", 1)
    return url


def redact_url(url: str) -> str:
    """Mask the password component of a URL."""
    try:
        parts = urlsplit(url)
        password = parts.password
        port = parts.port
    except ValueError:
        return "<unparseable url>"
    if password is None:
        return url

    netloc = parts.hostname or ""
    if port:
        netloc = f"{netloc}:{port}"
    userinfo = f"{parts.username}:{REDACTED}" if parts.username else f":{REDACTED}"
    return urlunsplit((parts.scheme, f"{userinfo}@{netloc}", parts.path, parts.query, parts.fragment))


def scrub(text: str, secrets: Iterable[str]) -> str:
    """Replace every occurrence of the given secrets in text."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


@dataclass(frozen=True)
class ConnectionTarget:
    """Resolved database connection target.

    Either `url` is set (full connection string) or the discrete fields
    describe the target. `ssl_mode` is passed to asyncpg as its `ssl`
    argument; None leaves the driver default.
    """

    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = ""
    database: str = "postgres"
    ssl_mode: str | None = "disable"
    url: str | None = None

    @classmethod
    def from_url(cls, url: str) -> "ConnectionTarget":
        parsed = make_url(_with_async_driver(url.strip()))
        ssl_mode = parsed.query.get("sslmode")
        if isinstance(ssl_mode, tuple):
            ssl_mode = ssl_mode[-1]
        return cls(
            host=parsed.host or "",
            port=parsed.port or 5432,
            user=parsed.username or "",
            password=parsed.password or "",
            database=parsed.database or "",
            ssl_mode=ssl_mode,
            url=url.strip(),
        )

    def sqlalchemy_url(self) -> URL:
        """SQLAlchemy URL with the async driver and without `sslmode`.

        asyncpg rejects `sslmode` as a query parameter; it goes into
        connect_args instead.
        """
        if self.url:
            return make_url(_with_async_driver(self.url)).difference_update_query(["sslmode"])
        return URL.create(
            ASYNC_PG_DRIVER,
            username=self.user,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.database,
        )

    @property
    def uses_asyncpg(self) -> bool:
        return self.sqlalchemy_url().drivername == ASYNC_PG_DRIVER

    def connect_args(self, timeout: float) -> dict[str, Any]:
        """Extra driver arguments (asyncpg only)."""
        if not self.uses_asyncpg:
            return {}
        args: dict[str, Any] = {"timeout": timeout}
        if self.ssl_mode:
            args["ssl"] = self.ssl_mode
        return args

    def describe(self) -> str:
        """Target description safe for logs (password hidden)."""
        text = self.sqlalchemy_url().render_as_string(hide_password=True)
        if self.ssl_mode:
            text = f"{text} sslmode={self.ssl_mode}"
        return scrub(text, [self.password])


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded-attempt retry policy with linear backoff.

    Delay before attempt k+1 is `k * base_delay`. `sleep` is injectable so
    tests can run without real waiting.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def delay(self, attempt: int) -> float:
        return attempt * self.base_delay


@dataclass(frozen=True)
class Connected:
    handle: Any
    attempts: int

    ok = True


@dataclass(frozen=True)
class Unreachable:
    error: BaseException | None
    attempts: int

    ok = False


async def establish(
    connect: Callable[[], Awaitable[Any]],
    *,
    name: str,
    target: str,
    policy: RetryPolicy,
    secrets: Iterable[str] = (),
) -> Connected | Unreachable:
    """Open and verify a connection with bounded retries.

    Args:
        connect: Coroutine factory that opens the connection and runs the
            liveness probe; it must clean up after itself on failure.
        name: Backend name for log records ("postgres", "redis").
        target: Redacted target description.
        policy: Attempt count and backoff.
        secrets: Strings to mask in logged error messages.

    Returns:
        Connected on the first successful attempt, Unreachable after
        `policy.max_attempts` failures.
    """
    secrets = [s for s in secrets if s]
    last_error: BaseException | None = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            handle = await connect()
        except Exception as exc:
            last_error = exc
            message = scrub(f"{type(exc).__name__}: {exc}", secrets)
            logger.warning(
                f"{name}: attempt {attempt}/{policy.max_attempts} to {target} failed: {message}"
            )
            if attempt < policy.max_attempts:
                await policy.sleep(policy.delay(attempt))
            continue

        logger.info(f"{name}: connected to {target} on attempt {attempt}")
        return Connected(handle=handle, attempts=attempt)

    return Unreachable(error=last_error, attempts=policy.max_attempts)


async def tcp_probe(host: str, port: int, timeout: float) -> BaseException | None:
    """Open and close a raw TCP connection.

    Returns:
        None when the port accepted the connection, otherwise the error.
    """
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
    except (OSError, asyncio.TimeoutError) as exc:
        return exc

    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return None
