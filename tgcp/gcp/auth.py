"""Credentials and gcloud defaults.

Access tokens come from a TokenProvider. The default provider shells out
to ``gcloud auth print-access-token`` so tgcp uses whatever account the
user is already logged in with. CredentialCache sits in front of the
provider and is the only credential object the HTTP client sees.

This module also discovers the default project and zone from the
environment and the gcloud configuration files.
"""

import asyncio
import configparser
import os
import re
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional, Protocol

from tgcp.errors import AuthenticationError
from tgcp.logging import get_logger

logger = get_logger(__name__)

# gcloud does not report token lifetime; Google access tokens last an hour,
# we assume half of that and stop using a token a minute before it expires.
DEFAULT_TOKEN_TTL = 30 * 60.0
TOKEN_EXPIRY_BUFFER = 60.0

ACCESS_TOKEN_ENV = "TGCP_ACCESS_TOKEN"

PROJECT_ENV_VARS = ("CLOUDSDK_CORE_PROJECT", "GOOGLE_CLOUD_PROJECT", "GCLOUD_PROJECT")
ZONE_ENV_VAR = "CLOUDSDK_COMPUTE_ZONE"

_PROJECT_ID_RE = re.compile(r"^[a-z][a-z0-9-]{4,28}[a-z0-9]$")
_CONFIG_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class TokenSource(Protocol):
    """What the HTTP client needs from the credential layer."""

    async def get_token(self) -> str:
        """Return a valid bearer token."""
        ...

    async def refresh_token(self) -> str:
        """Invalidate the current token and acquire a new one."""
        ...


@dataclass(frozen=True)
class AccessToken:
    """A bearer token with an optional lifetime reported by the provider."""

    value: str
    expires_in: Optional[float] = None


class TokenProvider(Protocol):
    """Acquires fresh access tokens. Called only on cache misses."""

    async def fetch_token(self) -> AccessToken: ...


class GcloudTokenProvider:
    """Obtains tokens from the gcloud CLI."""

    def __init__(self, gcloud_path: Optional[str] = None, timeout: float = 30.0) -> None:
        self.gcloud_path = gcloud_path or shutil.which("gcloud") or "gcloud"
        self.timeout = timeout

    async def fetch_token(self) -> AccessToken:
        try:
            process = await asyncio.create_subprocess_exec(
                self.gcloud_path,
                "auth",
                "print-access-token",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise AuthenticationError(
                message=f"Could not run gcloud: {e}",
                error_code="AUTH-GcloudMissing",
                suggestion="Install the Google Cloud SDK or set TGCP_ACCESS_TOKEN",
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise AuthenticationError(
                message="Timed out waiting for gcloud to print an access token",
                error_code="AUTH-Timeout",
            ) from e

        if process.returncode != 0:
            # stderr is gcloud's own message, no secrets in it
            detail = stderr.decode(errors="replace").strip().splitlines()
            raise AuthenticationError(
                message="gcloud could not provide an access token",
                error_code="AUTH-GcloudFailed",
                details={
                    "returncode": process.returncode,
                    "stderr": detail[-1] if detail else "",
                },
                suggestion="Run 'gcloud auth login'",
            )

        token = stdout.decode().strip()
        if not token:
            raise AuthenticationError(
                message="gcloud returned an empty access token",
                error_code="AUTH-EmptyToken",
                suggestion="Run 'gcloud auth login'",
            )
        return AccessToken(value=token)


class StaticTokenProvider:
    """Serves a fixed token, e.g. from TGCP_ACCESS_TOKEN."""

    def __init__(self, token: str) -> None:
        self._token = token

    async def fetch_token(self) -> AccessToken:
        return AccessToken(value=self._token)


def default_token_provider(env: Optional[Mapping[str, str]] = None) -> TokenProvider:
    """Pick the provider: an explicit token from the environment wins over gcloud."""
    env = os.environ if env is None else env
    token = env.get(ACCESS_TOKEN_ENV)
    if token:
        logger.info(f"Using access token from {ACCESS_TOKEN_ENV}")
        return StaticTokenProvider(token)
    return GcloudTokenProvider()


@dataclass(frozen=True)
class _CachedToken:
    value: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


class CredentialCache:
    """Caches one access token and serializes refreshes.

    Readers of a still-valid token take the fast path and never wait on the
    lock. When the token is missing or expired, callers queue on the lock;
    the first one refreshes and the rest find the fresh token on re-check.
    """

    def __init__(
        self,
        provider: TokenProvider,
        ttl: float = DEFAULT_TOKEN_TTL,
        expiry_buffer: float = TOKEN_EXPIRY_BUFFER,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._provider = provider
        self._ttl = ttl
        self._buffer = expiry_buffer
        self._clock = clock
        self._cached: Optional[_CachedToken] = None
        self._lock = asyncio.Lock()

    async def get_token(self) -> str:
        cached = self._cached
        if cached is not None and cached.is_valid(self._clock()):
            return cached.value

        async with self._lock:
            cached = self._cached
            if cached is not None and cached.is_valid(self._clock()):
                return cached.value
            if cached is not None:
                logger.debug("Cached token expired, fetching new token")
            return await self._acquire()

    async def refresh_token(self) -> str:
        async with self._lock:
            self._cached = None
            return await self._acquire()

    async def _acquire(self) -> str:
        # Caller holds self._lock
        token = await self._provider.fetch_token()
        lifetime = token.expires_in if token.expires_in is not None else self._ttl
        self._cached = _CachedToken(
            value=token.value,
            expires_at=self._clock() + max(lifetime - self._buffer, 0.0),
        )
        logger.debug(f"New token cached, valid for ~{int(lifetime - self._buffer)}s")
        return token.value


# Default project / zone discovery


def get_gcloud_config_dir(env: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if env is None else env
    override = env.get("CLOUDSDK_CONFIG")
    if override:
        return Path(override)
    return Path.home() / ".config" / "gcloud"


def validate_project_id(project: str) -> bool:
    """Check the GCP project id format.

    6-30 characters, lowercase letters, digits and hyphens, starting with a
    letter and not ending with a hyphen.
    """
    return bool(_PROJECT_ID_RE.match(project))


def _read_ini(path: Path) -> Optional[configparser.ConfigParser]:
    parser = configparser.ConfigParser(interpolation=None)
    try:
        with open(path) as f:
            parser.read_file(f)
    except FileNotFoundError:
        return None
    except (OSError, configparser.Error) as e:
        logger.warning(f"Could not parse gcloud config {path}: {e}")
        return None
    return parser


def _active_configuration(config_dir: Path) -> Optional[configparser.ConfigParser]:
    try:
        name = (config_dir / "active_config").read_text().strip()
    except OSError:
        name = "default"
    if not _CONFIG_NAME_RE.match(name):
        logger.warning("Invalid characters in gcloud active_config name")
        return None
    return _read_ini(config_dir / "configurations" / f"config_{name}")


def get_default_project(env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Find the project gcloud would use.

    Order: CLOUDSDK_CORE_PROJECT, GOOGLE_CLOUD_PROJECT, GCLOUD_PROJECT, the
    legacy ``properties`` file, then the [core] section of the active
    configuration. Values that are not valid project ids are skipped.
    """
    env = os.environ if env is None else env
    for var in PROJECT_ENV_VARS:
        value = env.get(var)
        if not value:
            continue
        if validate_project_id(value):
            return value
        logger.warning(f"Invalid project ID format in {var}")

    config_dir = get_gcloud_config_dir(env)

    properties = _read_ini(config_dir / "properties")
    if properties is not None and properties.has_option("core", "project"):
        value = properties.get("core", "project").strip()
        if validate_project_id(value):
            return value

    active = _active_configuration(config_dir)
    if active is not None and active.has_option("core", "project"):
        value = active.get("core", "project").strip()
        if validate_project_id(value):
            return value

    return None


def get_default_zone(env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Find the compute zone gcloud would use (env var, then active configuration)."""
    env = os.environ if env is None else env
    value = env.get(ZONE_ENV_VAR)
    if value:
        return value

    active = _active_configuration(get_gcloud_config_dir(env))
    if active is not None and active.has_option("compute", "zone"):
        return active.get("compute", "zone").strip() or None
    return None


# Used when the zones API cannot be reached
STATIC_ZONES = (
    "asia-east1-a",
    "asia-east1-b",
    "asia-east1-c",
    "asia-northeast1-a",
    "asia-northeast1-b",
    "asia-northeast1-c",
    "asia-southeast1-a",
    "asia-southeast1-b",
    "asia-southeast1-c",
    "australia-southeast1-a",
    "australia-southeast1-b",
    "australia-southeast1-c",
    "europe-west1-b",
    "europe-west1-c",
    "europe-west1-d",
    "europe-west2-a",
    "europe-west2-b",
    "europe-west2-c",
    "europe-west3-a",
    "europe-west3-b",
    "europe-west3-c",
    "europe-west4-a",
    "europe-west4-b",
    "europe-west4-c",
    "northamerica-northeast1-a",
    "northamerica-northeast1-b",
    "northamerica-northeast1-c",
    "southamerica-east1-a",
    "southamerica-east1-b",
    "southamerica-east1-c",
    "us-central1-a",
    "us-central1-b",
    "us-central1-c",
    "us-central1-f",
    "us-east1-b",
    "us-east1-c",
    "us-east1-d",
    "us-east4-a",
    "us-east4-b",
    "us-east4-c",
    "us-west1-a",
    "us-west1-b",
    "us-west1-c",
    "us-west2-a",
    "us-west2-b",
    "us-west2-c",
)
