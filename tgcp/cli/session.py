"""
Startup wiring.

Resolves the project and zone, obtains credentials, opens the HTTP client
and assembles the App. Everything that can fail before the UI starts
fails here, with an error the CLI can print.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from tgcp.app.controller import DEFAULT_RESOURCE, App
from tgcp.config.models import UserConfig
from tgcp.config.settings import get_http_settings
from tgcp.config.store import ConfigStore
from tgcp.errors import InvalidConfigurationError, MissingConfigurationError
from tgcp.gcp.auth import (
    CredentialCache,
    TokenProvider,
    default_token_provider,
    get_default_project,
    get_default_zone,
    validate_project_id,
)
from tgcp.gcp.client import ClientConfig, GcpClient
from tgcp.gcp.context import GcpContext
from tgcp.logging import get_logger
from tgcp.notifications import NotificationTracker, OperationPoller
from tgcp.resources.backend import ResourceBackend
from tgcp.resources.registry import ResourceRegistry
from tgcp.shell import ShellRunner

logger = get_logger(__name__)

DEFAULT_ZONE = "us-central1-a"


def resolve_project(cli_project: Optional[str], config: UserConfig) -> str:
    """Project id from the command line, the saved config, or gcloud.

    Raises:
        MissingConfigurationError: If no source provides a project
        InvalidConfigurationError: If the id is malformed
    """
    project = cli_project or config.project_id or get_default_project()
    if not project:
        raise MissingConfigurationError(
            message="No GCP project configured",
            error_code="CONFIG-NoProject",
            suggestion=(
                "Set GOOGLE_CLOUD_PROJECT, run 'gcloud config set project <id>' "
                "or pass --project"
            ),
        )
    if not validate_project_id(project):
        raise InvalidConfigurationError(
            message=f"Invalid project id: {project}",
            error_code="CONFIG-InvalidProject",
            details={"project": project},
        )
    return project


def resolve_zone(cli_zone: Optional[str], config: UserConfig) -> str:
    return cli_zone or config.zone or get_default_zone() or DEFAULT_ZONE


def client_config() -> ClientConfig:
    settings = get_http_settings()
    return ClientConfig(
        timeout=settings.timeout,
        max_retries=settings.max_retries,
        base_delay=settings.base_delay,
        max_delay=settings.max_delay,
    )


@dataclass
class Session:
    """Everything a command needs to talk to GCP."""

    store: ConfigStore
    registry: ResourceRegistry
    credentials: CredentialCache
    client: GcpClient
    backend: ResourceBackend

    @property
    def context(self) -> GcpContext:
        return self.backend.context

    async def close(self) -> None:
        await self.client.close()


async def open_session(
    project: Optional[str] = None,
    zone: Optional[str] = None,
    store: Optional[ConfigStore] = None,
    provider: Optional[TokenProvider] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Session:
    """Resolve context, fetch a first token and open the client.

    Raises:
        ConfigurationError: No usable project
        AuthenticationError: No access token could be obtained
        RegistryError: The packaged definitions are broken
    """
    store = store or ConfigStore.open()
    context = GcpContext(
        project=resolve_project(project, store.config),
        zone=resolve_zone(zone, store.config),
    )
    logger.info(f"Using project: {context.project}, zone: {context.zone}")

    registry = ResourceRegistry.load()
    credentials = CredentialCache(provider or default_token_provider())
    await credentials.get_token()

    client = GcpClient(credentials, client_config(), transport=transport)
    await client.open()
    return Session(
        store=store,
        registry=registry,
        credentials=credentials,
        client=client,
        backend=ResourceBackend(registry, client, context),
    )


def build_app(session: Session, readonly: bool = False, shell: Optional[ShellRunner] = None) -> App:
    config = session.store.config
    tracker = NotificationTracker(config.notifications)
    poller = OperationPoller(tracker, session.client) if config.notifications.auto_poll else None

    initial = config.last_resource
    if initial not in session.registry:
        initial = DEFAULT_RESOURCE

    return App(
        registry=session.registry,
        backend=session.backend,
        tracker=tracker,
        store=session.store,
        credentials=session.credentials,
        shell=shell,
        poller=poller,
        readonly=readonly,
        initial_resource=initial,
    )
