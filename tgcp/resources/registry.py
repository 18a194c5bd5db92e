"""
Immutable registry of resource definitions.

The registry is built once at startup from the YAML files packaged in
tgcp/resources/definitions and then passed explicitly to whoever needs
it. Nothing mutates it after construction.
"""

from collections.abc import Iterable, Iterator, Mapping
from importlib import resources
from types import MappingProxyType
from typing import Any, Optional

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from tgcp.errors import RegistryError, UnknownResourceError
from tgcp.logging import get_logger
from tgcp.resources.models import ResourceDef

logger = get_logger(__name__)

DEFINITION_PACKAGE = "tgcp.resources.definitions"
DEFINITION_FILES = ("common.yaml", "compute.yaml", "storage.yaml", "gke.yaml", "billing.yaml")


class ResourceRegistry(Mapping[str, ResourceDef]):
    """Read-only mapping of resource key to ResourceDef."""

    def __init__(self, definitions: Iterable[ResourceDef]) -> None:
        table: dict[str, ResourceDef] = {}
        for definition in definitions:
            if definition.key in table:
                raise RegistryError(
                    message=f"Duplicate resource key: {definition.key}",
                    error_code="REGISTRY-Duplicate",
                    details={"key": definition.key},
                )
            table[definition.key] = definition
        self._table = MappingProxyType(table)
        self._validate_links()

    def _validate_links(self) -> None:
        for definition in self._table.values():
            for sub in definition.sub_resources:
                if sub.resource_key not in self._table:
                    raise RegistryError(
                        message=(
                            f"{definition.key} links to unknown sub-resource "
                            f"{sub.resource_key}"
                        ),
                        error_code="REGISTRY-DanglingLink",
                        details={"key": definition.key, "target": sub.resource_key},
                    )

    def __getitem__(self, key: str) -> ResourceDef:
        return self._table[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def get(self, key: str, default: Optional[ResourceDef] = None) -> Optional[ResourceDef]:  # type: ignore[override]
        return self._table.get(key, default)

    def require(self, key: str) -> ResourceDef:
        """Look up a definition, raising UnknownResourceError if absent."""
        definition = self._table.get(key)
        if definition is None:
            raise UnknownResourceError(key)
        return definition

    def keys_sorted(self) -> list[str]:
        return sorted(self._table)

    @classmethod
    def from_documents(cls, documents: Iterable[Mapping[str, Any]]) -> "ResourceRegistry":
        """Build a registry from parsed YAML documents.

        Each document has a top level ``resources`` mapping of key to
        definition body.

        Raises:
            RegistryError: If a definition does not validate
        """
        definitions = []
        for document in documents:
            for key, body in (document.get("resources") or {}).items():
                try:
                    definitions.append(ResourceDef(key=key, **body))
                except ValidationError as e:
                    raise RegistryError(
                        message=f"Invalid definition for {key}: {e}",
                        error_code="REGISTRY-InvalidDefinition",
                        details={"key": key},
                    ) from e
        return cls(definitions)

    @classmethod
    def load(cls) -> "ResourceRegistry":
        """Load the packaged definitions.

        Returns:
            The registry containing every packaged resource

        Raises:
            RegistryError: If a file is missing, malformed or has dangling links
        """
        documents = []
        package = resources.files(DEFINITION_PACKAGE)
        for name in DEFINITION_FILES:
            try:
                text = package.joinpath(name).read_text(encoding="utf-8")
                document = yaml.safe_load(text) or {}
            except (OSError, yaml.YAMLError) as e:
                raise RegistryError(
                    message=f"Cannot read resource definitions {name}: {e}",
                    error_code="REGISTRY-FileError",
                    details={"file": name},
                ) from e
            documents.append(document)
        registry = cls.from_documents(documents)
        logger.debug(f"Loaded {len(registry)} resource definitions")
        return registry
