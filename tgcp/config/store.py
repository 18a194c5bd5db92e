"""
Persistence for the user configuration.

The ConfigStore owns the in-memory UserConfig and writes it to a YAML
file. The in-memory state is always updated first; a failed write is
logged and reported through the return value, never raised to the UI.
"""

import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError

from tgcp.config.models import UserConfig
from tgcp.config.settings import get_path_settings
from tgcp.errors import ConfigurationFileError
from tgcp.logging import get_logger

logger = get_logger(__name__)

CONFIG_FILENAME = "config.yaml"


class ConfigStore:
    """Loads, holds and saves the user configuration."""

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        config: Optional[UserConfig] = None,
    ) -> None:
        """
        Args:
            path: Location of config.yaml. Defaults to the configured config dir.
            config: Preloaded configuration; when None, call load().
        """
        self.path = (
            Path(path)
            if path is not None
            else get_path_settings().config_dir / CONFIG_FILENAME
        )
        self.config = config or UserConfig()

    @classmethod
    def open(cls, path: Optional[Union[str, Path]] = None) -> "ConfigStore":
        """Create a store and load whatever is on disk."""
        store = cls(path)
        store.load()
        return store

    def load(self) -> UserConfig:
        """
        Read the configuration file.

        A missing file, unreadable file, invalid YAML or failed validation
        all leave the defaults in place.

        Returns:
            The loaded (or default) configuration
        """
        if not self.path.exists():
            logger.debug(f"No config file at {self.path}, using defaults")
            self.config = UserConfig()
            return self.config

        try:
            with open(self.path) as file:
                data = yaml.safe_load(file)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not read config file {self.path}: {e}")
            self.config = UserConfig()
            return self.config

        if data is None:
            data = {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {self.path}: top level is not a mapping")
            self.config = UserConfig()
            return self.config

        try:
            self.config = UserConfig(**data)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid config file {self.path}: {e}")
            self.config = UserConfig()
        return self.config

    def save(self) -> None:
        """
        Write the configuration with owner-only permissions.

        Raises:
            ConfigurationFileError: If the directory or file cannot be written
        """
        parent = self.path.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
            try:
                os.chmod(parent, 0o700)
            except OSError as e:
                logger.debug(f"Could not restrict permissions on {parent}: {e}")

            content = yaml.safe_dump(
                self.config.model_dump(mode="json"),
                default_flow_style=False,
                sort_keys=True,
            )
            # Create with 0600 so the file is never world readable, even briefly
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w") as file:
                file.write(content)
            os.chmod(self.path, 0o600)
        except OSError as e:
            raise ConfigurationFileError(
                message=f"Could not write config file {self.path}: {e}",
                error_code="CONF-WriteFailed",
                details={"path": str(self.path)},
            ) from e

    def _persist(self, what: str) -> bool:
        try:
            self.save()
            return True
        except ConfigurationFileError as e:
            logger.warning(f"Failed to save {what} to config: {e.message}")
            return False

    # Setters update memory first, then persist

    def set_project(self, project_id: str) -> bool:
        self.config.project_id = project_id
        return self._persist("project")

    def set_zone(self, zone: str) -> bool:
        self.config.zone = zone
        return self._persist("zone")

    def set_theme(self, theme: str) -> bool:
        self.config.theme = theme
        return self._persist("theme")

    def set_last_resource(self, resource_key: str) -> bool:
        self.config.last_resource = resource_key
        return self._persist("last resource")

    def add_alias(self, alias: str, resource_key: str) -> bool:
        self.config.aliases[alias] = resource_key
        return self._persist("alias")

    def get_hidden_columns(self, resource_key: str) -> set[str]:
        return set(self.config.hidden_columns.get(resource_key, []))

    def set_hidden_columns(self, resource_key: str, headers: set[str]) -> bool:
        if headers:
            self.config.hidden_columns[resource_key] = sorted(headers)
        else:
            self.config.hidden_columns.pop(resource_key, None)
        return self._persist("column config")
