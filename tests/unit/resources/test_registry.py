"""Tests for loading and validating resource definitions."""

import pytest

from tgcp.errors import RegistryError, UnknownResourceError
from tgcp.resources import ApiAction, ResourceRegistry, ShellAction
from tgcp.resources.enrichment import resolve_enrichers


def _definition(**overrides):
    body = {
        "display_name": "Things",
        "service": "compute",
        "list": {"scope": "global", "path": "things"},
        "columns": [{"header": "NAME", "json_path": "name"}],
    }
    body.update(overrides)
    return body


class TestPackagedRegistry:
    """Tests against the definitions shipped with the package."""

    def test_core_resources_present(self, registry) -> None:
        for key in (
            "compute-instances",
            "compute-disks",
            "compute-networks",
            "compute-subnetworks",
            "compute-firewalls",
            "storage-buckets",
            "storage-objects",
            "gke-clusters",
            "gke-nodepools",
            "billing-accounts",
            "billing-budgets",
            "compute-zones",
            "resourcemanager-projects",
        ):
            assert key in registry

    def test_every_definition_has_columns(self, registry) -> None:
        for key in registry:
            assert registry[key].columns, key

    def test_sub_resource_links_resolve(self, registry) -> None:
        for key in registry:
            for sub in registry[key].sub_resources:
                assert sub.resource_key in registry

    def test_enrichers_resolve(self, registry) -> None:
        for key in registry:
            resolve_enrichers(registry[key].enrichers)

    def test_instance_actions(self, registry) -> None:
        instances = registry["compute-instances"]
        stop = instances.action("stop")
        assert isinstance(stop, ApiAction)
        assert stop.requires_confirm
        assert not stop.confirm.default_yes
        assert isinstance(instances.action("ssh"), ShellAction)
        assert instances.delete_action().method == "delete_instance"
        assert instances.delete_action().http_method == "DELETE"

    def test_network_drill_downs(self, registry) -> None:
        networks = registry["compute-networks"]
        assert networks.has_sub_resource("compute-subnetworks")
        sub = networks.sub_resource("compute-firewalls")
        assert sub.filter_template == 'network="{value}"'

    def test_require_unknown(self, registry) -> None:
        with pytest.raises(UnknownResourceError) as exc_info:
            registry.require("nope")
        assert exc_info.value.message == "Unknown resource: nope"

    def test_keys_sorted(self, registry) -> None:
        keys = registry.keys_sorted()
        assert keys == sorted(keys)
        assert len(keys) == len(registry)


class TestRegistryValidation:
    """Tests for malformed documents."""

    def test_dangling_sub_resource(self) -> None:
        document = {
            "resources": {
                "things": _definition(
                    sub_resources=[
                        {
                            "resource_key": "ghosts",
                            "display_name": "Ghosts",
                            "parent_id_field": "name",
                            "filter_param": "thing",
                        }
                    ]
                )
            }
        }
        with pytest.raises(RegistryError) as exc_info:
            ResourceRegistry.from_documents([document])
        assert exc_info.value.error_code == "REGISTRY-DanglingLink"

    def test_duplicate_key_across_documents(self) -> None:
        document = {"resources": {"things": _definition()}}
        with pytest.raises(RegistryError) as exc_info:
            ResourceRegistry.from_documents([document, document])
        assert exc_info.value.error_code == "REGISTRY-Duplicate"

    def test_invalid_definition(self) -> None:
        document = {"resources": {"things": _definition(list={"scope": "moon", "path": "x"})}}
        with pytest.raises(RegistryError) as exc_info:
            ResourceRegistry.from_documents([document])
        assert exc_info.value.error_code == "REGISTRY-InvalidDefinition"

    def test_duplicate_shortcut(self) -> None:
        actions = [
            {"key": "a", "display_name": "A", "shortcut": "s", "kind": "shell", "command": "ssh"},
            {"key": "b", "display_name": "B", "shortcut": "s", "kind": "shell", "command": "ssh"},
        ]
        document = {"resources": {"things": _definition(actions=actions)}}
        with pytest.raises(RegistryError):
            ResourceRegistry.from_documents([document])

    def test_confirm_shorthand(self) -> None:
        actions = [
            {
                "key": "stop",
                "display_name": "Stop",
                "kind": "api",
                "method": "stop_thing",
                "call": {"scope": "global", "path": "things/{id}/stop"},
                "confirm": True,
            }
        ]
        registry = ResourceRegistry.from_documents(
            [{"resources": {"things": _definition(actions=actions)}}]
        )
        action = registry["things"].action("stop")
        assert action.requires_confirm
        assert action.confirm.message is None

    def test_registry_is_read_only(self) -> None:
        registry = ResourceRegistry.from_documents([{"resources": {"things": _definition()}}])
        with pytest.raises(TypeError):
            registry["other"] = registry["things"]  # type: ignore[index]
