"""
Models for declarative resource definitions.

A ResourceDef says how to list one kind of resource, which columns to
show, how to drill into related resources and which actions it offers.
All models are frozen: the registry built from them is shared read-only
by the whole application.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Scope(str, Enum):
    """Base URL family a call path is relative to."""

    COMPUTE = "compute"  # compute/v1/projects/{project}
    ZONAL = "zonal"  # .../zones/{zone}
    REGIONAL = "regional"  # .../regions/{region}
    GLOBAL = "global"  # .../global
    STORAGE = "storage"  # storage/v1
    CONTAINER = "container"  # container/v1/projects/{project}
    BILLING = "billing"  # cloudbilling/v1
    BUDGETS = "budgets"  # billingbudgets/v1
    RESOURCE_MANAGER = "resourcemanager"  # cloudresourcemanager/v1


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class ApiCall(_Frozen):
    """A templated REST call.

    ``path`` and the values of ``params`` may use {project}, {zone},
    {region}, {id} and the name of any request parameter.
    """

    scope: Scope
    path: str
    params: dict[str, Union[str, list[str]]] = Field(default_factory=dict)


class ListCall(ApiCall):
    """How to list a resource.

    When the zone is "all", ``aggregated_path`` (relative to
    compute/v1/projects/{project}/aggregated) is used instead and the
    per-scope buckets of the response are flattened.
    """

    aggregated_path: Optional[str] = None


class ColumnDef(_Frozen):
    header: str
    json_path: str
    width: int = Field(default=15, ge=1, description="Relative column width")
    color_map: dict[str, str] = Field(default_factory=dict)


class SubResourceDef(_Frozen):
    """A drill-down link from a record to a related collection."""

    resource_key: str
    display_name: str
    shortcut: Optional[str] = None
    parent_id_field: str
    filter_param: str
    # Wraps the parent value, e.g. 'network="{value}"' for Compute list filters
    filter_template: str = "{value}"
    # Further request params copied from the parent record: param -> json path
    extra_params: dict[str, str] = Field(default_factory=dict)


class ConfirmPolicy(_Frozen):
    message: Optional[str] = None
    default_yes: bool = False
    destructive: bool = False


class _ActionBase(_Frozen):
    key: str
    display_name: str
    shortcut: Optional[str] = None
    confirm: Optional[ConfirmPolicy] = None

    @field_validator("confirm", mode="before")
    @classmethod
    def confirm_shorthand(cls, v):
        # "confirm: true" means confirm with the default message
        if v is True:
            return {}
        if v is False:
            return None
        return v

    @property
    def requires_confirm(self) -> bool:
        return self.confirm is not None


class ApiAction(_ActionBase):
    """Mutating REST call against the selected resource."""

    kind: Literal["api"] = "api"
    method: str
    http_method: Literal["POST", "DELETE"] = "POST"
    call: ApiCall


class ShellAction(_ActionBase):
    """Out-of-process action (ssh, browser). Not blocked by read-only mode."""

    kind: Literal["shell"] = "shell"
    command: str


ActionDef = Annotated[Union[ApiAction, ShellAction], Field(discriminator="kind")]


class ResourceDef(_Frozen):
    key: str
    display_name: str
    service: str
    list: ListCall
    response_path: str = "items"
    # Response is a single object rather than a list
    single: bool = False
    id_field: str = "id"
    name_field: str = "name"
    columns: tuple[ColumnDef, ...]
    sub_resources: tuple[SubResourceDef, ...] = ()
    actions: tuple[ActionDef, ...] = ()
    describe: Optional[ApiCall] = None
    enrichers: tuple[str, ...] = ("common",)

    @model_validator(mode="after")
    def check_shortcuts(self) -> "ResourceDef":
        seen: set[str] = set()
        for shortcut in [s.shortcut for s in self.sub_resources] + [
            a.shortcut for a in self.actions
        ]:
            if shortcut is None:
                continue
            if shortcut in seen:
                raise ValueError(f"duplicate shortcut '{shortcut}' in {self.key}")
            seen.add(shortcut)
        return self

    def sub_resource(self, resource_key: str) -> Optional[SubResourceDef]:
        for sub in self.sub_resources:
            if sub.resource_key == resource_key:
                return sub
        return None

    def has_sub_resource(self, resource_key: str) -> bool:
        return self.sub_resource(resource_key) is not None

    def action(self, key: str) -> Optional[Union[ApiAction, ShellAction]]:
        for action in self.actions:
            if action.key == key:
                return action
        return None

    def delete_action(self) -> Optional[ApiAction]:
        for action in self.actions:
            if isinstance(action, ApiAction) and "delete" in action.method.lower():
                return action
        return None
