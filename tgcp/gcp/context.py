"""Project/zone context and the service base URLs derived from it."""

from dataclasses import dataclass, replace
from typing import Optional

COMPUTE_BASE = "https://compute.googleapis.com/compute/v1"
STORAGE_BASE = "https://storage.googleapis.com/storage/v1"
CONTAINER_BASE = "https://container.googleapis.com/v1"
BILLING_BASE = "https://cloudbilling.googleapis.com/v1"
BUDGETS_BASE = "https://billingbudgets.googleapis.com/v1"
RESOURCE_MANAGER_BASE = "https://cloudresourcemanager.googleapis.com/v1"

# Pseudo-zone meaning "every zone", served by aggregated list endpoints
ALL_ZONES = "all"


@dataclass(frozen=True)
class GcpContext:
    """Which project and zone API calls are scoped to."""

    project: str
    zone: str

    @property
    def region(self) -> str:
        """Region of the current zone: us-central1-a -> us-central1."""
        head, sep, _ = self.zone.rpartition("-")
        return head if sep else self.zone

    @property
    def all_zones(self) -> bool:
        return self.zone == ALL_ZONES

    def with_project(self, project: str) -> "GcpContext":
        return replace(self, project=project)

    def with_zone(self, zone: str) -> "GcpContext":
        return replace(self, zone=zone)

    # URL builders

    def compute_url(self, path: str) -> str:
        return f"{COMPUTE_BASE}/projects/{self.project}/{path}"

    def compute_zonal_url(self, resource: str, zone: Optional[str] = None) -> str:
        return self.compute_url(f"zones/{zone or self.zone}/{resource}")

    def compute_regional_url(self, resource: str) -> str:
        return self.compute_url(f"regions/{self.region}/{resource}")

    def compute_global_url(self, resource: str) -> str:
        return self.compute_url(f"global/{resource}")

    def compute_aggregated_url(self, resource: str) -> str:
        return self.compute_url(f"aggregated/{resource}")

    def storage_url(self, path: str) -> str:
        return f"{STORAGE_BASE}/{path}"

    def container_location_url(self, location: str, resource: str) -> str:
        return f"{CONTAINER_BASE}/projects/{self.project}/locations/{location}/{resource}"

    def billing_url(self, path: str) -> str:
        return f"{BILLING_BASE}/{path}"

    def budgets_url(self, billing_account: str, resource: str) -> str:
        return f"{BUDGETS_BASE}/{billing_account}/{resource}"

    def resource_manager_url(self, path: str) -> str:
        return f"{RESOURCE_MANAGER_BASE}/{path}"
