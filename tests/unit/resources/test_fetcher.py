"""Tests for the paginated fetch engine."""

import pytest

from tgcp.errors import UnknownResourceError
from tgcp.gcp.client import APIError
from tgcp.resources import extract_items, fetch_all, fetch_concurrent, fetch_page

DISKS_URL = "https://compute.googleapis.com/compute/v1/projects/demo-project/zones/{zone}/disks"


def paged_disks(pages_per_zone: int = 3, per_page: int = 2):
    """Router serving numbered pages of disks per zone."""

    def router(method, url, params):
        zone = url.split("/zones/")[1].split("/")[0]
        query = dict(params or [])
        page = int(query.get("pageToken", "p0")[1:])
        items = [
            {"name": f"{zone}-disk-{page}-{i}", "zone": f"zones/{zone}"}
            for i in range(per_page)
        ]
        response = {"items": items}
        if page + 1 < pages_per_zone:
            response["nextPageToken"] = f"p{page + 1}"
        return response

    return router


class TestExtractItems:
    def test_response_path(self) -> None:
        assert extract_items({"clusters": [1, 2]}, "clusters") == [1, 2]

    def test_missing_path_is_empty(self) -> None:
        assert extract_items({}, "items") == []
        assert extract_items({"items": "odd"}, "items") == []

    def test_single_object(self) -> None:
        assert extract_items({"projectId": "p"}, "items", single=True) == [{"projectId": "p"}]


class TestFetchPage:
    @pytest.mark.asyncio
    async def test_first_page(self, backend, client) -> None:
        client.router = paged_disks()
        page = await fetch_page(backend, "compute-disks")

        assert [i["name"] for i in page.items] == [
            "us-central1-a-disk-0-0",
            "us-central1-a-disk-0-1",
        ]
        assert page.next_token == "p1"
        assert page.has_more
        # Enrichers ran
        assert page.items[0]["zone_short"] == "us-central1-a"

    @pytest.mark.asyncio
    async def test_token_and_filters_are_sent(self, backend, client) -> None:
        await fetch_page(backend, "compute-firewalls", {"filter": ['network="x"']}, "p2")

        _, _, params = client.calls[0]
        assert ("filter", 'network="x"') in params
        assert ("pageToken", "p2") in params

    @pytest.mark.asyncio
    async def test_last_page_has_no_token(self, backend, client) -> None:
        client.router = lambda method, url, params: {"items": [{"name": "a"}], "nextPageToken": ""}
        page = await fetch_page(backend, "compute-networks")
        assert page.next_token is None
        assert not page.has_more

    @pytest.mark.asyncio
    async def test_single_object_resource(self, backend, client) -> None:
        client.router = lambda method, url, params: {
            "projectId": "demo-project",
            "billingAccountName": "billingAccounts/0000-1111",
            "billingEnabled": True,
        }
        page = await fetch_page(backend, "billing-info")
        assert len(page.items) == 1
        assert page.items[0]["billingAccountName_short"] == "0000-1111"
        assert not page.has_more

    @pytest.mark.asyncio
    async def test_unknown_resource(self, backend) -> None:
        with pytest.raises(UnknownResourceError):
            await fetch_page(backend, "compute-teapots")

    @pytest.mark.asyncio
    async def test_api_error_propagates(self, backend, client) -> None:
        client.router = lambda method, url, params: APIError("denied", status_code=403)
        with pytest.raises(APIError):
            await fetch_page(backend, "compute-disks")


class TestFetchAll:
    @pytest.mark.asyncio
    async def test_walks_every_page_in_order(self, backend, client) -> None:
        client.router = paged_disks(pages_per_zone=3)
        items = await fetch_all(backend, "compute-disks")

        assert [i["name"] for i in items] == [
            f"us-central1-a-disk-{page}-{i}" for page in range(3) for i in range(2)
        ]
        assert len(client.calls) == 3


class TestFetchConcurrent:
    @pytest.mark.asyncio
    async def test_single_listing_matches_fetch_all(self, backend, client) -> None:
        client.router = paged_disks(pages_per_zone=4)
        items = await fetch_concurrent(backend, "compute-disks")
        assert len(items) == 8
        assert len({i["name"] for i in items}) == 8

    @pytest.mark.asyncio
    async def test_one_listing_per_zone(self, backend, client) -> None:
        client.router = paged_disks(pages_per_zone=2)
        zones = ["us-central1-a", "us-east1-b", "europe-west1-b"]

        items = await fetch_concurrent(
            backend, "compute-disks", [{"zone": [z]} for z in zones], max_concurrency=2
        )

        assert len(items) == 12
        for zone in zones:
            assert f"{zone}-disk-1-1" in {i["name"] for i in items}
        assert {DISKS_URL.format(zone=z) for z in zones} == set(client.urls())

    @pytest.mark.asyncio
    async def test_ordered_by_listing_then_page(self, backend, client) -> None:
        client.router = paged_disks(pages_per_zone=3, per_page=1)

        items = await fetch_concurrent(
            backend, "compute-disks", [{"zone": ["zone-a"]}, {"zone": ["zone-b"]}]
        )

        assert [i["name"] for i in items] == [
            "zone-a-disk-0-0",
            "zone-a-disk-1-0",
            "zone-a-disk-2-0",
            "zone-b-disk-0-0",
            "zone-b-disk-1-0",
            "zone-b-disk-2-0",
        ]

    @pytest.mark.asyncio
    async def test_failed_listing_is_dropped(self, backend, client) -> None:
        healthy = paged_disks(pages_per_zone=2)

        def router(method, url, params):
            if "/zones/us-east1-b/" in url:
                return APIError("backend error", status_code=500)
            return healthy(method, url, params)

        client.router = router
        items = await fetch_concurrent(
            backend, "compute-disks", [{"zone": ["us-central1-a"]}, {"zone": ["us-east1-b"]}]
        )
        assert {i["zone_short"] for i in items} == {"us-central1-a"}
        assert len(items) == 4

    @pytest.mark.asyncio
    async def test_first_page_failure_raises(self, backend, client) -> None:
        client.router = lambda method, url, params: APIError("denied", status_code=403)
        with pytest.raises(APIError):
            await fetch_concurrent(backend, "compute-disks")
