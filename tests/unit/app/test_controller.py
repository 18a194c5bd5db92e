"""Tests for the application state machine."""

import asyncio

import pytest

from tgcp.app import App, Mode
from tgcp.gcp.client import APIError
from tgcp.gcp.context import ALL_ZONES


def paged_router(pages: int = 3, per_page: int = 2):
    def router(method, url, params):
        query = dict(params or [])
        page = int(query.get("pageToken", "t0")[1:])
        response = {"items": [{"name": f"vm-{page}-{i}"} for i in range(per_page)]}
        if page + 1 < pages:
            response["nextPageToken"] = f"t{page + 1}"
        return response

    return router


class TestFetch:
    @pytest.mark.asyncio
    async def test_refresh_loads_items(self, app) -> None:
        await app.refresh_current()

        assert len(app.items) == 5
        assert app.filtered_items == app.items
        assert app.items[0]["zone_short"] == "us-central1-a"
        assert not app.loading
        assert app.status_text() is None

    @pytest.mark.asyncio
    async def test_error_clears_items_and_sets_status(self, app, client) -> None:
        await app.refresh_current()
        client.router = lambda method, url, params: APIError("nope", status_code=403)

        await app.refresh_current()

        assert app.items == []
        assert app.filtered_items == []
        assert app.selected == 0
        assert app.status_error == "Permission denied. Check your IAM permissions."
        assert not app.loading

    @pytest.mark.asyncio
    async def test_selection_kept_when_still_in_range(self, app) -> None:
        await app.refresh_current()
        app.selected = 3
        await app.refresh_current()
        assert app.selected == 3

    @pytest.mark.asyncio
    async def test_stale_results_are_discarded(self, app, client) -> None:
        release = asyncio.Event()
        original_get = client.get

        async def gated_get(url, params=None):
            if url.endswith("/instances"):
                await release.wait()
            return await original_get(url, params)

        client.get = gated_get

        slow = asyncio.create_task(app.refresh_current())
        await asyncio.sleep(0)
        # A newer fetch starts before the first one answers
        await app.navigate_to_resource("compute-networks")
        release.set()
        await slow

        assert app.current_resource_key == "compute-networks"
        assert [item["name"] for item in app.items] == ["default", "prod-vpc"]

    @pytest.mark.asyncio
    async def test_generation_increments(self, app) -> None:
        before = app.generation
        await app.refresh_current()
        await app.refresh_current()
        assert app.generation == before + 2


class TestPagination:
    @pytest.mark.asyncio
    async def test_forward_and_back(self, app, client) -> None:
        client.router = paged_router(pages=3)
        await app.refresh_current()
        assert app.pagination.has_more

        await app.next_page()
        await app.next_page()
        assert app.pagination.current_page == 3
        assert app.pagination.token_stack == ["t1", "t2"]
        assert not app.pagination.has_more
        assert app.items[0]["name"] == "vm-2-0"

        await app.prev_page()
        assert app.pagination.current_page == 2
        assert len(app.pagination.token_stack) == app.pagination.current_page - 1
        assert app.items[0]["name"] == "vm-1-0"

        await app.prev_page()
        assert app.pagination.current_page == 1
        assert app.pagination.token_stack == []
        assert app.items[0]["name"] == "vm-0-0"

    @pytest.mark.asyncio
    async def test_next_page_without_more_is_noop(self, app, client) -> None:
        client.router = paged_router(pages=1)
        await app.refresh_current()
        calls = len(client.calls)
        await app.next_page()
        await app.prev_page()
        assert len(client.calls) == calls
        assert app.pagination.current_page == 1

    @pytest.mark.asyncio
    async def test_refresh_keeps_current_page(self, app, client) -> None:
        client.router = paged_router(pages=3)
        await app.refresh_current()
        await app.next_page()
        await app.refresh_current()
        assert app.pagination.current_page == 2
        assert app.items[0]["name"] == "vm-1-0"

    @pytest.mark.asyncio
    async def test_reload_resets_to_first_page(self, app, client) -> None:
        client.router = paged_router(pages=3)
        await app.refresh_current()
        await app.next_page()
        app.sort_by_column(0)
        await app.reload()
        assert app.pagination.current_page == 1
        assert app.sort is None
        assert app.items[0]["name"] == "vm-0-0"


class TestFilterAndSort:
    @pytest.mark.asyncio
    async def test_filter_matches_any_column(self, app) -> None:
        await app.refresh_current()
        app.set_filter_text("terminated")
        assert [i["name"] for i in app.filtered_items] == ["vm-1"]
        assert len(app.items) == 5

    @pytest.mark.asyncio
    async def test_filter_clamps_selection_and_clears_marks(self, app) -> None:
        await app.refresh_current()
        app.selected = 4
        app.toggle_selection()
        app.set_filter_text("running")
        assert app.selected == 2
        assert len(app.selection) == 0

    @pytest.mark.asyncio
    async def test_sort_toggles_direction(self, app) -> None:
        await app.refresh_current()
        status_column = 2
        app.sort_by_column(status_column)
        assert [i["status"] for i in app.filtered_items] == [
            "RUNNING",
            "RUNNING",
            "RUNNING",
            "STAGING",
            "TERMINATED",
        ]
        # Stable: equal keys keep fetch order
        assert [i["name"] for i in app.filtered_items[:3]] == ["vm-0", "vm-2", "vm-4"]

        app.sort_by_column(status_column)
        assert not app.sort.ascending
        assert app.filtered_items[0]["status"] == "TERMINATED"

    @pytest.mark.asyncio
    async def test_sort_survives_filter_changes(self, app) -> None:
        await app.refresh_current()
        app.sort_by_column(0)
        app.sort_by_column(0)
        app.set_filter_text("running")
        assert [i["name"] for i in app.filtered_items] == ["vm-4", "vm-2", "vm-0"]

    @pytest.mark.asyncio
    async def test_clear_sort_restores_fetch_order(self, app) -> None:
        await app.refresh_current()
        app.sort_by_column(0)
        app.sort_by_column(0)
        app.clear_sort()
        assert [i["name"] for i in app.filtered_items] == [f"vm-{n}" for n in range(5)]

    @pytest.mark.asyncio
    async def test_sort_by_visible_column_skips_hidden(self, app, store) -> None:
        await app.refresh_current()
        store.set_hidden_columns("compute-instances", {"ZONE"})
        app.sort_by_visible_column(1)
        assert app.sort.column_index == 2


class TestCursorAndSelection:
    @pytest.mark.asyncio
    async def test_cursor_bounds(self, app) -> None:
        await app.refresh_current()
        app.previous()
        assert app.selected == 0
        app.go_to_bottom()
        assert app.selected == 4
        app.next()
        assert app.selected == 4
        app.page_up(10)
        assert app.selected == 0
        app.page_down(3)
        assert app.selected == 3
        app.jump_to(9)
        assert app.selected == 3

    @pytest.mark.asyncio
    async def test_range_selection(self, app) -> None:
        await app.refresh_current()
        app.selected = 1
        app.extend_selection_down()
        app.extend_selection_down()
        assert app.selection.indices == {1, 2, 3}
        assert app.selected == 3
        app.extend_selection_up()
        assert app.selection.indices == {1, 2, 3}
        assert [t.resource_id for t in app.selected_targets()] == ["vm-1", "vm-2", "vm-3"]

    @pytest.mark.asyncio
    async def test_select_all_and_clear(self, app) -> None:
        await app.refresh_current()
        app.toggle_visual_mode()
        app.select_all()
        assert len(app.selection) == 5
        app.clear_selection()
        assert len(app.selection) == 0
        assert not app.selection.visual_mode

    @pytest.mark.asyncio
    async def test_viewport_follows_cursor(self, app) -> None:
        await app.refresh_current()
        app.update_viewport(3)
        app.go_to_bottom()
        app.ensure_visible()
        assert app.selected in app.visible_range()
        assert app.visible_range() == range(2, 5)


class TestNavigation:
    @pytest.mark.asyncio
    async def test_drill_into_sub_resource(self, app, client) -> None:
        await app.navigate_to_resource("compute-networks")
        app.selected = 1

        assert await app.navigate_to_sub_resource("compute-subnetworks")

        assert app.current_resource_key == "compute-subnetworks"
        assert app.nav.parent.display_name == "prod-vpc"
        _, url, params = client.calls[-1]
        assert url.endswith("/regions/us-central1/subnetworks")
        assert params == [("filter", f'network="{app.nav.parent.item["selfLink"]}"')]
        assert app.breadcrumb() == ["compute-networks:prod-vpc", "compute-subnetworks"]

    @pytest.mark.asyncio
    async def test_back_restores_parent_collection(self, app) -> None:
        await app.navigate_to_resource("compute-networks")
        await app.navigate_to_sub_resource("compute-firewalls")

        assert await app.navigate_back()
        assert app.current_resource_key == "compute-networks"
        assert app.nav.parent is None
        assert len(app.items) == 2
        assert not await app.navigate_back()

    @pytest.mark.asyncio
    async def test_not_a_sub_resource(self, app) -> None:
        await app.refresh_current()
        assert not await app.navigate_to_sub_resource("compute-firewalls")
        assert app.status_error == "compute-firewalls is not a sub-resource of compute-instances"
        assert app.current_resource_key == "compute-instances"

    @pytest.mark.asyncio
    async def test_unknown_resource(self, app) -> None:
        assert not await app.navigate_to_resource("compute-teapots")
        assert app.status_error == "Unknown resource: compute-teapots"
        assert app.current_resource_key == "compute-instances"

    @pytest.mark.asyncio
    async def test_switch_resets_view_and_remembers_resource(self, app, store) -> None:
        await app.refresh_current()
        app.set_filter_text("vm-1")
        app.sort_by_column(0)
        await app.navigate_to_resource("compute-networks")
        assert app.filter.text == ""
        assert app.sort is None
        assert app.pagination.current_page == 1
        assert store.config.last_resource == "compute-networks"

    @pytest.mark.asyncio
    async def test_nested_drill_keeps_stack(self, app, client) -> None:
        def router(method, url, params):
            if url.endswith("/b"):
                return {"items": [{"name": "logs"}]}
            return {"items": [{"name": "2024/app.log", "size": "10"}]}

        client.router = router
        await app.navigate_to_resource("storage-buckets")
        await app.navigate_to_sub_resource("storage-objects")
        assert client.urls()[-1].endswith("/b/logs/o")
        assert app.breadcrumb() == ["storage-buckets:logs", "storage-objects"]


class TestProjectAndZone:
    @pytest.mark.asyncio
    async def test_switch_zone_persists(self, app, store) -> None:
        await app.switch_zone(ALL_ZONES)
        assert app.zone == ALL_ZONES
        assert store.config.zone == ALL_ZONES

    @pytest.mark.asyncio
    async def test_zone_switch_starts_from_first_page(self, app, client) -> None:
        client.router = paged_router(pages=3)
        await app.refresh_current()
        await app.next_page()
        app.selected = 1
        app.toggle_selection()

        await app.switch_zone("us-east1-b")
        await app.refresh_current()

        _, url, params = client.calls[-1]
        assert url.endswith("/zones/us-east1-b/instances")
        assert "pageToken" not in dict(params)
        assert app.pagination.current_page == 1
        assert app.pagination.token_stack == []
        assert app.selected == 0
        assert not app.selection.indices
        assert app.status_error is None

    @pytest.mark.asyncio
    async def test_project_switch_starts_from_first_page(self, app, client) -> None:
        client.router = paged_router(pages=3)
        await app.refresh_current()
        await app.next_page()

        assert await app.switch_project("other-project")
        await app.refresh_current()

        _, url, params = client.calls[-1]
        assert "/projects/other-project/" in url
        assert "pageToken" not in dict(params)
        assert app.pagination.current_page == 1

    @pytest.mark.asyncio
    async def test_all_zones_uses_aggregated_listing(self, app, client) -> None:
        client.router = lambda method, url, params: {
            "items": {
                "zones/us-central1-a": {"instances": [{"name": "a"}]},
                "zones/us-east1-b": {"instances": [{"name": "b"}]},
            }
        }
        await app.switch_zone(ALL_ZONES)
        await app.refresh_current()
        assert client.urls()[-1].endswith("/aggregated/instances")
        assert [i["name"] for i in app.items] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_switch_project_refreshes_credentials_and_theme(
        self, registry, backend, tracker, store
    ) -> None:
        class Credentials:
            refreshed = 0

            async def get_token(self):
                return "t"

            async def refresh_token(self):
                Credentials.refreshed += 1
                return "t2"

        store.config.project_themes["prod-project"] = "production"
        app = App(registry, backend, tracker, store, credentials=Credentials())

        assert await app.switch_project("prod-project")
        assert app.project == "prod-project"
        assert store.config.project_id == "prod-project"
        assert app.themes.name == "production"
        assert Credentials.refreshed == 1

    @pytest.mark.asyncio
    async def test_picker_selection(self, app) -> None:
        app.set_zones([ALL_ZONES, "europe-west1-b", "us-central1-a"])
        app.enter_zones_mode()
        assert app.zones.current == "us-central1-a"
        app.previous()
        await app.select_zone()
        assert app.zone == "europe-west1-b"
        assert app.mode == Mode.NORMAL


class TestDescribeAndColumns:
    @pytest.mark.asyncio
    async def test_describe_fetches_full_record(self, app, client) -> None:
        await app.refresh_current()
        client.router = lambda method, url, params: {"name": "vm-0", "detail": "full"}
        await app.enter_describe_mode()
        assert app.mode == Mode.DESCRIBE
        assert '"detail": "full"' in app.describe_text()
        assert client.urls()[-1].endswith("/zones/us-central1-a/instances/vm-0")

    @pytest.mark.asyncio
    async def test_describe_failure_shows_listed_record(self, app, client) -> None:
        await app.refresh_current()
        client.router = lambda method, url, params: APIError("gone", status_code=404)
        await app.enter_describe_mode()
        assert app.mode == Mode.DESCRIBE
        assert '"name": "vm-0"' in app.describe_text()
        assert app.status_error == "Resource not found."

    @pytest.mark.asyncio
    async def test_describe_scrolling(self, app) -> None:
        await app.refresh_current()
        await app.enter_describe_mode()
        app.scroll_describe(-5)
        assert app.describe.scroll == 0
        app.describe_scroll_to_bottom(visible_lines=2)
        assert app.describe.scroll == app.describe_line_count() - 2

    @pytest.mark.asyncio
    async def test_column_config_persists_hidden_columns(self, app, store) -> None:
        await app.refresh_current()
        app.enter_column_config_mode()
        app.column_config.selected = 1
        app.toggle_column_visibility()
        app.apply_column_config()

        assert app.mode == Mode.NORMAL
        assert store.get_hidden_columns("compute-instances") == {"ZONE"}
        assert "ZONE" not in [c.header for c in app.visible_columns()]

    def test_last_visible_column_cannot_be_hidden(self, app, store) -> None:
        store.set_hidden_columns(
            "compute-instances",
            {"ZONE", "STATUS", "MACHINE TYPE", "INTERNAL IP", "EXTERNAL IP"},
        )
        app.enter_column_config_mode()
        app.toggle_column_visibility()
        assert app.column_config.visible_count == 1

    @pytest.mark.asyncio
    async def test_cancel_discards_changes(self, app, store) -> None:
        app.enter_column_config_mode()
        app.toggle_column_visibility()
        app.cancel_column_config()
        assert store.get_hidden_columns("compute-instances") == set()


class TestNotifications:
    @pytest.mark.asyncio
    async def test_poll_cycle_refreshes_on_completion(self, app, client, clock) -> None:
        nid = app.create_notification("stop_instance", "compute", "vm-0")
        app.mark_notification_in_progress(nid, "https://example.test/operations/op-1")

        def router(method, url, params):
            if "operations" in url:
                return {"status": "DONE"}
            return {"items": []}

        client.router = router
        assert app.poll_tick(clock.now + 5) == 1
        await app.poller.wait_idle()
        assert await app.apply_poll_results() == 1

        assert app.tracker.get(nid).is_terminal
        assert client.urls()[-1].endswith("/instances")

    def test_disabled_notifications(self, app, store) -> None:
        store.config.notifications.enabled = False
        assert app.create_notification("stop_instance", "compute", "vm-0") is None
        assert app.poll_tick() == 0

    def test_status_priority(self, app, clock) -> None:
        app.loading = True
        assert app.status_text(clock.now) == "Loading..."
        app.create_notification("start_instance", "compute", "vm-0")
        assert app.status_text(clock.now) == "◯ Starting vm-0..."
        app.status_error = "boom"
        assert app.status_text(clock.now) == "boom"
