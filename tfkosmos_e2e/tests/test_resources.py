"""Resources screen: tabs, filters, selection, pagination and the dependency graph."""
import pytest

from tfkosmos_e2e.errors import InvalidOption
from tfkosmos_e2e.options import Provider, ResourceTab

pytestmark = [pytest.mark.asyncio, pytest.mark.mock_app_options(scan_seconds=0.5)]


@pytest.fixture
def resources(mock_screens, aws_scan_id):
    return mock_screens.resources


async def test_user_list_is_paginated(resources):
    await resources.switch_tab(ResourceTab.USERS, Provider.AWS)
    assert await resources.get_resource_count() == 23
    assert await resources.get_row_count() == 10
    assert await resources.page_position() == (1, 3)


async def test_paging_stops_at_both_ends(resources):
    await resources.switch_tab(ResourceTab.USERS, Provider.AWS)
    assert not await resources.prev_page()

    assert await resources.next_page()
    assert await resources.next_page()
    assert await resources.page_position() == (3, 3)
    assert await resources.get_row_count() == 3
    assert not await resources.next_page()

    assert await resources.prev_page()
    assert await resources.page_position() == (2, 3)


async def test_select_all_then_deselect_all(resources):
    await resources.switch_tab(ResourceTab.USERS, Provider.AWS)
    await resources.select_all()
    assert await resources.get_selected_count() == 23
    await resources.deselect_all()
    assert await resources.get_selected_count() == 0


async def test_single_selection(resources):
    await resources.switch_tab(ResourceTab.USERS, Provider.AWS)
    await resources.select_resource(0)
    assert await resources.get_selected_count() == 1
    await resources.deselect_resource(0)
    assert await resources.get_selected_count() == 0


async def test_deselect_all_clears_partial_selection(resources):
    await resources.switch_tab(ResourceTab.USERS, Provider.AWS)
    await resources.select_resource(0)
    await resources.select_resource(3)
    assert await resources.get_selected_count() == 2
    await resources.deselect_all()
    assert await resources.get_selected_count() == 0


async def test_selection_survives_paging(resources):
    await resources.switch_tab(ResourceTab.USERS, Provider.AWS)
    await resources.select_resource(0)
    await resources.next_page()
    await resources.select_resource(0)
    assert await resources.get_selected_count() == 2


async def test_simple_search_and_clear(resources):
    await resources.switch_tab(ResourceTab.USERS, Provider.AWS)
    await resources.filter_by_simple_search("test-user-1")
    assert await resources.get_resource_count() == 10

    await resources.clear_filter()
    assert await resources.get_resource_count() == 23


async def test_close_filter_keeps_the_active_search(resources):
    await resources.switch_tab(ResourceTab.USERS, Provider.AWS)
    await resources.filter_by_simple_search("test-user-1")
    await resources.close_filter()
    assert not await resources.has_field("filter_input")
    assert await resources.get_resource_count() == 10

    await resources.close_filter()
    assert not await resources.has_field("filter_input")
    await resources.open_filter()
    assert await resources.has_field("filter_input")


async def test_advanced_query(resources):
    await resources.switch_tab(ResourceTab.USERS, Provider.AWS)
    await resources.filter_by_query('name LIKE "test-user-2*"')
    assert await resources.get_resource_count() == 4
    assert await resources.page_position() == (1, 1)


async def test_tab_counts(resources):
    await resources.switch_tab(ResourceTab.GROUPS, Provider.AWS)
    assert await resources.get_resource_count() == 2
    await resources.switch_tab("roles", Provider.AWS)
    assert await resources.get_resource_count() == 2


async def test_tab_of_other_provider_is_rejected(resources):
    with pytest.raises(InvalidOption) as excinfo:
        await resources.switch_tab(ResourceTab.ROLE_ASSIGNMENTS, Provider.AWS)
    assert "users" in excinfo.value.allowed
    with pytest.raises(InvalidOption):
        await resources.switch_tab("iam_everything")


async def test_dependency_graph_nodes(resources):
    await resources.switch_tab(ResourceTab.DEPENDENCIES, Provider.AWS)
    # 6 users, 2 groups and 2 policies carry the "test-" prefix.
    assert await resources.dependency_node_count() == 10


async def test_proceed_to_generation(resources, aws_scan_id):
    await resources.switch_tab(ResourceTab.USERS, Provider.AWS)
    await resources.select_resource(0)
    assert await resources.go_to_generate() == aws_scan_id
