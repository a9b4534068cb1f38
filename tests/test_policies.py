import pytest
from django.contrib.auth.models import AnonymousUser

from freight.policies.navigation import get_sidebar_items
from freight.policies.order_actions import actions_for
from freight.policies.roles import can_dispatch

pytestmark = pytest.mark.django_db


@pytest.mark.parametrize(
    "role, expected",
    [
        ("dispatcher", True),
        ("fleet_manager", True),
        ("admin", True),
        ("accounts", False),
    ],
)
def test_can_dispatch(user_factory, role, expected):
    assert can_dispatch(user_factory(role=role)) is expected


def test_superuser_can_dispatch(user_factory):
    assert can_dispatch(user_factory(role="accounts", is_superuser=True))


def test_sidebar_by_role(user_factory):
    dispatcher_urls = [i["url"] for i in get_sidebar_items(user_factory(role="dispatcher"))]
    accounts_urls = [i["url"] for i in get_sidebar_items(user_factory(role="accounts"))]
    assert dispatcher_urls == ["dashboard", "create_order", "orders_list", "manifests_list"]
    assert accounts_urls == ["dashboard", "orders_list", "manifests_list"]
    assert get_sidebar_items(AnonymousUser()) == []


def test_order_actions_for_dispatcher(dispatcher, order_factory, manifest_factory):
    order = order_factory()
    assert actions_for(dispatcher, order) == [
        "edit_order",
        "create_assignment",
        "split_order",
        "view_history",
    ]
    manifest_factory()
    assert "assign_manifest" in actions_for(dispatcher, order)


def test_assign_manifest_needs_an_active_manifest(
    dispatcher, order_factory, manifest_factory
):
    order = order_factory()
    manifest_factory(status="completed")
    manifest_factory(status="cancelled")
    assert "assign_manifest" not in actions_for(dispatcher, order)


def test_order_actions_without_leg(dispatcher, order_factory):
    actions = actions_for(dispatcher, order_factory(with_leg=False))
    assert "split_order" not in actions
    assert "assign_manifest" not in actions


def test_order_actions_for_accounts(user_factory, order_factory):
    assert actions_for(user_factory(role="accounts"), order_factory()) == ["view_history"]
