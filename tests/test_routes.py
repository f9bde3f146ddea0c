"""Tests for custom routes."""

import pytest

from rpaas.errors import NotFoundError, ValidationError
from rpaas.models import ConfigMapKeyRef, Location, Value, ValueSource
from rpaas.routes import Route, RouteManager, validate_route

NAMESPACE = "rpaasv2"


@pytest.fixture
def routes(store):
    return RouteManager(store, NAMESPACE)


class TestValidateRoute:
    """Tests for validate_route."""

    @pytest.mark.parametrize("route,message", [
        (Route(path=""), "path is required"),
        (Route(path="no-slash", destination="app"), "invalid path format"),
        (Route(path="/a/../b", destination="app"), "invalid path format"),
        (Route(path="/"), "either content or destination are required"),
        (Route(path="/", content="x", destination="app"), "cannot set both content and destination"),
        (Route(path="/", content="x", https_only=True), "cannot set both content and httpsonly"),
    ])
    def test_errors(self, route, message):
        with pytest.raises(ValidationError) as exc_info:
            validate_route(route)
        assert str(exc_info.value) == message

    def test_destination_with_https_only(self):
        validate_route(Route(path="/", destination="app.local", https_only=True))


class TestGetRoutes:
    """Tests for RouteManager.get_routes."""

    def test_no_locations(self, store, routes):
        store.add_instance("my-instance")
        assert routes.get_routes("my-instance") == []

    def test_keeps_order_and_resolves_content(self, store, routes):
        store.add_config_map("locations", data={"static": "root /var/www;"})
        store.add_instance("my-instance", locations=[
            Location(path="/static", content=Value(value_from=ValueSource(
                config_map_key_ref=ConfigMapKeyRef(name="locations", key="static"),
            ))),
            Location(path="/app", destination="app.local", force_https=True),
        ])

        assert routes.get_routes("my-instance") == [
            Route(path="/static", content="root /var/www;"),
            Route(path="/app", destination="app.local", https_only=True),
        ]

    def test_skips_empty_locations(self, store, routes):
        """Locations resolving to nothing are not reported."""
        store.add_instance("my-instance", locations=[
            Location(path="/gone", content=Value(value_from=ValueSource(
                config_map_key_ref=ConfigMapKeyRef(name="missing", key="k"),
            ))),
            Location(path="/app", destination="app.local"),
        ])
        assert [r.path for r in routes.get_routes("my-instance")] == ["/app"]

    def test_instance_not_found(self, routes):
        with pytest.raises(NotFoundError):
            routes.get_routes("missing")


class TestUpdateRoute:
    """Tests for RouteManager.update_route."""

    def test_appends_new_route(self, store, routes):
        store.add_instance("my-instance", locations=[Location(path="/a", destination="a")])
        routes.update_route("my-instance", Route(path="/b", content="return 204;"))

        locations = store.get_instance(NAMESPACE, "my-instance").spec.locations
        assert [loc.path for loc in locations] == ["/a", "/b"]
        assert locations[1].content == Value(value="return 204;")

    def test_replaces_in_place(self, store, routes):
        """An existing path keeps its position."""
        store.add_instance("my-instance", locations=[
            Location(path="/a", content=Value(value="x")),
            Location(path="/b", destination="b"),
        ])
        routes.update_route("my-instance", Route(path="/a", destination="new", https_only=True))

        locations = store.get_instance(NAMESPACE, "my-instance").spec.locations
        assert locations[0] == Location(path="/a", destination="new", force_https=True)
        assert locations[1].path == "/b"

    def test_content_clears_destination(self, store, routes):
        store.add_instance("my-instance", locations=[
            Location(path="/a", destination="app", force_https=True),
        ])
        routes.update_route("my-instance", Route(path="/a", content="return 200;"))

        location = store.get_instance(NAMESPACE, "my-instance").spec.locations[0]
        assert location == Location(path="/a", content=Value(value="return 200;"))

    def test_validation_error_leaves_instance_untouched(self, store, routes):
        store.add_instance("my-instance")
        with pytest.raises(ValidationError):
            routes.update_route("my-instance", Route(path="/a"))
        assert store.get_instance(NAMESPACE, "my-instance").spec.locations is None

    def test_instance_checked_first(self, routes):
        """A missing instance is reported before invalid input."""
        with pytest.raises(NotFoundError):
            routes.update_route("missing", Route(path=""))


class TestDeleteRoute:
    """Tests for RouteManager.delete_route."""

    def test_removes_route(self, store, routes):
        store.add_instance("my-instance", locations=[
            Location(path="/a", destination="a"),
            Location(path="/b", destination="b"),
        ])
        routes.delete_route("my-instance", "/a")

        locations = store.get_instance(NAMESPACE, "my-instance").spec.locations
        assert [loc.path for loc in locations] == ["/b"]

    def test_removing_last_route_clears_list(self, store, routes):
        store.add_instance("my-instance", locations=[Location(path="/a", destination="a")])
        routes.delete_route("my-instance", "/a")
        assert store.get_instance(NAMESPACE, "my-instance").spec.locations is None

    def test_path_not_found(self, store, routes):
        store.add_instance("my-instance")
        with pytest.raises(NotFoundError) as exc_info:
            routes.delete_route("my-instance", "/a")
        assert str(exc_info.value) == "path does not exist"
