"""Custom locations (routes) of an instance."""

import logging
from dataclasses import dataclass
from typing import List

from .errors import NotFoundError, ValidationError
from .models import Location, Value
from .paths import is_route_path_valid
from .store import ObjectStore, fetch_instance
from .values import resolve_value

logger = logging.getLogger(__name__)


@dataclass
class Route:
    """A path rule: inline content or a forwarding destination."""

    path: str
    destination: str = ""
    content: str = ""
    https_only: bool = False


def validate_route(route: Route) -> None:
    """Check a route before it is written. Order of checks is significant."""
    if not route.path:
        raise ValidationError("path is required")
    if not is_route_path_valid(route.path):
        raise ValidationError("invalid path format")
    if not route.content and not route.destination:
        raise ValidationError("either content or destination are required")
    if route.content and route.destination:
        raise ValidationError("cannot set both content and destination")
    if route.content and route.https_only:
        raise ValidationError("cannot set both content and httpsonly")


class RouteManager:
    """Reads and edits the ordered locations of an instance."""

    def __init__(self, store: ObjectStore, namespace: str):
        self.store = store
        self.namespace = namespace

    def get_routes(self, instance_name: str) -> List[Route]:
        """Resolve every location in order.

        Locations whose content resolves to empty and that have no
        destination are left out.
        """
        instance = fetch_instance(self.store, self.namespace, instance_name)

        routes = []
        for location in instance.spec.locations or []:
            content = resolve_value(self.store, self.namespace, location.content)
            if not content and not location.destination:
                continue
            routes.append(Route(
                path=location.path,
                destination=location.destination,
                content=content,
                https_only=location.force_https,
            ))
        return routes

    def delete_route(self, instance_name: str, path: str) -> None:
        instance = fetch_instance(self.store, self.namespace, instance_name)

        locations = instance.spec.locations or []
        remaining = [loc for loc in locations if loc.path != path]
        if len(remaining) == len(locations):
            raise NotFoundError("path does not exist")

        instance.spec.locations = remaining or None
        self.store.update_instance(instance)
        logger.info(f"Deleted route {path} of instance {instance_name}")

    def update_route(self, instance_name: str, route: Route) -> None:
        """Create or replace the location for route.path.

        An existing location keeps its position; a new one is appended.
        """
        instance = fetch_instance(self.store, self.namespace, instance_name)
        validate_route(route)

        if instance.spec.locations is None:
            instance.spec.locations = []

        location = next((loc for loc in instance.spec.locations if loc.path == route.path), None)
        if location is None:
            location = Location(path=route.path)
            instance.spec.locations.append(location)

        if route.content:
            location.content = Value(value=route.content)
            location.destination = ""
            location.force_https = False
        else:
            location.content = None
            location.destination = route.destination
            location.force_https = route.https_only

        self.store.update_instance(instance)
        logger.info(f"Updated route {route.path} of instance {instance_name}")
