#!/usr/bin/env python3
"""
Route loader for fixed paths stored as JSON.

Two layouts are accepted, both holding (longitude, latitude) pairs:

* a plain JSON array: ``[[lon, lat], [lon, lat], ...]``
* GeoJSON: a ``LineString`` geometry, a ``Feature`` wrapping one, or a
  ``FeatureCollection`` whose LineString features are addressed by their
  ``id`` / ``name`` property.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import InvalidRouteError
from .models import Waypoint
from .routes import RouteConfig, validate_waypoints

logger = logging.getLogger(__name__)


@dataclass
class RouteInfo:
    """A named fixed route read from a file."""
    id: str
    name: str
    coordinates: List[Tuple[float, float]]  # (longitude, latitude) pairs
    properties: Dict[str, Any] = field(default_factory=dict)

    def waypoints(self, max_waypoints: Optional[int] = None) -> List[Waypoint]:
        """
        Convert coordinates to waypoints, optionally thinned out.

        Args:
            max_waypoints: Keep roughly this many points by taking every Nth
                coordinate; the last coordinate is always kept.
        """
        coords = self.coordinates
        step = 1
        if max_waypoints:
            step = max(1, len(coords) // max_waypoints)

        waypoints = [Waypoint.from_lon_lat(coords[i]) for i in range(0, len(coords), step)]

        # Ensure we include the last point if it wasn't included by stepping
        if len(coords) > 1 and waypoints:
            last = Waypoint.from_lon_lat(coords[-1])
            if (abs(last.latitude - waypoints[-1].latitude) > 1e-6 or
                    abs(last.longitude - waypoints[-1].longitude) > 1e-6):
                waypoints.append(last)
        return waypoints


def _parse_pairs(raw: Any, source: str) -> List[Tuple[float, float]]:
    if not isinstance(raw, list):
        raise InvalidRouteError(f"Expected a list of coordinates in {source}")
    pairs = []
    for i, coord in enumerate(raw):
        if not isinstance(coord, (list, tuple)) or len(coord) < 2:
            raise InvalidRouteError(f"Coordinate {i} in {source} is not a [lon, lat] pair",
                                    details={'index': i})
        try:
            pairs.append((float(coord[0]), float(coord[1])))
        except (TypeError, ValueError) as e:
            raise InvalidRouteError(f"Coordinate {i} in {source} is not numeric",
                                    details={'index': i}) from e
    return pairs


def _route_from_feature(feature: Dict[str, Any], fallback_id: str, source: str) -> Optional[RouteInfo]:
    geometry = feature.get('geometry') or {}
    if geometry.get('type') != 'LineString':
        return None
    properties = feature.get('properties') or {}
    route_id = str(properties.get('id') or feature.get('id') or fallback_id)
    name = str(properties.get('name') or properties.get('Name') or route_id)
    return RouteInfo(
        id=route_id,
        name=name,
        coordinates=_parse_pairs(geometry.get('coordinates', []), source),
        properties=properties,
    )


class RouteLoader:
    """Loads fixed routes from a JSON / GeoJSON file."""

    def __init__(self, path: str):
        self.path = path
        self._routes: Dict[str, RouteInfo] = {}
        self._loaded = False

    def load_routes(self) -> None:
        """Read and parse the file. Errors are raised, not swallowed."""
        if self._loaded:
            return

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except OSError as e:
            raise InvalidRouteError(f"Cannot read route file {self.path}: {e}") from e
        except json.JSONDecodeError as e:
            raise InvalidRouteError(f"Invalid JSON in route file {self.path}: {e}") from e

        default_id = os.path.splitext(os.path.basename(self.path))[0]
        routes: Dict[str, RouteInfo] = {}

        if isinstance(data, list):
            routes[default_id] = RouteInfo(default_id, default_id, _parse_pairs(data, self.path))
        elif isinstance(data, dict):
            kind = data.get('type')
            if kind == 'FeatureCollection':
                for i, feature in enumerate(data.get('features', [])):
                    if not isinstance(feature, dict) or feature.get('type') != 'Feature':
                        continue
                    route = _route_from_feature(feature, f"{default_id}-{i}", self.path)
                    if route is not None:
                        routes[route.id] = route
            elif kind == 'Feature':
                route = _route_from_feature(data, default_id, self.path)
                if route is not None:
                    routes[route.id] = route
            elif kind == 'LineString':
                routes[default_id] = RouteInfo(
                    default_id, default_id, _parse_pairs(data.get('coordinates', []), self.path))
            else:
                raise InvalidRouteError(f"Unsupported GeoJSON type {kind!r} in {self.path}")
        else:
            raise InvalidRouteError(f"Route file {self.path} must hold a JSON array or object")

        if not routes:
            raise InvalidRouteError(f"No LineString routes found in {self.path}")

        self._routes = routes
        self._loaded = True
        logger.info("Loaded %d route(s) from %s", len(routes), self.path)

    def get_routes(self) -> Dict[str, RouteInfo]:
        if not self._loaded:
            self.load_routes()
        return self._routes.copy()

    def get_route(self, route_id: Optional[str] = None) -> RouteInfo:
        """
        Get a route by ID or name; the first route when no ID is given.

        Raises:
            InvalidRouteError: no such route
        """
        routes = self.get_routes()
        if route_id is None:
            return next(iter(routes.values()))
        if route_id in routes:
            return routes[route_id]
        for route in routes.values():
            if route.name == route_id:
                return route
        raise InvalidRouteError(f"Route {route_id!r} not found in {self.path}",
                                details={'available': sorted(routes)})

    def get_route_names(self) -> List[Tuple[str, str]]:
        """List of (route_id, display_name) tuples sorted by name."""
        return sorted(((r.id, r.name) for r in self.get_routes().values()),
                      key=lambda x: (x[1], x[0]))


def load_waypoints(path: str, route_id: Optional[str] = None,
                   max_waypoints: Optional[int] = None) -> List[Waypoint]:
    """
    Load and validate the waypoints of one route.

    Raises:
        InvalidRouteError: unreadable file, unknown route, or fewer than two
            distinct points
    """
    route = RouteLoader(path).get_route(route_id)
    return validate_waypoints(route.waypoints(max_waypoints))


def load_route_config(path: str, route_id: Optional[str] = None,
                      max_waypoints: Optional[int] = None) -> RouteConfig:
    """Build a fixed RouteConfig from a route file."""
    route = RouteLoader(path).get_route(route_id)
    waypoints = validate_waypoints(route.waypoints(max_waypoints))
    return RouteConfig.fixed(waypoints, metadata={'id': route.id, 'name': route.name})
