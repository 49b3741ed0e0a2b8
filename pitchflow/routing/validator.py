"""Structural validation for form_routing.yaml."""

from __future__ import annotations

from typing import Any


class RoutingTableError(ValueError):
    """Raised when the routing table is malformed or names an unknown routine."""


def validate_routing_table(table: Any, known_routines: frozenset[str] | set[str]) -> None:
    """Validate the routing table.

    Requires a 'default' routine and a 'routes' mapping of non-empty string
    keys to known routine names.

    Raises:
        RoutingTableError: When structure or routine references are invalid.
    """
    if not isinstance(table, dict):
        raise RoutingTableError("routing table must be a mapping")

    default = table.get("default")
    if not isinstance(default, str) or not default.strip():
        raise RoutingTableError("routing table must have a non-empty 'default' routine")
    if default not in known_routines:
        raise RoutingTableError(f"routing table default '{default}' is not a known routine")

    routes = table.get("routes")
    if routes is None:
        return
    if not isinstance(routes, dict):
        raise RoutingTableError("routing table 'routes' must be a mapping")
    for key, routine in routes.items():
        if not isinstance(key, str) or not key.strip():
            raise RoutingTableError(f"routing keys must be non-empty strings, got {key!r}")
        if routine not in known_routines:
            raise RoutingTableError(f"route '{key}' references unknown routine '{routine}'")
