"""Form family routing table."""

from pitchflow.routing.loader import (
    get_default_routine,
    get_form_analysis_mapping,
    load_routing_table,
    resolve_routine_name,
    routing_key,
)
from pitchflow.routing.validator import RoutingTableError, validate_routing_table

__all__ = [
    "RoutingTableError",
    "get_default_routine",
    "get_form_analysis_mapping",
    "load_routing_table",
    "resolve_routine_name",
    "routing_key",
    "validate_routing_table",
]
