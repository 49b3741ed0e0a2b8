"""
Static form -> extraction routine mapping.

Loaded once from form_routing.yaml and validated against the registered
routines. Resolution is total: unknown keys fall back to the default routine.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

_ROUTING_PATH = Path(__file__).parent / "form_routing.yaml"


@lru_cache(maxsize=1)
def load_routing_table() -> dict[str, Any]:
    """Load and validate form_routing.yaml.

    Raises:
        FileNotFoundError: If the YAML file is missing.
        RoutingTableError: If the table is structurally invalid.
    """
    from pitchflow.extraction.routines import ROUTINES
    from pitchflow.routing.validator import RoutingTableError, validate_routing_table

    try:
        with _ROUTING_PATH.open() as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise RoutingTableError(f"Routing table YAML is malformed: {exc}") from exc
    validate_routing_table(data, frozenset(ROUTINES))
    return data


@lru_cache(maxsize=1)
def get_form_analysis_mapping() -> Mapping[str, str]:
    """Return the read-only routing key -> routine mapping."""
    return MappingProxyType(dict(load_routing_table().get("routes") or {}))


def get_default_routine() -> str:
    return load_routing_table()["default"]


def routing_key(form_slug: str | None, source: str | None) -> str:
    """Routing key for a submission: its form slug, else ``source:<source>``."""
    if form_slug and form_slug.strip():
        return form_slug.strip()
    return f"source:{source or 'unknown'}"


def resolve_routine_name(form_slug: str | None, source: str | None = None) -> str:
    """Return the routine for a slug/source; never raises for unknown keys."""
    return get_form_analysis_mapping().get(routing_key(form_slug, source), get_default_routine())
