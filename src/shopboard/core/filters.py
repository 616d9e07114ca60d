"""Pure filter predicate shared by the fetch layer and client-side narrowing."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from shopboard.core.models.entities import FilterSpec
from shopboard.core.time import ensure_aware

if TYPE_CHECKING:
    from shopboard.core.models.entities import WorkOrderCard

SEARCH_FIELDS = (
    "external_ref",
    "vehicle_plate",
    "vehicle_make",
    "vehicle_model",
    "description",
    "assigned_mechanic_name",
)

EMPTY_FILTER = FilterSpec()


def _text(card: object, name: str) -> str | None:
    value = getattr(card, name, None)
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _created_at(card: object) -> datetime | None:
    value = getattr(card, "created_at", None)
    return ensure_aware(value) if isinstance(value, datetime) else None


def search_text(card: WorkOrderCard) -> str:
    """Lower-cased text searched by the free-text filter."""
    parts = [_text(card, name) for name in SEARCH_FIELDS]
    return " ".join(part for part in parts if part).lower()


def matches(card: WorkOrderCard, spec: FilterSpec | None) -> bool:
    """Return True when ``card`` satisfies every populated clause of ``spec``."""
    if spec is None:
        return True

    if spec.mechanic_id is not None:
        if getattr(card, "assigned_mechanic_id", None) != spec.mechanic_id:
            return False

    if spec.priority:
        if getattr(card, "priority", None) not in spec.priority:
            return False

    if spec.vehicle_make is not None:
        make = _text(card, "vehicle_make")
        if make is None or make.casefold() != spec.vehicle_make.casefold():
            return False

    if spec.search is not None:
        if spec.search.lower() not in search_text(card):
            return False

    if spec.date_from is not None or spec.date_to is not None:
        created = _created_at(card)
        if created is None:
            return False
        if spec.date_from is not None and created < spec.date_from:
            return False
        if spec.date_to is not None and created > spec.date_to:
            return False

    return True


def is_empty(spec: FilterSpec | None) -> bool:
    if spec is None:
        return True
    return not (
        spec.mechanic_id
        or spec.priority
        or spec.vehicle_make
        or spec.search
        or spec.date_from
        or spec.date_to
    )


def split_filter(spec: FilterSpec | None) -> tuple[FilterSpec, FilterSpec]:
    """Split into (backend-evaluable equality/range part, locally applied part)."""
    if spec is None:
        return EMPTY_FILTER, EMPTY_FILTER
    remote = FilterSpec(
        mechanic_id=spec.mechanic_id,
        date_from=spec.date_from,
        date_to=spec.date_to,
    )
    local = FilterSpec(
        priority=spec.priority,
        vehicle_make=spec.vehicle_make,
        search=spec.search,
    )
    return remote, local
