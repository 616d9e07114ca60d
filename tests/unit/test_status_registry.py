"""Tests for the status registry and column metadata."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from shopboard.core.models.enums import WorkOrderStatus
from shopboard.core.status_registry import (
    COLUMN_ORDER,
    DEFAULT_REGISTRY,
    STATUS_LABELS,
    StatusRegistry,
)

pytestmark = pytest.mark.unit


class TestColumnTable:
    def test_every_status_has_exactly_one_column(self) -> None:
        assert sorted(DEFAULT_REGISTRY.column_order()) == sorted(WorkOrderStatus)
        assert len(set(COLUMN_ORDER)) == len(COLUMN_ORDER)

    def test_display_order(self) -> None:
        assert DEFAULT_REGISTRY.column_order() == [
            WorkOrderStatus.PENDING,
            WorkOrderStatus.APPROVED,
            WorkOrderStatus.ASSIGNED,
            WorkOrderStatus.IN_PROGRESS,
            WorkOrderStatus.READY_FOR_PICKUP,
            WorkOrderStatus.COMPLETED,
            WorkOrderStatus.DECLINED,
        ]

    def test_configs_follow_display_order(self) -> None:
        configs = DEFAULT_REGISTRY.configs()
        assert [config.status for config in configs] == DEFAULT_REGISTRY.column_order()
        assert [config.order for config in configs] == list(range(len(configs)))

    def test_in_progress_has_default_wip_limit(self) -> None:
        assert DEFAULT_REGISTRY.wip_limit(WorkOrderStatus.IN_PROGRESS) == 10
        assert DEFAULT_REGISTRY.wip_limit(WorkOrderStatus.PENDING) is None

    def test_labels(self) -> None:
        assert DEFAULT_REGISTRY.label(WorkOrderStatus.READY_FOR_PICKUP) == "Ready for Pickup"
        assert DEFAULT_REGISTRY.label("in_progress") == "In Progress"


class TestUnknownStatus:
    @given(st.text())
    def test_config_lookup_never_raises(self, value: str) -> None:
        """Any raw value yields a usable column config."""
        config = DEFAULT_REGISTRY.config(value)
        assert config.status in WorkOrderStatus

    @given(st.text().filter(lambda s: DEFAULT_REGISTRY.coerce_status(s) is None))
    def test_unknown_values_fall_back_to_pending_with_raw_title(self, value: str) -> None:
        config = DEFAULT_REGISTRY.config(value)
        assert config.status == WorkOrderStatus.PENDING
        assert config.title == value
        assert DEFAULT_REGISTRY.label(value) == value

    def test_coerce_normalizes_case_and_whitespace(self) -> None:
        assert DEFAULT_REGISTRY.coerce_status("  In_Progress ") == WorkOrderStatus.IN_PROGRESS
        assert DEFAULT_REGISTRY.coerce_status("archived") is None
        assert DEFAULT_REGISTRY.coerce_status(None) is None
        assert DEFAULT_REGISTRY.coerce_status(3) is None

    @pytest.mark.parametrize("status", list(WorkOrderStatus))
    def test_known_statuses_keep_their_label(self, status: WorkOrderStatus) -> None:
        assert DEFAULT_REGISTRY.config(status.value).title == STATUS_LABELS[status]


class TestWipOverrides:
    def test_override_replaces_default(self) -> None:
        registry = StatusRegistry({WorkOrderStatus.IN_PROGRESS: 2})
        assert registry.wip_limit(WorkOrderStatus.IN_PROGRESS) == 2

    def test_none_disables_default_limit(self) -> None:
        registry = StatusRegistry({WorkOrderStatus.IN_PROGRESS: None})
        assert registry.wip_limit(WorkOrderStatus.IN_PROGRESS) is None

    def test_overrides_do_not_leak_into_default_registry(self) -> None:
        StatusRegistry({WorkOrderStatus.ASSIGNED: 1})
        assert DEFAULT_REGISTRY.wip_limit(WorkOrderStatus.ASSIGNED) is None


class TestNeighbor:
    def test_steps_through_display_order(self) -> None:
        assert DEFAULT_REGISTRY.neighbor(WorkOrderStatus.PENDING, 1) == WorkOrderStatus.APPROVED
        assert (
            DEFAULT_REGISTRY.neighbor(WorkOrderStatus.IN_PROGRESS, -1) == WorkOrderStatus.ASSIGNED
        )

    @given(st.sampled_from(list(WorkOrderStatus)), st.integers(min_value=-20, max_value=20))
    def test_neighbor_is_clamped_to_board_edges(
        self, status: WorkOrderStatus, step: int
    ) -> None:
        result = DEFAULT_REGISTRY.neighbor(status, step)
        expected = max(0, min(COLUMN_ORDER.index(status) + step, len(COLUMN_ORDER) - 1))
        assert result == COLUMN_ORDER[expected]
