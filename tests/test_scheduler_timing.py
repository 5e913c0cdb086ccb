from __future__ import annotations

import pytest

from devmon.monitoring.scheduler import missed_boundaries, next_deadline


def test_next_boundary_when_on_time() -> None:
    assert next_deadline(10.0, 1.0, 10.4) == 11.0


def test_overrun_skips_missed_boundaries() -> None:
    # Tick due at 10 finished at 12.5: boundaries 11 and 12 are dropped.
    due = next_deadline(10.0, 1.0, 12.5)
    assert due == 13.0
    assert missed_boundaries(10.0, 1.0, due) == 2


def test_finishing_exactly_on_a_boundary_moves_past_it() -> None:
    assert next_deadline(10.0, 2.0, 14.0) == 16.0


def test_no_missed_boundaries_for_next_slot() -> None:
    assert missed_boundaries(0.0, 5.0, 5.0) == 0


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        next_deadline(0.0, 0.0, 1.0)
