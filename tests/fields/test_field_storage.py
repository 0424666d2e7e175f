"""
Tests for the field ledger, residual tracking and the dual-time source.
"""

import pytest
import numpy as np

from fvflow.constants import RESIDUAL_UNDEFINED
from fvflow.fields import (
    FieldLedger,
    ResidualTracker,
    DualTimeSource,
    DTSPhase,
    BDF2_COEFFICIENT,
    rms,
)
from fvflow.grid import SerialReductions


@pytest.fixture
def ledger():
    return FieldLedger(("rho", "m", "Et"), n_cells=4, n_boundary=2, components=(1, 3, 1))


class TestFieldLedger:
    """Per-equation storage."""

    def test_shapes(self, ledger):
        assert ledger.size() == 3
        assert ledger.index("Et") == 2
        assert ledger.conservative(0).shape == (4,)
        assert ledger.conservative(1).shape == (4, 3)
        assert ledger.boundary(1).shape == (2, 3)
        assert ledger.lhs(1).shape == (4,)

    def test_component_mismatch(self):
        with pytest.raises(ValueError):
            FieldLedger(("a", "b"), 3, 1, components=(1,))

    def test_reset_rhs_zeroes_rhs_and_diagonal(self, ledger):
        ledger.rhs(0)[:] = 5.0
        ledger.rhs(1)[:] = 1.0
        ledger.lhs(2)[:] = 3.0
        ledger.reset_rhs()
        for i in range(ledger.size()):
            assert np.all(ledger.rhs(i) == 0.0)
            assert np.all(ledger.lhs(i) == 0.0)

    def test_reset_body(self, ledger):
        ledger.body(1)[:] = 2.0
        ledger.reset_body()
        assert np.all(ledger.body(1) == 0.0)

    def test_views_stay_valid(self, ledger):
        view = ledger.rhs(0)
        ledger.reset_rhs()
        view += 1.0
        assert np.all(ledger.rhs(0) == 1.0)

    def test_store_and_checkpoint_copy(self, ledger):
        ledger.conservative(0)[:] = [1.0, 2.0, 3.0, 4.0]
        ledger.store()
        ledger.checkpoint()
        ledger.conservative(0)[:] = 0.0
        np.testing.assert_array_equal(ledger.conservative_o(0), [1.0, 2.0, 3.0, 4.0])
        np.testing.assert_array_equal(ledger.start(0), [1.0, 2.0, 3.0, 4.0])

    def test_unsmoothed_snapshot(self, ledger):
        ledger.rhs(2)[:] = 4.0
        ledger.snapshot_rhs()
        ledger.rhs(2)[:] = 1.0
        assert np.all(ledger.unsmoothed_rhs(2) == 4.0)
        ledger.reset_rhs()
        assert ledger.unsmoothed_rhs(2) is ledger.rhs(2)


class TestResidualTracker:
    """Normalized RMS residuals."""

    def test_rms_vector(self):
        values = np.array([[3.0, 4.0, 0.0], [0.0, 0.0, 0.0]])
        assert rms(values, SerialReductions()) == pytest.approx(np.sqrt(25.0 / 2.0))

    def test_sentinel_before_update(self):
        tracker = ResidualTracker(("a", "b"))
        assert tracker.combined() == RESIDUAL_UNDEFINED
        assert tracker.value(0) == RESIDUAL_UNDEFINED

    def test_reference_fixed_after_first_update(self):
        tracker = ResidualTracker(("a",))
        red = SerialReductions()
        tracker.update([np.full(4, 2.0)], red)
        assert tracker.value(0) == pytest.approx(1.0)
        tracker.update([np.full(4, 0.5)], red)
        assert tracker.value(0) == pytest.approx(0.25)
        np.testing.assert_allclose(tracker.reference, [2.0])

    def test_reset_keeps_reference(self):
        tracker = ResidualTracker(("a",))
        red = SerialReductions()
        tracker.update([np.full(4, 2.0)], red)
        tracker.reset()
        assert tracker.combined() == RESIDUAL_UNDEFINED
        tracker.update([np.full(4, 1.0)], red)
        assert tracker.value(0) == pytest.approx(0.5)

    def test_zero_initial_residual_uses_unit_reference(self):
        tracker = ResidualTracker(("a",))
        tracker.update([np.zeros(3)], SerialReductions())
        assert tracker.reference[0] == 1.0
        assert tracker.value(0) == 0.0

    def test_no_normalization(self):
        tracker = ResidualTracker(("a",))
        tracker.update([np.full(4, 3.0)], SerialReductions(), normalization="none")
        assert tracker.value(0) == pytest.approx(3.0)

    def test_combined_is_max(self):
        tracker = ResidualTracker(("a", "b"))
        red = SerialReductions()
        tracker.update([np.ones(2), np.ones(2)], red)
        tracker.update([np.full(2, 0.1), np.full(2, 0.3)], red)
        assert tracker.combined() == pytest.approx(0.3)

    def test_unknown_normalization(self):
        with pytest.raises(ValueError, match="Unknown normalization"):
            ResidualTracker(("a",)).update([np.ones(2)], SerialReductions(), normalization="max")


class TestDualTimeSource:
    """Two-half BDF2 source protocol."""

    def test_half_one_is_backward_euler(self):
        dts = DualTimeSource(1)
        dts.build(1, [np.array([2.0])])
        assert dts.phase is DTSPhase.FIRST_HALF
        assert dts.coefficient == 1.0
        np.testing.assert_array_equal(dts.source(0), [2.0])

    def test_blend_with_previous_step(self):
        dts = DualTimeSource(1)
        # Previous physical step froze 3.0
        dts.build(1, [np.array([3.0])])
        dts.build(2)
        # Current step freezes 2.0: 2 * 2.0 - 0.5 * 3.0
        dts.build(1, [np.array([2.0])])
        dts.build(2)
        assert dts.phase is DTSPhase.READY
        assert dts.coefficient == BDF2_COEFFICIENT
        np.testing.assert_allclose(dts.source(0), [2.5])

    def test_first_step_uses_constant_history(self):
        dts = DualTimeSource(1)
        dts.build(1, [np.array([2.0])])
        dts.build(2)
        np.testing.assert_allclose(dts.source(0), [2.0 * 2.0 - 0.5 * 2.0])

    def test_contributions_are_copied(self):
        dts = DualTimeSource(1)
        first = np.array([2.0])
        dts.build(1, [first])
        first[0] = 100.0
        np.testing.assert_array_equal(dts.source(0), [2.0])

    def test_invalid_half(self):
        dts = DualTimeSource(1)
        with pytest.raises(ValueError):
            dts.build(3, [np.ones(1)])

    def test_half_one_needs_contributions(self):
        with pytest.raises(ValueError):
            DualTimeSource(2).build(1, [np.ones(1)])

    def test_half_two_before_half_one(self):
        dts = DualTimeSource(1)
        with pytest.raises(RuntimeError):
            dts.build(2)
        dts.build(1, [np.ones(1)])
        dts.build(2)
        with pytest.raises(RuntimeError):
            dts.build(2)

    def test_source_before_build(self):
        dts = DualTimeSource(1)
        assert not dts.active
        with pytest.raises(RuntimeError):
            dts.source(0)
