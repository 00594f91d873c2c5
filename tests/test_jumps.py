"""
Tests for default-contingent jumps on market objects.
"""

import numpy as np
import pytest

from ccr_core.jumps import (
    CurveRateJumpSpec,
    CurveValueJumpSpec,
    FxJumpSpec,
    JumpKind,
    SpotBasedJumpSpec,
    constant,
    create_curve_jump,
    create_jump,
)
from ccr_core.market import (
    Curve,
    DayCount,
    DiscountCurve,
    ForwardCurve,
    ForwardPriceCurve,
    FxRate,
    SpotPrice,
    SurvivalCurve,
)


@pytest.fixture
def forward_curve() -> ForwardCurve:
    """Value-style curve flat at 100."""
    return ForwardCurve(tenors=[1.0, 2.0], values=[100.0, 100.0])


class TestJumpKinds:
    """Tests for how each kind combines with the pre-jump value."""

    def test_absolute(self, forward_curve: ForwardCurve) -> None:
        create_jump(forward_curve, JumpKind.ABSOLUTE, constant(5.0)).apply_jump(0.5)
        assert np.allclose(forward_curve.values, 105.0)

    def test_relative(self, forward_curve: ForwardCurve) -> None:
        create_jump(forward_curve, JumpKind.RELATIVE, constant(1.1)).apply_jump(0.5)
        assert np.allclose(forward_curve.values, 110.0)

    def test_specified(self, forward_curve: ForwardCurve) -> None:
        create_jump(forward_curve, JumpKind.SPECIFIED, constant(7.0)).apply_jump(0.5)
        assert np.allclose(forward_curve.values, 7.0)

    def test_value_function_receives_date(self, forward_curve: ForwardCurve) -> None:
        calls: list[float] = []

        def value_fn(date: float) -> float:
            calls.append(date)
            return 10.0 * date

        create_jump(forward_curve, JumpKind.ABSOLUTE, value_fn).apply_jump(0.5)
        assert calls == [0.5]
        assert np.allclose(forward_curve.values, 105.0)


class TestCurveJumps:
    """Tests for rate-style and value-style curve jumps."""

    def test_dispatch_on_style(self) -> None:
        assert isinstance(
            create_curve_jump(ForwardCurve([1.0], [1.0]), JumpKind.ABSOLUTE, constant(0.0)),
            CurveValueJumpSpec,
        )
        assert isinstance(
            create_curve_jump(DiscountCurve.flat(0.02, [1.0]), JumpKind.ABSOLUTE, constant(0.0)),
            CurveRateJumpSpec,
        )
        assert isinstance(
            create_jump(SurvivalCurve.flat(0.01, [1.0]), JumpKind.ABSOLUTE, constant(0.0)),
            CurveRateJumpSpec,
        )
        value_style = Curve(tenors=[1.0], values=[1.0], day_count=DayCount.NONE)
        assert isinstance(
            create_jump(value_style, JumpKind.ABSOLUTE, constant(0.0)), CurveValueJumpSpec
        )

    def test_value_jump_includes_jump_date(self) -> None:
        curve = ForwardCurve(tenors=[1.0, 2.0, 3.0], values=[100.0, 100.0, 100.0])
        create_jump(curve, JumpKind.ABSOLUTE, constant(5.0)).apply_jump(2.0)
        assert np.allclose(curve.values, [100.0, 105.0, 105.0])

    def test_rate_jump_excludes_jump_date(self) -> None:
        curve = DiscountCurve.flat(0.02, [1.0, 2.0, 3.0])
        before = curve.values.copy()
        create_jump(curve, JumpKind.ABSOLUTE, constant(0.01)).apply_jump(2.0)
        assert curve.values[0] == before[0]
        assert curve.values[1] == before[1]
        assert np.isclose(curve.values[2], np.exp(-0.03 * 3.0))

    def test_rate_jump_relative(self) -> None:
        curve = DiscountCurve.flat(0.02, [1.0, 2.0, 3.0])
        create_jump(curve, JumpKind.RELATIVE, constant(2.0)).apply_jump(0.5)
        assert np.allclose(curve.values, np.exp(-0.04 * np.array([1.0, 2.0, 3.0])))

    def test_rate_jump_specified(self) -> None:
        curve = SurvivalCurve.flat(0.01, [1.0, 5.0])
        create_jump(curve, JumpKind.SPECIFIED, constant(0.5)).apply_jump(0.0)
        assert np.allclose(curve.values, np.exp(-0.5 * np.array([1.0, 5.0])))

    def test_rate_jump_uses_day_count(self) -> None:
        curve = DiscountCurve.flat(0.02, [1.0, 2.0], day_count=DayCount.ACT360)
        before = curve.values.copy()
        create_jump(curve, JumpKind.ABSOLUTE, constant(0.01)).apply_jump(0.5)
        tau = np.array([1.0, 2.0]) * 365.0 / 360.0
        assert np.allclose(curve.values, before * np.exp(-0.01 * tau))


class TestQuoteJumps:
    """Tests for FX and spot jumps."""

    def test_fx_jump(self) -> None:
        fx = FxRate("EUR", "USD", 1.10)
        jump = create_jump(fx, JumpKind.RELATIVE, constant(0.9))
        assert isinstance(jump, FxJumpSpec)
        jump.apply_jump(1.5)
        assert np.isclose(fx.rate, 0.99)
        assert fx.spot == 1.5

    def test_fx_jump_specified(self) -> None:
        fx = FxRate("EUR", "USD", 1.10)
        create_jump(fx, JumpKind.SPECIFIED, constant(1.25)).apply_jump(1.0)
        assert fx.rate == 1.25

    def test_spot_jump_moves_forwards(self) -> None:
        curve = ForwardPriceCurve(
            spot=SpotPrice("GOLD", 2000.0),
            discount_curve=DiscountCurve.flat(0.03, [1.0, 5.0]),
        )
        forward_before = curve.forward(1.0)
        jump = create_jump(curve, JumpKind.RELATIVE, constant(0.5))
        assert isinstance(jump, SpotBasedJumpSpec)
        jump.apply_jump(0.25)
        assert np.isclose(curve.spot.value, 1000.0)
        assert np.isclose(curve.forward(1.0), forward_before / 2.0)

    def test_unsupported_object(self) -> None:
        with pytest.raises(TypeError, match="No jump variant"):
            create_jump("not a market object", JumpKind.ABSOLUTE, constant(1.0))
