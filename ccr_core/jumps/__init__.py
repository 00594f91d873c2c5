"""
Default-contingent jump specifications.

Provides the three jump kinds and the per-object variants applied to
curves, FX quotes and spot-based forward price curves when the
counterparty defaults on a simulated path.
"""

from ccr_core.jumps.specs import (
    CurveRateJumpSpec,
    CurveValueJumpSpec,
    FxJumpSpec,
    JumpKind,
    JumpSpecification,
    SpotBasedJumpSpec,
    constant,
    create_curve_jump,
    create_jump,
)

__all__ = [
    "JumpKind",
    "JumpSpecification",
    "CurveRateJumpSpec",
    "CurveValueJumpSpec",
    "FxJumpSpec",
    "SpotBasedJumpSpec",
    "constant",
    "create_curve_jump",
    "create_jump",
]
