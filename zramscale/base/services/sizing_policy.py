"""Tiered, pressure-adjusted ZRAM sizing.

Pure functions only: no I/O, no logging, no state.
"""

from typing import Optional

from zramscale.abstractions.types.zram_types import (
    MIB, GIB, DecisionReason, ScalingDecision, SizingPolicy
)

SMALL_TIER_LIMIT_BYTES = 1 * GIB
MEDIUM_TIER_LIMIT_BYTES = 2 * GIB

ELEVATED_RATIO_STEP = 20
EMERGENCY_RATIO = 100


def select_base_ratio(total_bytes: int, policy: SizingPolicy) -> int:
    """Pick the RAM-tier ratio; tier boundaries belong to the lower tier."""
    if total_bytes <= SMALL_TIER_LIMIT_BYTES:
        return policy.small_ratio
    if total_bytes <= MEDIUM_TIER_LIMIT_BYTES:
        return policy.medium_ratio
    return policy.large_ratio


def compute_target_bytes(total_bytes: int, ratio: int, minimum_capacity_bytes: int) -> int:
    """Share of RAM in whole MiB, floored at the minimum and capped at RAM size."""
    total_mib = total_bytes // MIB
    target = (total_mib * ratio // 100) * MIB
    target = max(target, minimum_capacity_bytes)
    return min(target, total_bytes)


def select_effective_ratio(total_bytes: int,
                           available_bytes: int,
                           policy: SizingPolicy,
                           device_count: int = 1,
                           current_ratio: Optional[int] = None) -> ScalingDecision:
    """Compute the scaling decision for one cycle.

    Args:
        total_bytes: Total system RAM
        available_bytes: Currently available RAM
        policy: Sizing policy
        device_count: Number of devices the target is divided across
        current_ratio: Ratio applied in the previous cycle. The policy is
            two-tier and memoryless, so it does not change the result; it is
            accepted so callers can thread loop state through explicitly.

    Returns:
        ScalingDecision with ratio, target bytes and reason
    """
    if device_count < 1:
        raise ValueError(f"device_count must be >= 1, got {device_count}")

    base = select_base_ratio(total_bytes, policy)
    ratio, reason = base, DecisionReason.TIER_DEFAULT

    if policy.dynamic_scaling_enabled:
        low, safe = policy.thresholds_for(total_bytes)
        if available_bytes < low:
            ratio, reason = EMERGENCY_RATIO, DecisionReason.PRESSURE_EMERGENCY
        elif available_bytes < safe:
            ratio = min(base + ELEVATED_RATIO_STEP, EMERGENCY_RATIO)
            reason = DecisionReason.PRESSURE_ELEVATED

    return ScalingDecision(
        target_ratio=ratio,
        target_total_bytes=compute_target_bytes(total_bytes, ratio, policy.minimum_capacity_bytes),
        reason=reason,
        device_count=device_count,
    )
