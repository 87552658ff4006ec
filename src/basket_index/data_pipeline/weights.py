from __future__ import annotations

import logging
import math

import numpy as np

from basket_index.data_pipeline.errors import InsufficientDataError
from basket_index.data_pipeline.logging_utils import log_event
from basket_index.data_pipeline.types import SizingSnapshot, WeightAssignment

logger = logging.getLogger(__name__)

_TOLERANCE = 1e-12
MIN_USABLE_ASSETS = 2


def _sanitize_metric(value: float) -> float:
    try:
        value_float = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value_float) or value_float < 0:
        return 0.0
    return value_float


def effective_bounds(min_weight: float, max_weight: float, count: int) -> tuple[float, float, bool]:
    """Relax bounds that cannot hold jointly for ``count`` assets.

    ``min_weight * count > 1`` lowers the minimum to ``1 / count`` and
    ``max_weight * count < 1`` raises the maximum to ``1 / count``.
    """
    if count <= 0:
        return min_weight, max_weight, False
    equal_share = 1.0 / count
    eff_min = min(min_weight, equal_share)
    eff_max = max(max_weight, equal_share)
    return eff_min, eff_max, (eff_min != min_weight or eff_max != max_weight)


def cap_and_redistribute(raw: np.ndarray, max_weight: float) -> np.ndarray:
    """Cap shares at ``max_weight`` and hand the excess to the uncapped assets.

    The excess is split in proportion to the uncapped assets' raw shares, or
    evenly when those raw shares are all zero. Redistribution repeats until no
    asset sits above the cap.
    """
    count = raw.shape[0]
    capped = raw >= max_weight
    weights = raw.copy()
    for _ in range(count):
        free = ~capped
        weights = np.where(capped, max_weight, 0.0)
        if not free.any():
            break
        remaining = 1.0 - max_weight * int(capped.sum())
        free_raw = float(raw[free].sum())
        if free_raw > 0:
            weights[free] = remaining * raw[free] / free_raw
        else:
            weights[free] = remaining / int(free.sum())
        newly_capped = free & (weights > max_weight + _TOLERANCE)
        if not newly_capped.any():
            break
        capped |= newly_capped
    return weights


def apply_floor(weights: np.ndarray, min_weight: float) -> np.ndarray:
    """Lift weights to ``min_weight``, funding the deficit from surplus above it."""
    floored = weights.copy()
    below = floored < min_weight - _TOLERANCE
    if not below.any():
        return floored
    deficit = float((min_weight - floored[below]).sum())
    floored[below] = min_weight
    surplus = np.where(below, 0.0, np.clip(floored - min_weight, 0.0, None))
    total_surplus = float(surplus.sum())
    if total_surplus > 0:
        floored -= surplus * min(1.0, deficit / total_surplus)
    return floored


def compute_weights(
    snapshot: SizingSnapshot,
    min_weight: float,
    max_weight: float,
    *,
    min_usable: int = MIN_USABLE_ASSETS,
) -> WeightAssignment:
    """Turn sizing metrics into a bounded allocation that sums to one.

    Raises ``InsufficientDataError`` when fewer than ``min_usable`` assets carry
    a positive metric. With a zero total (only reachable when ``min_usable`` is
    0) every asset gets ``1 / N``.
    """
    if min_weight < 0 or max_weight <= 0 or min_weight > max_weight:
        raise ValueError(f"Invalid weight bounds: min={min_weight}, max={max_weight}")

    assets = list(snapshot.metrics.keys())
    metrics = np.array([_sanitize_metric(snapshot.metrics[asset]) for asset in assets], dtype=float)
    usable = int((metrics > 0).sum())
    if usable < min_usable or not assets:
        raise InsufficientDataError(
            f"Only {usable} of {len(assets)} assets have a usable sizing metric "
            f"(need at least {max(min_usable, 1)})",
            usable=usable,
            required=max(min_usable, 1),
            total=len(assets),
        )

    eff_min, eff_max, relaxed = effective_bounds(min_weight, max_weight, len(assets))
    if relaxed:
        log_event(
            logger,
            "weight_bounds_relaxed",
            level=logging.WARNING,
            assets=len(assets),
            min_weight=min_weight,
            max_weight=max_weight,
            effective_min=eff_min,
            effective_max=eff_max,
        )

    total = float(metrics.sum())
    if total <= 0:
        weights = np.full(len(assets), 1.0 / len(assets))
    else:
        weights = cap_and_redistribute(metrics / total, eff_max)
        weights = apply_floor(weights, eff_min)
        weights = weights / weights.sum()

    return WeightAssignment(
        weights={asset: float(weight) for asset, weight in zip(assets, weights)},
        min_weight=eff_min,
        max_weight=eff_max,
        bounds_relaxed=relaxed,
    )
