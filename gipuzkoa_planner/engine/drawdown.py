"""Asset liquidation: the retirement-income waterfall and per-member deficit cover."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from ..data_model import Asset, IncomeStream, RealizedIncome
from .asset_store import AssetStore

logger = logging.getLogger(__name__)

TARGET_DRAWDOWN_TYPES = {"cash", "stock", "fund"}
MEMBER_LIQUID_TYPES = {"cash", "other", "stock", "fund"}
STOCK_TYPES = {"stock", "fund"}

# Share of every sale taxed as a capital gain. A flat approximation: purchase
# values are not tracked against sale prices.
CAPITAL_GAIN_FRACTION = 0.5


@dataclass
class DrawdownResult:
    cash: float = 0.0
    stock: float = 0.0
    gains: List[RealizedIncome] = field(default_factory=list)
    # (owners of the sold asset, amount withdrawn)
    proceeds: List[Tuple[List[str], float]] = field(default_factory=list)

    @property
    def total(self) -> float:
        return self.cash + self.stock


def _target_sort_key(asset: Asset) -> tuple[int, float]:
    return (0 if asset.type == "cash" else 1, asset.effective_growth_rate())


def _member_sort_key(asset: Asset) -> tuple[int, float]:
    rank = {"cash": 0, "other": 1}.get(asset.type, 2)
    return (rank, asset.effective_growth_rate())


def liquidate_for_target(assets: Iterable[Asset], deficit: float, year_offset: int) -> DrawdownResult:
    """Sell cash first, then the slowest-growing stocks/funds, until ``deficit`` is covered.

    Whatever cannot be covered is left uncovered.
    """
    result = DrawdownResult()
    eligible = sorted(
        (a for a in assets if a.type in TARGET_DRAWDOWN_TYPES and a.value > 0),
        key=_target_sort_key,
    )
    remaining = deficit
    for asset in eligible:
        if remaining <= 0:
            break
        amount = min(asset.value, remaining)
        asset.value -= amount
        remaining -= amount
        if asset.type == "cash":
            result.cash += amount
        else:
            result.stock += amount

        gain = amount * CAPITAL_GAIN_FRACTION
        stream = IncomeStream(
            id=f"drawdown-{asset.id}-{year_offset}",
            name=f"Sale of {asset.name}",
            type="other",
            amount=gain,
            owners=list(asset.owners),
        )
        result.gains.append(RealizedIncome(stream=stream, realized_amount=gain))
        result.proceeds.append((list(asset.owners), amount))

    if remaining > 0:
        logger.debug("year %s: retirement target short by %.2f after drawdown", year_offset, remaining)
    return result


def member_liquid_shares(assets: Iterable[Asset], member_id: str) -> Dict[str, float]:
    """Value of each liquid asset the member may sell, as their equal share of it."""
    shares: Dict[str, float] = {}
    for asset in sorted(assets, key=_member_sort_key):
        if asset.type not in MEMBER_LIQUID_TYPES or asset.value <= 0:
            continue
        if member_id not in asset.owners:
            continue
        shares[asset.id] = asset.value / len(asset.owners)
    return shares


def liquidate_member_assets(
    store: AssetStore,
    shares: Dict[str, float],
    shortfall: float,
) -> float:
    """Sell the member's liquid shares in priority order; returns the amount raised."""
    raised = 0.0
    for asset_id, available in shares.items():
        if raised >= shortfall:
            break
        asset = store.get(asset_id)
        if asset is None:
            continue
        amount = min(available, asset.value, shortfall - raised)
        if amount <= 0:
            continue
        asset.value -= amount
        shares[asset_id] = available - amount
        raised += amount
    return raised
