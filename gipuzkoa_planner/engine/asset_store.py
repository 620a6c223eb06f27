from __future__ import annotations

import copy
from typing import Callable, Dict, Iterable, Iterator, List

from ..data_model import Asset, FamilyMember

SAVINGS_ID_PREFIX = "generated-savings-"
DEBT_ID_PREFIX = "generated-debt-"
SAVINGS_GROWTH_RATE = 0.01


def savings_asset_id(member_id: str) -> str:
    return f"{SAVINGS_ID_PREFIX}{member_id}"


def debt_asset_id(member_id: str) -> str:
    return f"{DEBT_ID_PREFIX}{member_id}"


class AssetStore:
    """Working copy of the household assets for one projection run.

    Keeps insertion order for iteration and an id index so synthetic per-member
    entries can be looked up or created without scanning the list.
    """

    def __init__(self, assets: Iterable[Asset] = ()) -> None:
        self._items: List[Asset] = []
        self._index: Dict[str, Asset] = {}
        for asset in assets:
            self.add(copy.deepcopy(asset))

    def __iter__(self) -> Iterator[Asset]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._index

    def get(self, asset_id: str) -> Asset | None:
        return self._index.get(asset_id)

    def add(self, asset: Asset) -> Asset:
        self._items.append(asset)
        # Duplicate ids in caller data stay iterable; the first one wins the index.
        self._index.setdefault(asset.id, asset)
        return asset

    def find_or_create(self, asset_id: str, factory: Callable[[], Asset]) -> Asset:
        existing = self._index.get(asset_id)
        if existing is not None:
            return existing
        return self.add(factory())

    def savings_for(self, member: FamilyMember) -> Asset:
        return self.find_or_create(
            savings_asset_id(member.id),
            lambda: Asset(
                id=savings_asset_id(member.id),
                name=f"Other Investments ({member.name})",
                type="other",
                value=0.0,
                owners=[member.id],
                growth_rate=SAVINGS_GROWTH_RATE,
            ),
        )

    def debt_for(self, member: FamilyMember) -> Asset:
        return self.find_or_create(
            debt_asset_id(member.id),
            lambda: Asset(
                id=debt_asset_id(member.id),
                name=f"Accumulated Debt ({member.name})",
                type="other",
                value=0.0,
                owners=[member.id],
                growth_rate=0.0,
            ),
        )

    def apply_growth(self) -> None:
        for asset in self._items:
            asset.value *= 1 + asset.effective_growth_rate()

    def total_value(self) -> float:
        return sum(asset.value for asset in self._items)

    def snapshot(self) -> Dict[str, float]:
        values: Dict[str, float] = {}
        for asset in self._items:
            values[asset.name] = values.get(asset.name, 0.0) + asset.value
        return values
