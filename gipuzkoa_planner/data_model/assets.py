from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List

import pandas as pd

from .base import ColumnDefinition, TableModel, as_bool, as_float, is_blank, optional_float, parse_id_list

ASSET_TYPES = ["real_estate", "stock", "fund", "pension_plan", "cash", "other"]

DEFAULT_GROWTH_RATES = {
    "stock": 0.05,
    "fund": 0.05,
    "pension_plan": 0.05,
    "real_estate": 0.02,
    "cash": 0.0,
}


@dataclass
class Asset:
    id: str
    name: str
    type: str
    value: float
    owners: List[str] = field(default_factory=list)
    purchase_value: float = 0.0
    is_main_residence: bool = False
    growth_rate: float | None = None
    valor_catastral: float | None = None
    is_foreign_asset: bool = False

    def effective_growth_rate(self) -> float:
        if self.growth_rate is not None:
            return self.growth_rate
        return DEFAULT_GROWTH_RATES.get(self.type, 0.0)

    def wealth_value(self) -> float:
        """Value used for the wealth-tax base; cadastral value wins for real estate."""
        if self.type == "real_estate" and self.valor_catastral:
            return self.valor_catastral
        return self.value

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "value": self.value,
            "owners": list(self.owners),
            "purchaseValue": self.purchase_value,
            "isMainResidence": self.is_main_residence,
        }
        if self.growth_rate is not None:
            payload["growthRate"] = self.growth_rate
        if self.valor_catastral is not None:
            payload["valorCatastral"] = self.valor_catastral
        if self.is_foreign_asset:
            payload["isForeignAsset"] = True
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Asset":
        asset_type = str(data.get("type", "other") or "other").lower()
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "") or ""),
            type=asset_type if asset_type in ASSET_TYPES else "other",
            value=as_float(data.get("value")),
            owners=parse_id_list(data.get("owners")),
            purchase_value=as_float(data.get("purchaseValue")),
            is_main_residence=as_bool(data.get("isMainResidence")),
            growth_rate=optional_float(data.get("growthRate")),
            valor_catastral=optional_float(data.get("valorCatastral")),
            is_foreign_asset=as_bool(data.get("isForeignAsset")),
        )


def _asset_defaults() -> List[dict[str, Any]]:
    return [
        {
            "ID": "1",
            "Name": "Main Home",
            "Type": "real_estate",
            "Value": 400000.0,
            "Owners": "1,2",
            "Purchase Value": 300000.0,
            "Main Residence": True,
            "Growth (%)": 2.0,
            "Valor Catastral": "",
            "Foreign": False,
        }
    ]


class AssetTableModel(TableModel):
    """Schema + defaults for asset rows."""

    def __init__(self) -> None:
        columns = [
            ColumnDefinition("ID", "ID"),
            ColumnDefinition("Name", "Name"),
            ColumnDefinition("Type", "Type", kind="select", default="other", options=ASSET_TYPES),
            ColumnDefinition("Value", "Value (EUR)", kind="number", default=0.0, step=1000.0, format="%.2f"),
            ColumnDefinition("Owners", "Owners", kind="owners", default="", help="member ids, comma separated"),
            ColumnDefinition("Purchase Value", "Purchase Value (EUR)", kind="number", default=0.0, min_value=0.0, step=1000.0),
            ColumnDefinition("Main Residence", "Main Residence", kind="bool", default=False),
            ColumnDefinition(
                "Growth (%)",
                "Growth (%)",
                kind="number",
                default="",
                step=0.25,
                help="empty = 5% stock/fund/pension, 2% real estate, 0% cash",
            ),
            ColumnDefinition(
                "Valor Catastral",
                "Valor Catastral (EUR)",
                kind="number",
                default="",
                min_value=0.0,
                help="wealth tax base for real estate",
            ),
            ColumnDefinition("Foreign", "Foreign asset", kind="bool", default=False),
        ]
        super().__init__("assets", columns, _asset_defaults())


def dataframe_to_assets(df: pd.DataFrame) -> List[Asset]:
    items: List[Asset] = []
    for index, row in enumerate(df.to_dict("records")):
        name = str(row.get("Name", "") or "").strip()
        if not name:
            continue
        growth_pct = optional_float(row.get("Growth (%)"))
        asset_type = str(row.get("Type", "other") or "other").lower()
        asset_id = row.get("ID")
        items.append(
            Asset(
                id=str(index + 1) if is_blank(asset_id) else str(asset_id).strip(),
                name=name,
                type=asset_type if asset_type in ASSET_TYPES else "other",
                value=as_float(row.get("Value")),
                owners=parse_id_list(row.get("Owners")),
                purchase_value=as_float(row.get("Purchase Value")),
                is_main_residence=as_bool(row.get("Main Residence")),
                growth_rate=None if growth_pct is None else growth_pct / 100.0,
                valor_catastral=optional_float(row.get("Valor Catastral")),
                is_foreign_asset=as_bool(row.get("Foreign")),
            )
        )
    return items
