"""
Input facts consumed by the analytics engine.

Facts arrive already parsed and validated from the data source.
The engine only reads them.
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import Field

from models.base import FrozenSchema

UNREGISTERED_PRODUCT_NAME = "미등록 상품"
UNKNOWN_SEASON = "정보없음"


class Warehouse(str, Enum):
    """Marketplace warehouses reporting sales and stock."""

    PRIMARY = "fc"    # Fulfilment centre
    SECONDARY = "vf"  # Secondary (VF164) warehouse

    @property
    def stock_column(self) -> str:
        """Per-warehouse stock column in the products table."""
        return f"{self.value}_stock"


class SalesFact(FrozenSchema):
    """Units sold of one SKU from one warehouse on one day."""

    sale_date: date
    sku_id: str = Field(..., min_length=1)
    warehouse: Warehouse = Warehouse.PRIMARY
    quantity: int = Field(..., ge=0)


class StockSnapshot(FrozenSchema):
    """Stock of one SKU observed in one warehouse on one day."""

    snapshot_date: date
    sku_id: str = Field(..., min_length=1)
    warehouse: Warehouse = Warehouse.PRIMARY
    observed_stock: int = Field(..., ge=0)


class ProductRegistryEntry(FrozenSchema):
    """Product master data for one SKU."""

    sku_id: str = Field(..., min_length=1)
    product_name: str
    option: Optional[str] = None
    season: str = UNKNOWN_SEASON
    image_url: Optional[str] = None
    hq_stock: int = Field(default=0, ge=0)
    incoming_stock: int = Field(default=0, ge=0)
    safety_stock: int = Field(default=10, ge=0)

    @property
    def is_placeholder(self) -> bool:
        """True for entries auto-created for SKUs missing from the master file."""
        return self.product_name == UNREGISTERED_PRODUCT_NAME

    @classmethod
    def placeholder(cls, sku_id: str) -> "ProductRegistryEntry":
        """Registry entry for a SKU seen in sales but not in the product master."""
        return cls(sku_id=sku_id, product_name=UNREGISTERED_PRODUCT_NAME)
