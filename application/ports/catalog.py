"""
Product catalog port.

Courses live in the relational store; masterclasses are read from the
calendar service. Callers only see this protocol.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Protocol, runtime_checkable

from domain.catalog.entity import Product
from domain.enrollment.entity import ProductType


@runtime_checkable
class ProductCatalog(Protocol):
    async def get_product(self, product_type: ProductType, product_id: str) -> Optional[Product]: ...


@runtime_checkable
class MasterclassDirectory(Protocol):
    """Calendar-backed masterclass listing and pricing."""

    async def get_masterclass(self, masterclass_id: str) -> Optional[Product]: ...

    async def list_masterclasses(self, now: Optional[datetime] = None) -> List[Product]: ...

    async def list_upcoming(self, now: Optional[datetime] = None) -> List[Product]: ...

    async def update_pricing(
        self,
        masterclass_id: str,
        *,
        price: Optional[Decimal],
        currency: Optional[str],
        is_premium: bool,
        is_free: bool,
    ) -> Optional[Product]: ...
