"""
Catalog that routes lookups by product type.
"""
from __future__ import annotations

from typing import Callable, Optional

from domain.catalog.entity import Product
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.enrollment.entity import ProductType
from infrastructure.external.catalog.google_calendar import CalendarMasterclassCatalog


class CompositeProductCatalog:
    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        masterclasses: Optional[CalendarMasterclassCatalog] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._masterclasses = masterclasses

    async def get_product(self, product_type: ProductType, product_id: str) -> Optional[Product]:
        if ProductType(product_type) == ProductType.COURSE:
            async with self._uow_factory(readonly=True) as uow:
                return await uow.course_repository.get_by_id(product_id)
        if self._masterclasses is None:
            return None
        return await self._masterclasses.get_product(ProductType.MASTERCLASS, product_id)
