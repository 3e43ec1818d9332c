"""
Masterclass use-cases: the public upcoming listing plus the admin pricing
and invite re-send operations.

The invite re-send is the recovery path for grants whose post-commit invite
dispatch failed; redelivered webhooks never notify twice.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional

from application.dtos.masterclasses import (
    MasterclassDTO,
    MasterclassInviteRequest,
    MasterclassInviteResult,
    MasterclassPricingUpdate,
)
from application.ports.catalog import MasterclassDirectory
from application.ports.notifier import InviteDispatcher
from core.logging_config import get_logger
from domain.common.exceptions import CatalogUnavailableException, ProductNotFoundException
from domain.enrollment.entity import ProductType


logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MasterclassService:
    def __init__(
        self,
        directory: Optional[MasterclassDirectory],
        dispatcher: InviteDispatcher,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._directory = directory
        self._dispatcher = dispatcher
        self._clock = clock

    def _require_directory(self) -> MasterclassDirectory:
        if self._directory is None:
            raise CatalogUnavailableException()
        return self._directory

    async def list_upcoming(self) -> List[MasterclassDTO]:
        now = self._clock()
        products = await self._require_directory().list_upcoming(now)
        return [MasterclassDTO.from_product(p, now) for p in products]

    async def list_pricing(self) -> List[MasterclassDTO]:
        now = self._clock()
        products = await self._require_directory().list_masterclasses(now)
        return [MasterclassDTO.from_product(p, now) for p in products]

    async def update_pricing(self, req: MasterclassPricingUpdate) -> MasterclassDTO:
        product = await self._require_directory().update_pricing(
            req.masterclass_id,
            price=req.price,
            currency=req.currency.upper() if req.currency else None,
            is_premium=req.is_premium,
            is_free=req.is_free,
        )
        if product is None:
            raise ProductNotFoundException(ProductType.MASTERCLASS.value, req.masterclass_id)
        return MasterclassDTO.from_product(product, self._clock())

    async def resend_invite(self, req: MasterclassInviteRequest) -> MasterclassInviteResult:
        product = await self._require_directory().get_masterclass(req.masterclass_id)
        if product is None:
            raise ProductNotFoundException(ProductType.MASTERCLASS.value, req.masterclass_id)

        # broker publish is blocking I/O
        await asyncio.to_thread(
            self._dispatcher.send_masterclass_invite,
            product.id,
            req.email,
            req.first_name or "Student",
            req.last_name,
        )
        logger.info("masterclass_invite_resent", masterclass_id=product.id, email=req.email)
        return MasterclassInviteResult(
            masterclass_id=product.id,
            masterclass_title=product.title,
            email=req.email,
        )
