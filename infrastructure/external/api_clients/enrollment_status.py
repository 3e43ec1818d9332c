"""
HTTP 报名状态查询客户端

供轮询器在支付跳转后查询 GET /api/v1/enrollments/status。
单次查询不重试，重试节奏由轮询器控制。
"""
from __future__ import annotations

from typing import Optional

import httpx

from core.logging_config import get_logger
from domain.enrollment.entity import ProductType


logger = get_logger(__name__)

STATUS_PATH = "/api/v1/enrollments/status"


class HttpEnrollmentStatusSource:
    """以当前用户身份查询是否已报名"""

    def __init__(
        self,
        base_url: str,
        *,
        access_token: Optional[str] = None,
        product_type: Optional[ProductType] = None,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._product_type = product_type
        self._headers = {"Accept": "application/json"}
        if access_token:
            self._headers["Authorization"] = f"Bearer {access_token}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
        )

    async def is_enrolled(self, product_id: str) -> bool:
        params = {"productId": product_id}
        if self._product_type is not None:
            params["productType"] = ProductType(self._product_type).value
        response = await self._client.get(STATUS_PATH, params=params, headers=self._headers)
        response.raise_for_status()
        data = response.json()
        return bool(data.get("isEnrolled"))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpEnrollmentStatusSource":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
