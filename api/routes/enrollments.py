"""
报名API路由 - FastAPI表现层
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from api.dependencies import (
    get_current_principal,
    get_enrollment_service,
    get_optional_principal,
)
from application.dtos.enrollments import EnrollmentDTO, Principal
from application.services.enrollment_service import EnrollmentService
from core.logging_config import get_logger
from core.response import Response as ApiResponse, success_response
from domain.enrollment.entity import EnrollmentStatus, ProductType


router = APIRouter(
    prefix="/enrollments",
    tags=["报名"]
)
logger = get_logger(__name__)


def _parse_product_type(value: Optional[str]) -> Optional[ProductType]:
    """未知类型按不限类型处理"""
    if not value:
        return None
    try:
        return ProductType(value.lower())
    except ValueError:
        return None


@router.get("/status", summary="查询当前用户是否已报名")
async def enrollment_status(
    product_id: Optional[str] = Query(default=None, alias="productId"),
    product_type: Optional[str] = Query(default=None, alias="productType"),
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    """
    供支付跳转后的轮询使用

    - 未登录或查询失败均返回 `{"isEnrolled": false}`
    - 已登录但缺少 productId 返回 400
    """
    if principal is None:
        return JSONResponse(content={"isEnrolled": False})
    if not product_id:
        return JSONResponse(status_code=400, content={"error": "productId is required"})
    try:
        enrolled = await service.is_enrolled(principal.external_id, product_id, _parse_product_type(product_type))
    except Exception as exc:
        logger.error("enrollment_status_failed", product_id=product_id, error=str(exc))
        enrolled = False
    return JSONResponse(content={"isEnrolled": enrolled})


@router.get("", summary="当前用户的报名列表", response_model=ApiResponse[list[EnrollmentDTO]])
async def list_enrollments(
    status: Optional[EnrollmentStatus] = Query(default=None),
    principal: Principal = Depends(get_current_principal),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    enrollments = await service.list_enrollments(principal.external_id, status)
    return success_response(data=[e.model_dump(mode="json") for e in enrollments])
