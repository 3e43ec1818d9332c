"""
大师课API路由 - 公开列表与管理操作
"""
from fastapi import APIRouter, Depends

from api.dependencies import get_current_admin, get_masterclass_service
from application.dtos.enrollments import Principal
from application.dtos.masterclasses import (
    MasterclassDTO,
    MasterclassInviteRequest,
    MasterclassInviteResult,
    MasterclassPricingUpdate,
)
from application.services.masterclass_service import MasterclassService
from core.logging_config import get_logger
from core.response import Response as ApiResponse, success_response


router = APIRouter(tags=["大师课"])
logger = get_logger(__name__)


@router.get("/masterclasses", summary="即将开始的大师课", response_model=ApiResponse[list[MasterclassDTO]])
async def list_upcoming_masterclasses(
    service: MasterclassService = Depends(get_masterclass_service),
):
    """状态为 upcoming 或 live 的大师课，按开始时间排序"""
    masterclasses = await service.list_upcoming()
    return success_response(
        data=[m.model_dump(mode="json") for m in masterclasses],
        message=f"{len(masterclasses)} masterclasses",
    )


@router.get(
    "/admin/masterclasses/pricing",
    summary="大师课价格列表",
    response_model=ApiResponse[list[MasterclassDTO]],
)
async def list_masterclass_pricing(
    admin: Principal = Depends(get_current_admin),
    service: MasterclassService = Depends(get_masterclass_service),
):
    masterclasses = await service.list_pricing()
    return success_response(data=[m.model_dump(mode="json") for m in masterclasses])


@router.put(
    "/admin/masterclasses/pricing",
    summary="更新大师课价格",
    response_model=ApiResponse[MasterclassDTO],
)
async def update_masterclass_pricing(
    payload: MasterclassPricingUpdate,
    admin: Principal = Depends(get_current_admin),
    service: MasterclassService = Depends(get_masterclass_service),
):
    """
    改写日历事件描述中的价格行

    - `isFree` 为真时写入 Free
    - `isPremium` 且价格大于 0 时写入 `Price: {currency} {price}` 与 Premium
    """
    masterclass = await service.update_pricing(payload)
    logger.info("masterclass_pricing_changed", masterclass_id=payload.masterclass_id, admin=admin.external_id)
    return success_response(data=masterclass.model_dump(mode="json"), message="Pricing updated")


@router.post(
    "/admin/masterclasses/invites",
    summary="重新发送大师课日历邀请",
    response_model=ApiResponse[MasterclassInviteResult],
)
async def resend_masterclass_invite(
    payload: MasterclassInviteRequest,
    admin: Principal = Depends(get_current_admin),
    service: MasterclassService = Depends(get_masterclass_service),
):
    result = await service.resend_invite(payload)
    return success_response(data=result.model_dump(mode="json"), message="Invite queued")
