"""
API依赖项 - 认证与应用服务装配

支付网关、目录、通知器在应用启动时创建并挂在 app.state 上，
这里只负责按请求取出并组装应用服务。
"""
from typing import Mapping, Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from application.dtos.enrollments import Principal
from application.ports.payment_gateway import PaymentGateway
from application.services.checkout_service import CheckoutService
from application.services.enrollment_service import EnrollmentService
from application.services.masterclass_service import MasterclassService
from application.services.reconciliation_service import ReconciliationService
from core.config import settings
from core.exceptions import TokenExpiredException, UnauthorizedException
from core.logging_config import get_logger
from domain.payment.entity import PaymentProvider
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


logger = get_logger(__name__)

# HTTP Bearer for direct API calls
http_bearer = HTTPBearer(
    scheme_name="Bearer",
    description="JWT Bearer token issued by the identity provider",
    auto_error=False,
)


def decode_principal(token: str) -> Principal:
    """校验JWT并提取调用者身份"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise TokenExpiredException()
    except jwt.PyJWTError as e:
        logger.warning("invalid_access_token", error=str(e))
        raise UnauthorizedException("无效的认证凭据")

    external_id = payload.get("sub")
    if not external_id:
        raise UnauthorizedException("令牌缺少用户标识")
    roles = payload.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    if payload.get("role"):
        roles = [*roles, payload["role"]]
    return Principal(
        external_id=str(external_id),
        email=payload.get("email") or "",
        first_name=payload.get("first_name") or payload.get("given_name") or "",
        last_name=payload.get("last_name") or payload.get("family_name") or "",
        image_url=payload.get("image_url") or payload.get("picture"),
        roles=[str(r) for r in roles],
    )


async def get_optional_principal(
    bearer_token: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
) -> Optional[Principal]:
    """未携带或无法校验令牌时返回 None"""
    if not bearer_token or not bearer_token.credentials:
        return None
    try:
        return decode_principal(bearer_token.credentials)
    except (UnauthorizedException, TokenExpiredException):
        return None


async def get_current_principal(
    bearer_token: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
) -> Principal:
    """获取当前登录用户"""
    if not bearer_token or not bearer_token.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="未提供认证凭据",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_principal(bearer_token.credentials)


def get_payment_gateways(request: Request) -> Mapping[PaymentProvider, PaymentGateway]:
    return request.app.state.payment_gateways


async def get_reconciliation_service(request: Request) -> ReconciliationService:
    state = request.app.state
    return ReconciliationService(
        uow_factory=SQLAlchemyUnitOfWork,
        notifier=state.notifier,
        catalog=state.catalog,
        codec=state.codec,
        store_timeout=settings.webhook.store_timeout_seconds,
    )


async def get_enrollment_service() -> EnrollmentService:
    return EnrollmentService(uow_factory=SQLAlchemyUnitOfWork)


async def get_checkout_service(
    request: Request,
    gateways: Mapping[PaymentProvider, PaymentGateway] = Depends(get_payment_gateways),
) -> CheckoutService:
    state = request.app.state
    return CheckoutService(
        uow_factory=SQLAlchemyUnitOfWork,
        catalog=state.catalog,
        gateways=gateways,
        base_url=settings.APP_BASE_URL,
        notifier=state.notifier,
        codec=state.codec,
    )


async def get_current_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """获取当前管理员（令牌 roles/role 声明含 admin）"""
    if not principal.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="需要管理员权限"
        )
    return principal


async def get_masterclass_service(request: Request) -> MasterclassService:
    state = request.app.state
    return MasterclassService(
        directory=getattr(state, "masterclasses", None),
        dispatcher=state.invite_dispatcher,
    )
