"""
Payments API routes.

Webhook endpoints return provider-shaped JSON (providers only look at the
status code), while checkout uses the unified response envelope. Keep this
thin: no SDK details here.
"""
from __future__ import annotations

from typing import Mapping

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.dependencies import (
    get_checkout_service,
    get_current_principal,
    get_payment_gateways,
    get_reconciliation_service,
)
from application.dtos.enrollments import Principal
from application.dtos.payments import CheckoutRequest, CheckoutSession
from application.ports.payment_gateway import PaymentGateway
from application.services.checkout_service import CheckoutService
from application.services.reconciliation_service import ReconciliationService
from core.logging_config import get_logger
from core.response import Response as ApiResponse, success_response
from domain.payment.entity import PaymentProvider
from infrastructure.external.payments.exceptions import (
    PaymentChallengeError,
    PaymentMetadataError,
    PaymentPayloadError,
    PaymentSignatureError,
    UnrecognizedEventKindError,
)


router = APIRouter(tags=["Payments"])
logger = get_logger(__name__)


async def _handle_webhook(
    provider: PaymentProvider,
    request: Request,
    gateways: Mapping[PaymentProvider, PaymentGateway],
    service: ReconciliationService,
) -> JSONResponse:
    gateway = gateways.get(provider)
    if gateway is None:
        logger.warning("webhook_provider_disabled", provider=provider.value)
        return JSONResponse(status_code=404, content={"success": False, "error": "Provider not enabled"})

    raw_body = await request.body()
    logger.info("webhook_received", provider=provider.value, bytes=len(raw_body))
    headers = {k: v for k, v in request.headers.items()}
    try:
        event = gateway.parse_webhook(headers, raw_body)
    except UnrecognizedEventKindError as exc:
        logger.info("webhook_event_ignored", provider=provider.value, kind=exc.kind)
        return JSONResponse(status_code=200, content={"success": True, "ignored": True})
    except PaymentChallengeError as exc:
        return JSONResponse(status_code=401, content={"success": False, "error": exc.message})
    except (PaymentSignatureError, PaymentMetadataError, PaymentPayloadError) as exc:
        logger.warning("webhook_rejected", provider=provider.value, error_type=exc.error_type, error=exc.message)
        return JSONResponse(status_code=400, content={"success": False, "error": exc.message})

    result = await service.reconcile(event)
    return JSONResponse(status_code=result.status_code, content=result.body)


@router.post("/payments/webhooks/intasend", summary="IntaSend collection webhook")
async def intasend_webhook(
    request: Request,
    gateways: Mapping[PaymentProvider, PaymentGateway] = Depends(get_payment_gateways),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    return await _handle_webhook(PaymentProvider.MOBILE_MONEY, request, gateways, service)


@router.post("/payments/webhooks/stripe", summary="Stripe checkout webhook")
async def stripe_webhook(
    request: Request,
    gateways: Mapping[PaymentProvider, PaymentGateway] = Depends(get_payment_gateways),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    return await _handle_webhook(PaymentProvider.CARD, request, gateways, service)


@router.post("/checkout", summary="Start checkout", response_model=ApiResponse[CheckoutSession])
async def create_checkout(
    payload: CheckoutRequest,
    principal: Principal = Depends(get_current_principal),
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Create a provider-hosted checkout session for a course or masterclass.

    Free products are enrolled immediately; the returned url then points at
    the product page and ``enrolled`` is true.
    """
    session = await service.create_checkout(principal, payload)
    message = "Enrolled" if session.enrolled else "Checkout created"
    return success_response(data=session.model_dump(mode="json"), message=message)
