# backend/barbershop/routes/admin_settings.py
"""
Admin review of payment proofs and shop settings.

Router Endpoints:
    GET /admin/payment-proofs?status= - List proofs, newest first
    PUT /admin/payment-proofs/{proof_id} - Approve or reject a proof
    GET /admin/qris-settings - Active static QRIS image
    POST /admin/qris-settings - Replace the active static QRIS image
    GET /admin/notification-settings - Admin email, calendar id, token presence
    PUT /admin/notification-settings - Upsert notification settings
"""

import asyncio
import logging
from typing import List, NoReturn, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status

from ..api.dependencies import (
    OutboxRunner,
    get_outbox_runner,
    get_payment_proof_service,
    get_shop_settings_service,
    require_admin,
    schedule_outbox_dispatch,
)
from ..core.enums import PaymentProofStatus
from ..core.exceptions import DomainException
from ..schemas.payment import PaymentProofResponse, PaymentProofReview
from ..schemas.settings import (
    NotificationSettingsResponse,
    NotificationSettingsUpdate,
    QrisSettingCreate,
    QrisSettingResponse,
)
from ..services.payment_proof_service import PaymentProofService
from ..services.shop_settings_service import ShopSettingsService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["admin-settings"],
    dependencies=[Depends(require_admin)],
)


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get("/payment-proofs", response_model=List[PaymentProofResponse])
def list_payment_proofs(
    proof_status: Optional[PaymentProofStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200),
    proof_service: PaymentProofService = Depends(get_payment_proof_service),
) -> List[PaymentProofResponse]:
    proofs = proof_service.list_proofs(status=proof_status, skip=skip, limit=limit)
    return [PaymentProofResponse.model_validate(p) for p in proofs]


@router.put("/payment-proofs/{proof_id}", response_model=PaymentProofResponse)
async def review_payment_proof(
    proof_id: str,
    payload: PaymentProofReview,
    background_tasks: BackgroundTasks,
    proof_service: PaymentProofService = Depends(get_payment_proof_service),
    outbox_runner: OutboxRunner = Depends(get_outbox_runner),
) -> PaymentProofResponse:
    """Approving a proof settles its payment and confirms the booking."""
    try:
        result = await asyncio.to_thread(
            proof_service.review_proof,
            proof_id,
            decision=payload.status,
            reviewed_by=payload.reviewed_by,
            notes=payload.notes,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    schedule_outbox_dispatch(background_tasks, outbox_runner, result.outbox_event_ids)
    return PaymentProofResponse.model_validate(result.proof)


@router.get("/qris-settings", response_model=Optional[QrisSettingResponse])
def get_qris_setting(
    settings_service: ShopSettingsService = Depends(get_shop_settings_service),
) -> Optional[QrisSettingResponse]:
    row = settings_service.get_active_qris()
    return QrisSettingResponse.model_validate(row) if row is not None else None


@router.post(
    "/qris-settings", response_model=QrisSettingResponse, status_code=status.HTTP_201_CREATED
)
def save_qris_setting(
    payload: QrisSettingCreate,
    settings_service: ShopSettingsService = Depends(get_shop_settings_service),
) -> QrisSettingResponse:
    try:
        row = settings_service.save_qris(
            qris_image_url=payload.qris_image_url, instructions=payload.instructions
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return QrisSettingResponse.model_validate(row)


@router.get("/notification-settings", response_model=NotificationSettingsResponse)
def get_notification_settings(
    settings_service: ShopSettingsService = Depends(get_shop_settings_service),
) -> NotificationSettingsResponse:
    return NotificationSettingsResponse.from_row(settings_service.get_notification_settings())


@router.put("/notification-settings", response_model=NotificationSettingsResponse)
def update_notification_settings(
    payload: NotificationSettingsUpdate,
    settings_service: ShopSettingsService = Depends(get_shop_settings_service),
) -> NotificationSettingsResponse:
    fields = payload.model_dump(exclude_unset=True)
    if "admin_email" in fields and fields["admin_email"] is not None:
        fields["admin_email"] = str(fields["admin_email"])
    try:
        row = settings_service.save_notification_settings(**fields)
    except DomainException as exc:
        handle_domain_exception(exc)
    return NotificationSettingsResponse.from_row(row)
