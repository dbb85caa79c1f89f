# backend/barbershop/routes/qris_settings.py
"""Public read of the active static QRIS image."""

from typing import Optional

from fastapi import APIRouter, Depends

from ..api.dependencies import get_shop_settings_service
from ..schemas.settings import QrisSettingResponse
from ..services.shop_settings_service import ShopSettingsService

router = APIRouter(tags=["qris-settings"])


@router.get("/qris-settings", response_model=Optional[QrisSettingResponse])
def get_active_qris_setting(
    settings_service: ShopSettingsService = Depends(get_shop_settings_service),
) -> Optional[QrisSettingResponse]:
    row = settings_service.get_active_qris()
    return QrisSettingResponse.model_validate(row) if row is not None else None
