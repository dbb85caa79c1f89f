# backend/barbershop/services/template_service.py
"""
Template rendering service for the barbershop.

Renders the Jinja2 email templates under ``templates/``. Booking snapshots
carry ISO timestamps and raw integer prices; the filters registered here turn
them into shop-local times, Rupiah amounts and spelled-out durations.
"""

from datetime import datetime
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from jinja2 import Environment, FileSystemLoader, TemplateNotFound

from ..core.config import settings
from ..core.timezone_utils import format_shop_datetime, to_shop_time
from ..domain.formatting import format_duration, format_idr

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"

STATUS_LABELS = {
    "PENDING_PAYMENT": "Menunggu Pembayaran",
    "CONFIRMED": "Dikonfirmasi",
    "CANCELLED": "Dibatalkan",
    "COMPLETED": "Selesai",
}


def _as_datetime(value: Union[str, datetime]) -> datetime:
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


class TemplateService:
    """Jinja2 environment with the shop's filters and common context."""

    def __init__(self, template_dir: Optional[Path] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        directory = template_dir or TEMPLATE_DIR
        self.env = Environment(
            loader=FileSystemLoader(directory),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._register_custom_filters()

    def _register_custom_filters(self) -> None:
        def shop_datetime(value: Union[str, datetime, None]) -> str:
            if not value:
                return "-"
            return format_shop_datetime(_as_datetime(value))

        def shop_time(value: Union[str, datetime, None]) -> str:
            if not value:
                return "-"
            return to_shop_time(_as_datetime(value)).strftime("%H:%M")

        self.env.filters["idr"] = format_idr
        self.env.filters["duration"] = format_duration
        self.env.filters["shop_datetime"] = shop_datetime
        self.env.filters["shop_time"] = shop_time
        self.env.filters["status_label"] = lambda value: STATUS_LABELS.get(value, value)

    def get_common_context(self) -> Dict[str, Any]:
        return {
            "brand_name": settings.shop_name,
            "current_year": datetime.now().year,
            "frontend_url": settings.frontend_url.rstrip("/"),
        }

    def render_template(
        self, template_name: str, context: Optional[Dict[str, Any]] = None, **kwargs: Any
    ) -> str:
        """
        Render a template with the common context merged in.

        Raises:
            TemplateNotFound: If template doesn't exist
        """
        try:
            template = self.env.get_template(template_name)
        except TemplateNotFound:
            self.logger.error(f"Template not found: {template_name}")
            raise
        full_context = self.get_common_context()
        if context:
            full_context.update(context)
        full_context.update(kwargs)
        return template.render(full_context)

    def template_exists(self, template_name: str) -> bool:
        try:
            self.env.get_template(template_name)
            return True
        except TemplateNotFound:
            return False
