from pydantic import SecretStr

from barbershop.core.config import settings
from barbershop.integrations.google_calendar_client import GoogleCalendarClient, NullCalendarClient
from barbershop.integrations.midtrans_client import FakeMidtransClient, MidtransClient
from barbershop.services.clients import build_calendar_client, build_dispatcher, build_gateway_client
from barbershop.services.email import ConsoleEmailProvider
from barbershop.services.shop_settings_service import ShopSettingsService


class TestGatewayClient:
    def test_fake_gateway_is_shared(self) -> None:
        config = settings.model_copy(update={"midtrans_fake": True})
        first = build_gateway_client(config)
        assert isinstance(first, FakeMidtransClient)
        assert build_gateway_client(config) is first

    def test_real_gateway(self) -> None:
        config = settings.model_copy(
            update={"midtrans_fake": False, "midtrans_server_key": SecretStr("SB-Mid-server-x")}
        )
        client = build_gateway_client(config)
        assert type(client) is MidtransClient
        assert client.server_key == "SB-Mid-server-x"


class TestCalendarClient:
    def _config(self, **overrides):
        values = {
            "google_client_id": "cid",
            "google_client_secret": SecretStr("secret"),
            "google_refresh_token": SecretStr(""),
            "google_calendar_id": "primary",
        }
        values.update(overrides)
        return settings.model_copy(update=values)

    def test_not_configured(self, unit_db) -> None:
        assert isinstance(build_calendar_client(unit_db, self._config()), NullCalendarClient)

    def test_configured_from_environment(self, unit_db) -> None:
        client = build_calendar_client(
            unit_db, self._config(google_refresh_token=SecretStr("env-refresh"))
        )
        assert isinstance(client, GoogleCalendarClient)
        assert client.calendar_id == "primary"

    def test_admin_settings_win(self, unit_db) -> None:
        ShopSettingsService(unit_db).save_notification_settings(
            google_refresh_token="stored-refresh", calendar_id="shop@group.calendar.google.com"
        )
        client = build_calendar_client(unit_db, self._config())
        assert isinstance(client, GoogleCalendarClient)
        assert client.calendar_id == "shop@group.calendar.google.com"


def test_dispatcher_uses_configured_providers(unit_db) -> None:
    dispatcher = build_dispatcher(unit_db)
    assert isinstance(dispatcher.notification_service.email_service.provider, ConsoleEmailProvider)
    assert isinstance(dispatcher.calendar_client, NullCalendarClient)
