from __future__ import annotations

from rpos.application.dto.responses import BusinessConfigResponse
from rpos.application.use_cases.context import BusinessSettings
from rpos.domain.order.entities import OrderChannel, PaymentMethod


class GetBusinessConfig:
    def __init__(self, settings: BusinessSettings) -> None:
        self._settings = settings

    def execute(self) -> BusinessConfigResponse:
        return BusinessConfigResponse(
            businessName=self._settings.name,
            currency=self._settings.currency,
            taxRateBps=self._settings.tax_rate_bps,
            utcOffsetHours=self._settings.utc_offset_hours,
            paymentMethods=[method.value for method in PaymentMethod],
            orderChannels=[channel.value for channel in OrderChannel],
        )
