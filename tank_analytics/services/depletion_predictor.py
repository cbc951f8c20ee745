"""
Depletion Predictor Service

Projects days remaining to the tank's minimum level, the estimated depletion
date, and when to place the next order.

v1.0.0 Features:
- Days until minimum level and until empty
- Depletion date rounded to the nearest calendar day
- Refill volume needed to reach safe fill
- Recommended order date honouring the delivery lead time

The prediction is a pure function of (rate, level, minimum, now): two tanks
with the same inputs always get the same forecast.

Author: Tank Analytics Team
"""

from datetime import date, datetime, timedelta
from typing import Optional

import structlog

from tank_analytics.models.analytics_models import DepletionForecast, TankConfig
from tank_analytics.timezone_utils import round_to_day

logger = structlog.get_logger(__name__)


class DepletionPredictor:
    """
    Predicts depletion from the rolling consumption rate.

    Example Usage:
        predictor = DepletionPredictor()

        forecast = predictor.predict(
            current_level_litres=6000,
            rate_litres_per_day=500,
            minimum_level_litres=2000,
            now=now,
        )

        print(f"Days to minimum: {forecast.days_to_minimum:.1f}")  # 8.0
    """

    DEFAULT_CONFIG = {
        "delivery_lead_days": 4.0,  # Typical order-to-delivery time
    }

    def __init__(self, delivery_lead_days: Optional[float] = None):
        """
        Args:
            delivery_lead_days: Days between placing an order and delivery (default 4)
        """
        self.delivery_lead_days = (
            delivery_lead_days
            if delivery_lead_days is not None
            else self.DEFAULT_CONFIG["delivery_lead_days"]
        )

        logger.debug("DepletionPredictor initialized", delivery_lead_days=self.delivery_lead_days)

    def predict(
        self,
        current_level_litres: Optional[float],
        rate_litres_per_day: Optional[float],
        minimum_level_litres: Optional[float],
        now: datetime,
        safe_fill_litres: Optional[float] = None,
    ) -> DepletionForecast:
        """
        Predict when the tank reaches its minimum level.

        Args:
            current_level_litres: Current level (L)
            rate_litres_per_day: Rolling consumption rate (R)
            minimum_level_litres: Minimum level (M); 0 when unset
            now: Reference time
            safe_fill_litres: Safe fill level, for the refill volume

        Returns:
            DepletionForecast. Days and dates are None when R is None or <= 0.

        Examples:
            >>> forecast = DepletionPredictor().predict(6000, 500, 2000, now)
            >>> forecast.days_to_minimum
            8.0
            >>> DepletionPredictor().predict(6000, 0, 2000, now).days_to_minimum is None
            True
        """
        minimum = minimum_level_litres if minimum_level_litres is not None else 0.0

        refill_volume = None
        if current_level_litres is not None and safe_fill_litres is not None:
            refill_volume = max(0.0, safe_fill_litres - current_level_litres)

        forecast = DepletionForecast(
            current_level_litres=current_level_litres,
            minimum_level_litres=minimum,
            refill_volume_litres=refill_volume,
        )

        # Cannot deplete on the current trend
        if current_level_litres is None or rate_litres_per_day is None or rate_litres_per_day <= 0:
            return forecast

        days_to_minimum = max(0.0, (current_level_litres - minimum) / rate_litres_per_day)
        days_to_empty = max(0.0, current_level_litres / rate_litres_per_day)
        order_in_days = max(0.0, days_to_minimum - self.delivery_lead_days)

        forecast.days_to_minimum = days_to_minimum
        forecast.days_to_empty = days_to_empty
        forecast.estimated_depletion_date = _date_after(now, days_to_minimum)
        forecast.recommended_order_date = _date_after(now, order_in_days)

        logger.debug(
            "Depletion predicted",
            level_litres=round(current_level_litres, 1),
            rate=round(rate_litres_per_day, 2),
            days_to_minimum=round(days_to_minimum, 1),
        )
        return forecast

    def predict_for_tank(
        self,
        tank: TankConfig,
        current_level_litres: Optional[float],
        rate_litres_per_day: Optional[float],
        now: datetime,
    ) -> DepletionForecast:
        """Predict using the tank's resolved minimum and safe fill levels."""
        return self.predict(
            current_level_litres=current_level_litres,
            rate_litres_per_day=rate_litres_per_day,
            minimum_level_litres=tank.resolved_minimum_litres(),
            now=now,
            safe_fill_litres=tank.resolved_safe_fill_litres(),
        )


def _date_after(now: datetime, days: float) -> Optional[date]:
    """Calendar date ``days`` after now; None beyond the datetime range."""
    try:
        return round_to_day(now + timedelta(days=days))
    except OverflowError:
        return None
