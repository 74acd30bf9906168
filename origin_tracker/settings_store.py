"""
Settings port for operator-entered report configuration.

Two values live here: the ad spend map (date-range key -> amount) and
the manual date override. Both are read-then-written without locking;
the last writer wins.
"""
import json
import logging
from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from origin_tracker.config import config
from origin_tracker.store import OriginStore

logger = logging.getLogger(__name__)


class SettingsStore(ABC):
    """Key-value configuration consumed by the report and ROAS code."""

    @abstractmethod
    async def get_date_override(self) -> Optional[date]:
        ...

    @abstractmethod
    async def set_date_override(self, value: date) -> None:
        ...

    @abstractmethod
    async def clear_date_override(self) -> None:
        ...

    @abstractmethod
    async def get_ad_spend_map(self) -> Dict[str, Decimal]:
        ...

    @abstractmethod
    async def set_ad_spend(self, date_range_key: str, amount: Decimal) -> None:
        ...

    async def get_ad_spend(self, date_range_key: str) -> Decimal:
        """Spend stored for a key, 0 when absent."""
        return (await self.get_ad_spend_map()).get(date_range_key, Decimal("0"))


def _to_decimal(value) -> Optional[Decimal]:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() and amount >= 0 else None


class DuckDBSettingsStore(SettingsStore):
    """Settings kept in the store's `options` table (ad spend as JSON)."""

    def __init__(
        self,
        store: OriginStore,
        ad_spend_option: str = None,
        date_override_option: str = None,
    ):
        self.store = store
        self.ad_spend_option = ad_spend_option or config.report.ad_spend_option
        self.date_override_option = date_override_option or config.report.date_override_option

    async def get_date_override(self) -> Optional[date]:
        raw = await self.store.get_option(self.date_override_option)
        if not raw:
            return None
        try:
            return date.fromisoformat(raw)
        except ValueError:
            logger.warning(f"Ignoring invalid stored date override: {raw!r}")
            return None

    async def set_date_override(self, value: date) -> None:
        await self.store.set_option(self.date_override_option, value.isoformat())
        logger.info(f"Manual date override set to {value.isoformat()}")

    async def clear_date_override(self) -> None:
        await self.store.delete_option(self.date_override_option)
        logger.info("Manual date override cleared")

    async def get_ad_spend_map(self) -> Dict[str, Decimal]:
        raw = await self.store.get_option(self.ad_spend_option)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored ad spend data is not valid JSON, ignoring")
            return {}
        if not isinstance(data, dict):
            return {}

        spend = {}
        for key, value in data.items():
            amount = _to_decimal(value)
            if amount is not None:
                spend[key] = amount
        return spend

    async def set_ad_spend(self, date_range_key: str, amount: Decimal) -> None:
        spend = await self.get_ad_spend_map()
        spend[date_range_key] = amount
        await self.store.set_option(
            self.ad_spend_option,
            json.dumps({key: str(value) for key, value in spend.items()}),
        )
        logger.info(f"Ad spend for {date_range_key} saved: {amount}")
