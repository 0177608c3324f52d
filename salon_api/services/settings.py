from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Tuple
from uuid import UUID

from salon_api.repositories.system import SettingsRepository
from salon_api.schemas.system import SettingsDocument, SettingsUpdate
from salon_api.services.base import BaseService

logger = logging.getLogger(__name__)

_OPEN = {"open": "09:00", "close": "18:00", "closed": False}

DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    "business_profile": {
        "store_name": "",
        "address": "",
        "phone": "",
        "owner_name": "",
        "business_hours": {
            "monday": dict(_OPEN),
            "tuesday": dict(_OPEN),
            "wednesday": dict(_OPEN),
            "thursday": dict(_OPEN),
            "friday": dict(_OPEN),
            "saturday": dict(_OPEN),
            "sunday": {**_OPEN, "closed": True},
        },
        "regular_holidays": ["sunday"],
        "booking_advance_days": 14,
        "business_registration_number": "",
        "business_category": "",
    },
    "booking_settings": {
        "min_booking_interval": 30,
        "max_booking_hours_per_day": 8,
        "available_days": ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday"],
        "reminder_timings": [24, 3, 1],
        "push_notification_on_create": True,
        "push_notification_on_cancel": True,
        "auto_messages": {
            "confirmed": "Your booking is confirmed. Thank you.",
            "reminder": "You have a booking tomorrow. Please check the time.",
            "cancelled": "Your booking has been cancelled.",
        },
    },
    "financial_settings": {
        "expense_categories": [
            "rent",
            "payroll",
            "materials",
            "advertising",
            "maintenance",
            "electricity",
            "water",
            "internet",
            "other",
        ],
        "expense_category_colors": {},
        "expense_category_icons": {},
        "bank_name": "",
        "account_number": "",
        "account_holder": "",
        "cash_settlement_day": 1,
        "card_settlement_day": 1,
        "platform_settlement_day": 1,
        "auto_create_transaction_on_complete": False,
    },
    "staff_settings": {},
    "system_settings": {
        "push_notifications_enabled": True,
        "customer_notifications_enabled": True,
        "internal_notifications_enabled": True,
        "auto_logout_minutes": 30,
        "api_keys": {},
    },
}


def default_settings() -> Dict[str, Dict[str, Any]]:
    return copy.deepcopy(DEFAULT_SETTINGS)


def merge_settings(current: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Shallow-merge every provided section of `update` over the same section of `current`."""
    merged = default_settings()
    for section in merged:
        stored = current.get(section)
        if isinstance(stored, dict):
            merged[section].update(stored)
        incoming = update.get(section)
        if incoming:
            merged[section].update(incoming)
    return merged


class SettingsService(BaseService):
    """Per-owner settings document."""

    def __init__(self, session, owner_id: UUID) -> None:
        super().__init__(session, owner_id)
        self.repo = SettingsRepository(session, owner_id)

    # PUBLIC_INTERFACE
    async def get(self) -> SettingsDocument:
        """Stored settings, or the defaults when the owner has none yet."""
        row = await self.repo.get()
        if row is None or not isinstance(row.settings, dict):
            return SettingsDocument(**default_settings())
        return SettingsDocument(**merge_settings(row.settings, {}))

    # PUBLIC_INTERFACE
    async def update(self, payload: SettingsUpdate) -> Tuple[SettingsDocument, SettingsDocument]:
        """Merge and persist; returns (previous, updated)."""
        previous = await self.get()
        merged = merge_settings(previous.model_dump(), payload.model_dump(exclude_none=True))
        row = await self.repo.upsert(merged)
        logger.info("Settings updated (sections: %s)", ", ".join(payload.model_dump(exclude_none=True)) or "none")
        return previous, SettingsDocument(**row.settings)
