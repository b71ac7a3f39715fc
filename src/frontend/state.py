"""State container for the subscriptions panel."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from core.models import Subscription


@dataclass
class PanelState:
    subscriptions: list[Subscription] = field(default_factory=list)
    last_global_check: datetime | None = None
    show_inactive: bool = False
    error: str | None = None

    def visible(self) -> list[Subscription]:
        if self.show_inactive:
            return list(self.subscriptions)
        return [sub for sub in self.subscriptions if sub.is_active]
