"""
Durable store interface for the attribution engine
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from ..models import (
    AttributedContent,
    AttributionRecord,
    AttributionStatus,
    ClickEvent,
    SaleEvent,
    TrackedLink,
)


class IAttributionStore(ABC):
    """Interface for the persistent click/sale/attribution store (Tier 3)"""

    @abstractmethod
    async def find_click(self, click_id: str) -> Optional[ClickEvent]:
        """Load a click by id"""
        pass

    @abstractmethod
    async def find_link(self, link_id: str) -> Optional[TrackedLink]:
        """Load a tracked link by id"""
        pass

    @abstractmethod
    async def find_clicks_by_ip_within_window(
        self,
        user_id: str,
        ip_address: str,
        window_start: datetime,
        window_end: datetime,
        limit: int = 1,
    ) -> List[ClickEvent]:
        """Unattributed clicks from an IP inside the window, newest first"""
        pass

    @abstractmethod
    async def find_clicks_by_geo_within_window(
        self,
        user_id: str,
        country: str,
        city: str,
        window_start: datetime,
        window_end: datetime,
        limit: int = 1,
    ) -> List[ClickEvent]:
        """Unattributed clicks from a (country, city) inside the window, newest first"""
        pass

    @abstractmethod
    async def mark_click_attributed(self, click_id: str, sale_id: str) -> bool:
        """Flag a click as attributed; no-op if it already is"""
        pass

    @abstractmethod
    async def create_click(self, click: ClickEvent) -> ClickEvent:
        """Persist a click"""
        pass

    @abstractmethod
    async def find_sale_by_id(self, sale_id: str) -> Optional[SaleEvent]:
        """Load a sale by id"""
        pass

    @abstractmethod
    async def create_attribution(self, record: AttributionRecord) -> AttributionRecord:
        """Persist an attribution, returning the stored record"""
        pass

    @abstractmethod
    async def find_attribution_by_sale_id(
        self, sale_id: str
    ) -> Optional[AttributionRecord]:
        pass

    @abstractmethod
    async def find_attribution_by_id(
        self, attribution_id: str
    ) -> Optional[AttributionRecord]:
        pass

    @abstractmethod
    async def update_attribution_status(
        self, attribution_id: str, status: AttributionStatus
    ) -> AttributionRecord:
        """Move a not yet reviewed attribution to status

        Raises AttributionStateError when it is already CONFIRMED or REJECTED
        and AttributionNotFoundError when it does not exist.
        """
        pass

    @abstractmethod
    async def find_recent_content(
        self, user_id: str, window_start: datetime, window_end: datetime
    ) -> List[AttributedContent]:
        """Creator content posted inside the window"""
        pass

    @abstractmethod
    async def create_synthetic_link(self, user_id: str) -> TrackedLink:
        """Get or create the inactive link that owns a user's inferred clicks"""
        pass
