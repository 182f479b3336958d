from .SmartLinkRepository import SmartLinkRepository
from .ClickRepository import ClickRepository
from .SaleRepository import SaleRepository
from .AttributionRepository import AttributionRepository
from .SocialPostRepository import SocialPostRepository
from .ContentAttributionRepository import ContentAttributionRepository

__all__ = [
    "SmartLinkRepository",
    "ClickRepository",
    "SaleRepository",
    "AttributionRepository",
    "SocialPostRepository",
    "ContentAttributionRepository",
]
