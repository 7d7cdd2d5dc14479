"""
Core data types for the product-page extraction pipeline.

Every record produced by the pipeline is built from the frozen dataclasses
below. ``to_dict`` methods produce the camelCase wire contract consumed by
the CSV exporter and the catalog-upload client.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple


# ============================================================================
# Type aliases
# ============================================================================

AttributeTaxonomy = Dict[str, Tuple["AttributeValue", ...]]


def _decimal_to_json(value: Decimal) -> float:
    return float(value)


# ============================================================================
# Product page fields
# ============================================================================


@dataclass(frozen=True)
class PriceTier:
    """Minimum order quantity at which ``price`` applies."""

    min_quantity: int
    price: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {"minQuantity": self.min_quantity, "price": _decimal_to_json(self.price)}


@dataclass(frozen=True)
class AttributeValue:
    value: str
    image_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "imageUrl": self.image_url}


# ============================================================================
# Reviews
# ============================================================================


@dataclass(frozen=True)
class ReviewBuyer:
    nickname: str = ""
    level: str = ""
    country_code: str = ""
    country_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nickname": self.nickname,
            "level": self.level,
            "countryCode": self.country_code,
            "countryName": self.country_name,
        }


@dataclass(frozen=True)
class ReviewImage:
    url: str
    thumbnail: str

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "thumbnail": self.thumbnail}


@dataclass(frozen=True)
class PurchasedAttribute:
    name: str
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value}


@dataclass(frozen=True)
class Review:
    id: str
    date_epoch: Optional[int]
    date_text: str
    rating: int
    content: str
    buyer: ReviewBuyer = field(default_factory=ReviewBuyer)
    images: Tuple[ReviewImage, ...] = ()
    purchased_attributes: Tuple[PurchasedAttribute, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "dateEpoch": self.date_epoch,
            "dateText": self.date_text,
            "rating": self.rating,
            "content": self.content,
            "buyer": self.buyer.to_dict(),
            "images": [image.to_dict() for image in self.images],
            "purchasedAttributes": [attr.to_dict() for attr in self.purchased_attributes],
        }


# ============================================================================
# Recommendations
# ============================================================================


@dataclass(frozen=True)
class PriceRange:
    min: str = ""
    max: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True)
class RecommendedPrice:
    current: PriceRange = field(default_factory=PriceRange)
    original: PriceRange = field(default_factory=PriceRange)

    def to_dict(self) -> Dict[str, Any]:
        return {"current": self.current.to_dict(), "original": self.original.to_dict()}


@dataclass(frozen=True)
class ShippingInfo:
    free: bool = False
    eta_days: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"free": self.free, "etaDays": self.eta_days}


@dataclass(frozen=True)
class SellerInfo:
    name: str = ""
    id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "id": self.id}


@dataclass(frozen=True)
class RecommendedProduct:
    title: str
    item_code: str
    url: str
    image: str
    price: RecommendedPrice = field(default_factory=RecommendedPrice)
    order_count: int = 0
    min_order: int = 1
    rating: float = 0.0
    shipping: ShippingInfo = field(default_factory=ShippingInfo)
    seller: SellerInfo = field(default_factory=SellerInfo)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "itemCode": self.item_code,
            "url": self.url,
            "image": self.image,
            "price": self.price.to_dict(),
            "orderCount": self.order_count,
            "minOrder": self.min_order,
            "rating": self.rating,
            "shipping": self.shipping.to_dict(),
            "seller": self.seller.to_dict(),
        }


# ============================================================================
# Product record
# ============================================================================


@dataclass(frozen=True)
class ProductRecord:
    """Normalized result of one pipeline run. Never mutated after assembly."""

    title: str = ""
    images: Tuple[str, ...] = ()
    price_tiers: Tuple[PriceTier, ...] = ()
    attributes: Mapping[str, Tuple[AttributeValue, ...]] = field(default_factory=dict)
    specifications: Mapping[str, str] = field(default_factory=dict)
    description: str = ""
    sold_count: int = 0
    reviews: Tuple[Review, ...] = ()
    recommendations: Optional[Tuple[RecommendedProduct, ...]] = None

    @property
    def base_price(self) -> Optional[Decimal]:
        return self.price_tiers[0].price if self.price_tiers else None

    @property
    def is_variable(self) -> bool:
        return bool(self.attributes)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "title": self.title,
            "images": list(self.images),
            "priceTiers": [tier.to_dict() for tier in self.price_tiers],
            "attributes": {
                name: [value.to_dict() for value in values]
                for name, values in self.attributes.items()
            },
            "specifications": dict(self.specifications),
            "description": self.description,
            "soldCount": self.sold_count,
            "reviews": [review.to_dict() for review in self.reviews],
        }
        if self.recommendations is not None:
            payload["recommendations"] = [item.to_dict() for item in self.recommendations]
        return payload


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one outbound HTTP call; non-2xx statuses are not raised."""

    status_code: int
    text: str
    url: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(frozen=True)
class PipelineConfig:
    """Runtime knobs for the pipeline, decoupled from settings loading."""

    marketplace_origin: str = "https://www.dhgate.com"
    marketplace_domain: str = "dhgate.com"
    request_timeout_seconds: float = 25.0
    cache_duration_seconds: float = 36000.0
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36"
    )
    user_agent_rotation: bool = False
    review_page_size_min: int = 10
    review_page_size_max: int = 110
    recommendation_page_size: int = 10
    http2: bool = False
    verify_ssl: bool = True
