"""
Client for the marketplace's review and recommendation JSON endpoints.

Both endpoints are keyed by the item code parsed from the product URL. A
non-2xx answer is a hard failure for the owning stage; a 2xx answer with no
data container is simply an empty result.
"""

import json
import random
from typing import Any, Dict, List, Optional, Tuple

from core.types import (
    PipelineConfig,
    PriceRange,
    PurchasedAttribute,
    RecommendedPrice,
    RecommendedProduct,
    Review,
    ReviewBuyer,
    ReviewImage,
    SellerInfo,
    ShippingInfo,
)
from network.httpx_scraper import JSON_ACCEPT, MarketplaceFetcher
from parsers.base_parser import upscale_image_url
from utils.error_handling import (
    STAGE_RECOMMENDATIONS,
    STAGE_REVIEWS,
    UnexpectedFailure,
    UpstreamHttpError,
)
from utils.helpers import (
    safe_float_conversion,
    safe_int_conversion,
    strip_currency_prefix,
    strip_url_fragment,
)
from utils.logger import get_logger

REVIEWS_PATH = "/reviewbuyer/reviewOfProd/pageReviewOfProd"
RECOMMENDATIONS_PATH = "/prod/ajax/recom.do"

logger = get_logger(__name__)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def map_review(payload: Dict[str, Any]) -> Review:
    attach = payload.get("reviewAttach") or {}
    images = []
    for img in attach.get("imgs") or []:
        full = _text(img.get("imgUrl"))
        if not full:
            continue
        images.append(
            ReviewImage(
                url=upscale_image_url(full),
                thumbnail=_text(img.get("miniImgUrl")) or full,
            )
        )

    purchased = tuple(
        PurchasedAttribute(name=_text(attr.get("attrname")), value=_text(attr.get("attrvalue")))
        for attr in payload.get("prodAttrs") or []
        if isinstance(attr, dict)
    )

    rating = safe_int_conversion(payload.get("score")) or 0
    return Review(
        id=_text(payload.get("reviewid")),
        date_epoch=safe_int_conversion(payload.get("createddate")),
        date_text=_text(payload.get("createdDateText")),
        rating=max(0, min(5, rating)),
        content=_text(payload.get("content")),
        buyer=ReviewBuyer(
            nickname=_text(payload.get("buyerNickname")),
            level=_text(payload.get("buyerlevel")),
            country_code=_text(payload.get("country")),
            country_name=_text(payload.get("countryFullname")),
        ),
        images=tuple(images),
        purchased_attributes=purchased,
    )


def map_recommendation(payload: Dict[str, Any]) -> RecommendedProduct:
    order_count = safe_int_conversion(payload.get("productOrders"))
    if order_count is None:
        order_count = safe_int_conversion(payload.get("order")) or 0
    return RecommendedProduct(
        title=_text(payload.get("title")),
        item_code=_text(payload.get("itemCode")),
        url=strip_url_fragment(payload.get("url")),
        image=upscale_image_url(payload.get("img")),
        price=RecommendedPrice(
            current=PriceRange(
                min=strip_currency_prefix(payload.get("lowPrice")),
                max=strip_currency_prefix(payload.get("highPrice")),
            ),
            original=PriceRange(
                min=strip_currency_prefix(payload.get("lowOrgPrice")),
                max=strip_currency_prefix(payload.get("highOrgPrice")),
            ),
        ),
        order_count=order_count,
        min_order=safe_int_conversion(payload.get("minOrder")) or 1,
        rating=safe_float_conversion(payload.get("stars")) or 0.0,
        shipping=ShippingInfo(
            free=_text(payload.get("freeshipping")) == "1",
            eta_days=safe_int_conversion(payload.get("xDayArrive")) or 0,
        ),
        seller=SellerInfo(
            name=_text(payload.get("sellername")),
            id=_text(payload.get("supplierId")),
        ),
    )


class MarketplaceFeedbackClient:
    """Fetches and normalizes reviews and recommended products."""

    def __init__(
        self,
        fetcher: MarketplaceFetcher,
        config: Optional[PipelineConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.fetcher = fetcher
        self.config = config or fetcher.config
        self._rng = rng or random.Random()

    def review_page_size(self) -> int:
        return self._rng.randint(self.config.review_page_size_min, self.config.review_page_size_max)

    def review_params(self, item_code: str, source_url: str) -> Dict[str, Any]:
        return {
            "itemCode": item_code,
            "language": "en",
            "client": "pc",
            "dispCurrency": "USD",
            "sortType": 1,
            "pageNum": 1,
            "pageSize": self.review_page_size(),
            "url_r": source_url,
        }

    def recommendation_params(self, item_code: str, source_url: str) -> Dict[str, Any]:
        return {
            "client": "pc",
            "language": "en",
            "dispCurrency": "USD",
            "itemCode": item_code,
            "pos": "yml",
            "pageNum": 1,
            "pageSize": self.config.recommendation_page_size,
            "publicLanguage": "en",
            "isBot": "false",
            "url_f": "",
            "url_r": source_url,
        }

    async def _get_json(
        self, stage: str, path: str, params: Dict[str, Any], timeout: Optional[float]
    ) -> Any:
        url = self.config.marketplace_origin.rstrip("/") + path
        result = await self.fetcher.fetch(
            url, stage=stage, accept=JSON_ACCEPT, params=params, timeout=timeout
        )
        if not result.ok:
            raise UpstreamHttpError(stage, result.status_code, result.text)
        try:
            return json.loads(result.text)
        except json.JSONDecodeError as exc:
            raise UnexpectedFailure(stage, f"invalid JSON payload: {exc}") from exc

    async def fetch_reviews(
        self, item_code: str, source_url: str, timeout: Optional[float] = None
    ) -> Tuple[Review, ...]:
        payload = await self._get_json(
            STAGE_REVIEWS, REVIEWS_PATH, self.review_params(item_code, source_url), timeout
        )
        container = payload.get("data") if isinstance(payload, dict) else None
        rows = container.get("data") if isinstance(container, dict) else None
        if not isinstance(rows, list):
            logger.info("No review data for item %s", item_code, extra={"event_type": "parse"})
            return ()
        return tuple(map_review(row) for row in rows if isinstance(row, dict))

    async def fetch_recommendations(
        self, item_code: str, source_url: str, timeout: Optional[float] = None
    ) -> Tuple[RecommendedProduct, ...]:
        payload = await self._get_json(
            STAGE_RECOMMENDATIONS,
            RECOMMENDATIONS_PATH,
            self.recommendation_params(item_code, source_url),
            timeout,
        )
        rows: Optional[List[Any]] = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(rows, list):
            logger.info(
                "No recommendation data for item %s", item_code, extra={"event_type": "parse"}
            )
            return ()
        return tuple(map_recommendation(row) for row in rows if isinstance(row, dict))
