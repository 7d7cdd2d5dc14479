"""
Product extraction pipeline.

Sequences the page fetch, the four page extractors and the two auxiliary
endpoints into one ``ProductRecord``. A single request budget covers every
stage; fetch and endpoint failures abort with the failing stage named,
while extractor failures only degrade their own field.
"""

import asyncio
import time
from types import MappingProxyType
from typing import Callable, Optional, Tuple

from bs4 import BeautifulSoup

from core.response_cache import ResponseCache
from core.session_manager import SessionManager
from core.types import AttributeTaxonomy, PipelineConfig, PriceTier, ProductRecord
from network.feedback_client import MarketplaceFeedbackClient
from network.httpx_scraper import MarketplaceFetcher
from parsers.base_parser import SelectorConfig, build_soup, unescape_embedded_quotes
from parsers.description_parser import DescriptionParser
from parsers.price_parser import PriceTierParser
from parsers.product_parser import ProductFields, ProductParser
from parsers.variation_parser import VariationParser
from utils.error_handling import (
    STAGE_ASSEMBLY,
    STAGE_PAGE,
    STAGE_RECOMMENDATIONS,
    STAGE_REVIEWS,
    MissingInput,
    PipelineStageError,
    StructuredLogger,
    UnexpectedFailure,
    UpstreamHttpError,
    UpstreamTimeout,
)
from utils.helpers import extract_item_code
from utils.logger import get_logger

logger = get_logger(__name__)


class RequestBudget:
    """Wall-clock budget shared by every stage of one pipeline run."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self.seconds = seconds
        self._clock = clock
        self._started = clock()

    def remaining(self) -> float:
        return self.seconds - (self._clock() - self._started)

    def for_stage(self, stage: str) -> float:
        remaining = self.remaining()
        if remaining <= 0:
            raise UpstreamTimeout(stage)
        return remaining


def merge_attributes(embedded: AttributeTaxonomy, dom: AttributeTaxonomy) -> AttributeTaxonomy:
    """Embedded JSON is authoritative; the DOM taxonomy fills in when it is empty."""
    return embedded if embedded else dom


class ProductPipeline:
    """Fetch a product page and assemble its normalized record."""

    def __init__(
        self,
        fetcher: MarketplaceFetcher,
        cache: Optional[ResponseCache] = None,
        config: Optional[PipelineConfig] = None,
        selectors: Optional[SelectorConfig] = None,
        feedback_client: Optional[MarketplaceFeedbackClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.fetcher = fetcher
        self.config = config or fetcher.config
        self.cache = cache if cache is not None else ResponseCache(self.config.cache_duration_seconds)
        self.feedback = feedback_client or MarketplaceFeedbackClient(fetcher, self.config)
        self.price_parser = PriceTierParser(selectors)
        self.product_parser = ProductParser(selectors)
        self.description_parser = DescriptionParser(self.config.marketplace_domain, selectors)
        self.variation_parser = VariationParser(selectors)
        self._clock = clock
        self.log = StructuredLogger("pipeline")

    @classmethod
    def create(
        cls,
        config: Optional[PipelineConfig] = None,
        session: Optional[SessionManager] = None,
        cache: Optional[ResponseCache] = None,
        transport=None,
    ) -> "ProductPipeline":
        """Wire a pipeline with its own session, fetcher and cache."""
        config = config or PipelineConfig()
        session = session or SessionManager(config)
        fetcher = MarketplaceFetcher(session, config, transport=transport)
        return cls(fetcher, cache=cache, config=config)

    async def extract(self, url: Optional[str]) -> ProductRecord:
        """
        Return the product record for ``url``.

        Raises:
            MissingInput: ``url`` is empty
            UpstreamTimeout: the request budget ran out before a stage finished
            UpstreamHttpError: the page, reviews or recommendations endpoint
                answered with a non-2xx status
            NetworkError: transport failure on any outbound call
            UnexpectedFailure: anything else went wrong while assembling
        """
        if not url or not url.strip():
            raise MissingInput()

        cached = self.cache.get(url)
        if cached is not None:
            logger.info("Cache hit for %s", url, extra={"event_type": "cache"})
            return cached

        try:
            record = await self._run(url)
        except PipelineStageError as exc:
            self.log.log_error(exc, level="WARNING")
            raise
        except Exception as exc:  # noqa: BLE001
            failure = UnexpectedFailure(STAGE_ASSEMBLY, f"Failed to fetch product attributes: {exc}")
            self.log.log_error(failure)
            raise failure from exc

        self.cache.set(url, record)
        return record

    def _parse_page(self, text: str) -> Tuple[ProductFields, Tuple[PriceTier, ...], AttributeTaxonomy, str]:
        html = unescape_embedded_quotes(text)
        fields = self.product_parser.parse_safely(build_soup(html))
        price_tiers = self.price_parser.parse_safely(html)
        embedded_attributes = self.variation_parser.parse_safely(html)
        # The sanitizer mutates its subtree, so it runs on its own soup.
        description = self.description_parser.parse_safely(BeautifulSoup(html, "html.parser"))
        return fields, price_tiers, embedded_attributes, description

    async def _run(self, url: str) -> ProductRecord:
        budget = RequestBudget(self.config.request_timeout_seconds, self._clock)

        with self.log.timed("page_fetch", url=url):
            page = await self.fetcher.fetch(url, stage=STAGE_PAGE, timeout=budget.for_stage(STAGE_PAGE))
        if not page.ok:
            raise UpstreamHttpError(STAGE_PAGE, page.status_code, page.text, "fetching product page")

        with self.log.timed("page_parse", url=url):
            # CPU-bound, so it runs in a worker thread.
            fields, price_tiers, embedded_attributes, description = await asyncio.to_thread(
                self._parse_page, page.text
            )

        item_code = extract_item_code(url)
        reviews = ()
        recommendations = None
        if item_code:
            with self.log.timed("reviews", item_code=item_code):
                reviews = await self.feedback.fetch_reviews(
                    item_code, url, timeout=budget.for_stage(STAGE_REVIEWS)
                )
            with self.log.timed("recommendations", item_code=item_code):
                recommendations = await self.feedback.fetch_recommendations(
                    item_code, url, timeout=budget.for_stage(STAGE_RECOMMENDATIONS)
                )
        else:
            logger.info("No item code in %s; skipping reviews and recommendations", url)

        attributes = merge_attributes(embedded_attributes, fields.attributes)
        return ProductRecord(
            title=fields.title,
            images=fields.images,
            price_tiers=price_tiers,
            attributes=MappingProxyType(dict(attributes)),
            specifications=MappingProxyType(dict(fields.specifications)),
            description=description,
            sold_count=fields.sold_count,
            reviews=reviews,
            recommendations=recommendations,
        )
