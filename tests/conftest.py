"""Shared fixtures: a representative product page and JSON endpoint payloads."""

from __future__ import annotations

import json
import random
from typing import Any, Callable, Dict, List

import httpx
import pytest

from core.session_manager import SessionManager
from core.types import PipelineConfig

PRODUCT_URL = "https://www.dhgate.com/product/wireless-earbuds/123456789.html"

# Embedded JSON in the page source is backslash-escaped, as served.
EMBEDDED_STATE = (
    r'{\"itemAttrList\":[{\"attrName\":\"Color\",\"itemAttrvalList\":['
    r'{\"attrValName\":\"Black\",\"picUrl\":\"https://img.dhresource.com/200x200/black.jpg\"},'
    r'{\"attrValName\":\"White\",\"picUrl\":\"\"}]},'
    r'{\"attrName\":\"Shipping from\",\"itemAttrvalList\":[{\"attrValName\":\"China\"}]},'
    r'{\"attrName\":\"Size\",\"itemAttrvalList\":[{\"attrValName\":\"S\"},{\"attrValName\":\"M\"}]}],'
    r'\"firstItemAttrList\":[],'
    r'\"wholesaleQtyList\":[{\"endQty\":10,\"startQty\":1,\"originalPrice\":5.99},'
    r'{\"endQty\":50,\"startQty\":11,\"promDiscountPrice\":4.50}]}'
)

PRODUCT_HTML = f"""
<html>
<head><title>Wireless Earbuds</title></head>
<body>
<div class="productInfo_productInfo__a1b2c">
  <h1>  Wireless Earbuds Bluetooth 5.3  </h1>
</div>
<div class="masterMap_smallMapList__x9y8">
  <ul>
    <li><span><img src="https://img.dhresource.com/200x200/a.jpg"></span></li>
    <li><span><img src="https://img.dhresource.com/100x100/b.jpg"></span></li>
    <li><span><img src="https://img.dhresource.com/200x200/a.jpg"></span></li>
    <li><span><img src=""></span></li>
  </ul>
</div>
<div class="productSellerMsg_sold__q1">
  1,024 orders   <b>356</b>
     Sold
</div>
<div class="productSku_attrItem__k1">
  <span class="productSku_attrName__k2">Color:</span>
  <ul class="productSku_attrList__k3">
    <li title="Red"><img src="https://img.dhresource.com/100x100/red.jpg" alt="Red"></li>
    <li title="Blue"><img src="https://img.dhresource.com/100x100/blue.jpg" alt="Blue"></li>
  </ul>
</div>
<div class="productSku_attrItem__k1">
  <span class="productSku_attrName__k2">Shipping from:</span>
  <ul class="productSku_attrList__k3"><li>China</li></ul>
</div>
<ul class="prodSpecifications_showUl__z1">
  <li><span>Brand:</span><div class="prodSpecifications_deswrap__z2"> Acme </div></li>
  <li><span>Model:</span><div class="prodSpecifications_deswrap__z2">X-100</div></li>
  <li><span>Empty:</span><div class="prodSpecifications_deswrap__z2">  </div></li>
  <li><div class="prodSpecifications_deswrap__z2">orphan value</div></li>
</ul>
<div class="prodDesc_decHtml__d1">
  <div class="intro" style="color:red">
    <p>Great   sound</p>
    <script>alert(1)</script>
    <style>.x{{color:red}}</style>
    <link rel="stylesheet" href="x.css">
    <img class="lazy" src="https://img.dhresource.com/200x200/desc.jpg" width="750" height="400" loading="lazy" style="display:block">
    <a class="btn" href="https://www.dhgate.com/store/12345.html">Visit our <b>store</b></a>
    <a class="ext" style="x" href="https://example.com/manual">Manual</a>
    <p> </p>
  </div>
  <table width=600><tr><td class="cell">Battery: 30h</td></tr></table>
</div>
<script>window.__INIT_DATA__ = {EMBEDDED_STATE};</script>
</body>
</html>
"""

REVIEWS_PAYLOAD: Dict[str, Any] = {
    "data": {
        "data": [
            {
                "reviewid": 98765,
                "createddate": 1700000000000,
                "createdDateText": "Nov 14, 2023",
                "score": 5,
                "content": "Works great",
                "buyerNickname": "j***n",
                "buyerlevel": "VIP",
                "country": "US",
                "countryFullname": "United States",
                "reviewAttach": {
                    "videoUrl": None,
                    "imgs": [
                        {
                            "imgUrl": "https://img.dhresource.com/200x200/review.jpg",
                            "miniImgUrl": "https://img.dhresource.com/100x100/review.jpg",
                        }
                    ],
                },
                "prodAttrs": [{"attrname": "Color", "attrvalue": "Black"}],
            }
        ]
    }
}

RECOMMENDATIONS_PAYLOAD: Dict[str, Any] = {
    "data": [
        {
            "title": "Earbuds Case",
            "itemCode": "555",
            "url": "https://www.dhgate.com/product/case/555.html#yml-1",
            "img": "https://img.dhresource.com/260x260/case.jpg",
            "lowPrice": "US $1.99",
            "highPrice": "US $2.49",
            "lowOrgPrice": "US $2.99",
            "highOrgPrice": "US $3.49",
            "productOrders": 42,
            "minOrder": "2",
            "stars": "4.8",
            "freeshipping": "1",
            "xDayArrive": "7",
            "sellername": "acme-store",
            "supplierId": "ff80",
        }
    ]
}


class MarketplaceStub:
    """``httpx.MockTransport`` handler routing by path, recording every request."""

    def __init__(
        self,
        page_html: str = PRODUCT_HTML,
        page_status: int = 200,
        reviews: Any = REVIEWS_PAYLOAD,
        reviews_status: int = 200,
        recommendations: Any = RECOMMENDATIONS_PAYLOAD,
        recommendations_status: int = 200,
    ) -> None:
        self.page_html = page_html
        self.page_status = page_status
        self.reviews = reviews
        self.reviews_status = reviews_status
        self.recommendations = recommendations
        self.recommendations_status = recommendations_status
        self.requests: List[httpx.Request] = []

    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]

    def _json(self, status: int, payload: Any) -> httpx.Response:
        if status >= 300:
            return httpx.Response(status, text="<html>upstream unavailable</html>")
        return httpx.Response(status, text=json.dumps(payload))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.startswith("/reviewbuyer/"):
            return self._json(self.reviews_status, self.reviews)
        if path.startswith("/prod/ajax/recom.do"):
            return self._json(self.recommendations_status, self.recommendations)
        return httpx.Response(self.page_status, text=self.page_html)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def product_html() -> str:
    return PRODUCT_HTML


@pytest.fixture
def unescaped_html() -> str:
    return PRODUCT_HTML.replace('\\"', '"')


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig(request_timeout_seconds=5.0, cache_duration_seconds=60.0)


@pytest.fixture
def session(config: PipelineConfig) -> SessionManager:
    return SessionManager(config, rng=random.Random(7))


@pytest.fixture
def marketplace_stub() -> MarketplaceStub:
    return MarketplaceStub()


@pytest.fixture
def fake_clock() -> Callable[[], float]:
    class _Clock:
        def __init__(self) -> None:
            self.now = 1_000.0

        def __call__(self) -> float:
            return self.now

        def advance(self, seconds: float) -> None:
            self.now += seconds

    return _Clock()
