# dreamknot/services/catalog_client.py
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from functools import lru_cache

import requests
from requests import RequestException

from dreamknot.services.product_cache import ProductCache
from dreamknot.utils.retry import http_retry
from dreamknot.utils.settings import CATALOG_API_TOKEN, CATALOG_PAGE_SIZE, CATALOG_URL
from dreamknot.utils.logging import get_logger

logger = get_logger(__name__)

PLACEHOLDER_IMAGE = "/placeholder-product.jpg"

_SORTS = {
    "price-low": "base_price:asc",
    "price-high": "base_price:desc",
    "name": "title:asc",
    "newest": "createdAt:desc",
}

_ALL_PRODUCTS_KEY = "products:all"

FALLBACK_CATEGORIES = ("Birthday", "For Couples", "Mugs", "T-Shirts", "Home & Garden")


def _fallback_categories() -> list[dict]:
    now = datetime.now(timezone.utc).isoformat()
    return [{"id": i, "name": name, "created_at": now} for i, name in enumerate(FALLBACK_CATEGORIES, start=1)]


def unavailable_product(product_id: int) -> dict:
    """Zero-priced stand-in for a product the catalog no longer returns."""
    return {
        "id": product_id,
        "title": "Product Unavailable",
        "description": "This product is no longer available.",
        "price": Decimal("0.00"),
        "category": None,
        "images": [PLACEHOLDER_IMAGE],
        "created_at": None,
    }


def _empty_page(limit: int) -> dict:
    return {
        "products": [],
        "pagination": {"page": 1, "limit": limit, "total": 0, "pages": 0},
    }


class CatalogClient:
    """
    Read-only client for the headless CMS owning the product catalog.

    A failed fetch is logged and answered with an empty page, so callers see
    "zero results" instead of an error when the CMS is down.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_token: str | None = None,
        timeout: int = 5,
        cache: ProductCache | None = None,
        page_size: int = CATALOG_PAGE_SIZE,
    ):
        self.base_url = (base_url or CATALOG_URL).rstrip("/")
        self.api_token = api_token if api_token is not None else CATALOG_API_TOKEN
        self.timeout = timeout
        self.cache = cache or ProductCache()
        self.page_size = page_size

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def list_products(
        self,
        search: str | None = None,
        category: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        sort_by: str = "newest",
        page: int = 1,
        limit: int = 12,
        featured: bool = False,
    ) -> dict:
        params = [
            ("populate[category]", "true"),
            ("populate[images]", "true"),
        ]
        if search:
            params.append(("filters[$or][0][title][$containsi]", search))
            params.append(("filters[$or][1][description][$containsi]", search))
        if category:
            params.append(("filters[category][name][$eqi]", category))
        if featured:
            params.append(("filters[featured][$eq]", "true"))
        if min_price is not None:
            params.append(("filters[base_price][$gte]", str(min_price)))
        if max_price is not None:
            params.append(("filters[base_price][$lte]", str(max_price)))
        params.append(("sort", _SORTS.get(sort_by, _SORTS["newest"])))
        params.append(("pagination[page]", str(page)))
        params.append(("pagination[pageSize]", str(limit)))

        try:
            data = self._fetch(params)
            products = [self._normalize(item) for item in data["data"]]
            pagination = data["meta"]["pagination"]
        except RequestException as e:
            logger.error(f"Catalog request failed: {e}")
            return _empty_page(limit)
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            logger.error(f"Catalog returned an unexpected payload: {e}")
            return _empty_page(limit)

        return {
            "products": products,
            "pagination": {
                "page": pagination.get("page", page),
                "limit": pagination.get("pageSize", limit),
                "total": pagination.get("total", len(products)),
                "pages": pagination.get("pageCount", 0),
            },
        }

    def all_products(self) -> list[dict]:
        cached = self.cache.get(_ALL_PRODUCTS_KEY)
        if cached is not None:
            return cached

        products = self.list_products(limit=self.page_size)["products"]
        # an empty answer may mean the CMS is down, do not pin it
        if products:
            self.cache.set(_ALL_PRODUCTS_KEY, products)
        return products

    def products_by_id(self) -> dict[int, dict]:
        return {p["id"]: p for p in self.all_products()}

    def get_product(self, product_id: int) -> dict | None:
        return self.products_by_id().get(product_id)

    def list_categories(self) -> list[dict]:
        """Categories by name; the built-in list stands in when the CMS cannot answer."""
        if not self.api_token:
            logger.warning("No catalog API token configured, using fallback categories")
            return _fallback_categories()

        try:
            data = self._get("categories", [("sort", "name:asc")])
            return [
                {"id": int(item["id"]), "name": item["name"], "created_at": item.get("createdAt")}
                for item in data["data"]
            ]
        except RequestException as e:
            logger.error(f"Catalog categories request failed: {e}")
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Catalog returned an unexpected categories payload: {e}")
        return _fallback_categories()

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------
    def _fetch(self, params: list[tuple[str, str]]) -> dict:
        return self._get("products", params)

    @http_retry()
    def _get(self, resource: str, params: list[tuple[str, str]]) -> dict:
        url = f"{self.base_url}/api/{resource}"
        headers = {"Content-Type": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"

        logger.info(f"CatalogClient GET {url}")
        resp = requests.get(url, params=params, headers=headers, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def _normalize(self, item: dict) -> dict:
        category = item.get("category")
        images = [self._image_url(img.get("url")) for img in item.get("images") or []]
        return {
            "id": int(item["id"]),
            "title": item["title"],
            "description": item.get("description"),
            "price": Decimal(str(item["base_price"])).quantize(Decimal("0.01")),
            "category": {
                "id": category["id"],
                "name": category["name"],
                "created_at": category.get("createdAt"),
            } if category else None,
            "images": images or [PLACEHOLDER_IMAGE],
            "created_at": item.get("createdAt"),
        }

    def _image_url(self, url: str | None) -> str:
        if not url:
            return PLACEHOLDER_IMAGE
        if url.startswith(("http://", "https://")):
            return url
        if url.startswith("/uploads/"):
            return f"{self.base_url}{url}"
        if url.startswith("/"):
            return url
        return f"{self.base_url}/uploads/{url}"


@lru_cache(maxsize=1)
def get_catalog_client() -> CatalogClient:
    return CatalogClient(cache=ProductCache())
