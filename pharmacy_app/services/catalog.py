"""
Catalog provider
Serves the fixed product list shown on the storefront
"""

from typing import List, Optional
import logging

from pharmacy_app.schemas.catalog import Product

logger = logging.getLogger(__name__)

_PRODUCTS = (
    Product(
        id="1",
        name="Paracetamol 500mg",
        description="Effective pain reliever. 24 tabs.",
        price=599,
        image_url="https://picsum.photos/seed/paracetamol/60/60",
        category="medicines",
        rating=4.5,
    ),
    Product(
        id="2",
        name="Fabric Band-Aids (Assorted)",
        description="Flexible adhesive bandages. 50 ct.",
        price=349,
        image_url="https://picsum.photos/seed/bandaids/60/60",
        category="essentials",
        rating=4.2,
    ),
    Product(
        id="3",
        name="Digital Thermometer",
        description="Fast and accurate temperature reading.",
        price=1299,
        image_url="https://picsum.photos/seed/thermometer/60/60",
        category="essentials",
        rating=4.8,
    ),
    Product(
        id="4",
        name="Antiseptic Wipes",
        description="Individually wrapped cleansing wipes. 100 ct.",
        price=785,
        image_url="https://picsum.photos/seed/wipes/60/60",
        category="essentials",
        rating=4.6,
    ),
    Product(
        id="5",
        name="Ibuprofen 200mg",
        description="Anti-inflammatory for pain relief. 50 tabs.",
        price=650,
        image_url="https://picsum.photos/seed/ibuprofen/60/60",
        category="medicines",
        rating=4.7,
    ),
    Product(
        id="6",
        name="Saline Nasal Spray",
        description="Gentle mist for nasal congestion.",
        price=820,
        image_url="https://picsum.photos/seed/nasalspray/60/60",
        category="medicines",
        rating=4.3,
    ),
    Product(
        id="7",
        name="Vitamin C 1000mg",
        description="Supports immune system health. 60 tabs.",
        price=995,
        image_url="https://picsum.photos/seed/vitaminc/60/60",
        category="essentials",
        rating=4.4,
    ),
    Product(
        id="8",
        name="Hand Sanitizer Gel",
        description="Kills 99.9% of germs. 250ml.",
        price=450,
        image_url="https://picsum.photos/seed/sanitizer/60/60",
        category="essentials",
        rating=4.0,
    ),
)

TOP_RATED_THRESHOLD = 4.7
TOP_RATED_LIMIT = 3


class CatalogProvider:
    """Read-only access to the product catalogue"""

    def __init__(self, products=_PRODUCTS):
        self._products = tuple(products)
        self._by_id = {product.id: product for product in self._products}

    def list_products(self, category: Optional[str] = None, min_rating: Optional[float] = None) -> List[Product]:
        """Return the full product list, optionally narrowed by category or rating"""
        products = list(self._products)
        if category:
            products = [p for p in products if p.category == category]
        if min_rating is not None:
            products = [p for p in products if p.rating is not None and p.rating >= min_rating]
        return products

    def get_product(self, product_id: str) -> Optional[Product]:
        return self._by_id.get(product_id)

    def top_rated(self, min_rating: float = TOP_RATED_THRESHOLD, limit: int = TOP_RATED_LIMIT) -> List[Product]:
        """Highest rated products for the home screen"""
        rated = self.list_products(min_rating=min_rating)
        rated.sort(key=lambda p: p.rating, reverse=True)
        return rated[:limit]


catalog = CatalogProvider()


def get_catalog() -> CatalogProvider:
    return catalog
