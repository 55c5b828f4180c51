from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .pagination import DEFAULT_PAGE, DEFAULT_PAGE_SIZE

SORT_OPTIONS = ("relevance", "price_asc", "price_desc", "name_asc", "name_desc")
DEFAULT_SORT = "relevance"


@dataclass
class ProductListParams:
    page: int = DEFAULT_PAGE
    pageSize: int = DEFAULT_PAGE_SIZE
    sort: str = DEFAULT_SORT
    search: Optional[str] = None
    categories: List[int] = field(default_factory=list)
    flavors: List[int] = field(default_factory=list)
    sizes: List[int] = field(default_factory=list)
    priceMin: Optional[float] = None
    priceMax: Optional[float] = None

    @staticmethod
    def from_validated(data: Dict[str, Any]) -> "ProductListParams":
        """Build from ``ProductListQuerySerializer.validated_data``."""
        return ProductListParams(
            page=data.get("page", DEFAULT_PAGE),
            pageSize=data.get("pageSize", DEFAULT_PAGE_SIZE),
            sort=data.get("sort", DEFAULT_SORT),
            search=data.get("search"),
            categories=list(data.get("categories") or []),
            flavors=list(data.get("flavors") or []),
            sizes=list(data.get("sizes") or []),
            priceMin=data.get("priceMin"),
            priceMax=data.get("priceMax"),
        )
