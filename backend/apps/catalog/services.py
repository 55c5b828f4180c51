from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from apps.common import get_logger
from .commands import ProductListParams
from .dtos import ProductDetailDTO, ProductListDTO
from .mappers import ProductDetailMapper, ProductListItemMapper
from .pagination import build_pagination
from .protocols import ProductRepositoryProtocol

logger = get_logger(__name__).bind(component="catalog", layer="service")


def _join_ids(ids: Optional[Iterable[int]]) -> Optional[str]:
    ids = list(ids or [])
    return ",".join(str(i) for i in ids) if ids else None


class ProductService:
    def __init__(self, products: ProductRepositoryProtocol):
        self.products = products
        self.logger = logger.bind(service="ProductService")

    @staticmethod
    def routine_parameters(params: ProductListParams, account_id: int) -> Dict[str, Any]:
        """Listing inputs keyed by routine parameter name; absent filters are ``None``."""
        return {
            "idAccount": account_id,
            "pageNumber": params.page,
            "pageSize": params.pageSize,
            "sort": params.sort,
            "searchTerm": params.search or None,
            "categoryIds": _join_ids(params.categories),
            "flavorIds": _join_ids(params.flavors),
            "sizeIds": _join_ids(params.sizes),
            "minPrice": params.priceMin,
            "maxPrice": params.priceMax,
        }

    def list_products(self, params: ProductListParams, *, account_id: int) -> ProductListDTO:
        self.logger.debug(
            "Listing products",
            account_id=account_id,
            page=params.page,
            page_size=params.pageSize,
            sort=params.sort,
        )
        result = self.products.list_page(self.routine_parameters(params, account_id))
        products = ProductListItemMapper.many_to_dto(result.rows("products"))

        total_row = result.first("total")
        if total_row is None or total_row.get("total") is None:
            # Treated as an empty catalog rather than a routine fault.
            self.logger.warning(
                "Product list returned no total row; assuming zero",
                account_id=account_id,
            )
            total = 0
        else:
            total = int(total_row["total"])

        pagination = build_pagination(params.page, params.pageSize, total)
        self.logger.debug(
            "Products listed",
            returned=len(products),
            total_items=pagination.totalItems,
            total_pages=pagination.totalPages,
        )
        return ProductListDTO(products=products, pagination=pagination)

    def get_product(self, product_id: int, *, account_id: int) -> Optional[ProductDetailDTO]:
        self.logger.debug("Fetching product", product_id=product_id, account_id=account_id)
        result = self.products.get_detail(account_id, product_id)
        row = result.first("productDetails")
        if row is None:
            self.logger.info("Product not found", product_id=product_id, account_id=account_id)
            return None
        return ProductDetailMapper.to_dto(
            row,
            images=result.rows("images"),
            flavors=result.rows("flavors"),
            sizes=result.rows("sizes"),
        )
