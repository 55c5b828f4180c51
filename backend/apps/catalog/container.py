from __future__ import annotations

from typing import Optional

from apps.common.database import ConnectionPool, RoutineGateway, get_default_pool

from .repositories import ProductRepository
from .services import ProductService


def build_product_service(*, pool: Optional[ConnectionPool] = None) -> ProductService:
    gateway = RoutineGateway(pool or get_default_pool())
    return ProductService(products=ProductRepository(gateway))
