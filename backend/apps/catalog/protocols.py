from __future__ import annotations

from typing import Any, Mapping, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from apps.common.database import RoutineResult


class ProductRepositoryProtocol(Protocol):
    def list_page(self, parameters: Mapping[str, Any], *, transaction=None) -> "RoutineResult":
        ...

    def get_detail(self, account_id: int, product_id: int, *, transaction=None) -> "RoutineResult":
        ...
