from typing import Any, Mapping

from apps.common.database import RoutineResult
from apps.common.repository import RoutineRepository
from .routines import PRODUCT_GET, PRODUCT_LIST


class ProductRepository(RoutineRepository):
    def list_page(self, parameters: Mapping[str, Any], *, transaction=None) -> RoutineResult:
        """Run the listing routine; ``parameters`` use the routine's input names."""
        return self.call(PRODUCT_LIST, parameters, transaction=transaction)

    def get_detail(self, account_id: int, product_id: int, *, transaction=None) -> RoutineResult:
        return self.call(
            PRODUCT_GET,
            {"idAccount": account_id, "idProduct": product_id},
            transaction=transaction,
        )
