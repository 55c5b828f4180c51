from typing import Any, Mapping, Optional

from .database import RoutineContract, RoutineGateway, RoutineResult


class RoutineRepository:
    """Base repository whose reads are stored routine calls through a gateway."""

    def __init__(self, gateway: RoutineGateway):
        self.gateway = gateway

    def call(
        self,
        contract: RoutineContract,
        parameters: Optional[Mapping[str, Any]] = None,
        *,
        transaction=None,
    ) -> RoutineResult:
        return self.gateway.call(contract, parameters or {}, transaction=transaction)
