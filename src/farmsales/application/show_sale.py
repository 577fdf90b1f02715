"""Application service: Show Sale use case (query)."""

from __future__ import annotations

from farmsales.application.dto import SaleDTO, to_sale_dto
from farmsales.application.ports import AccessPolicy, Requester
from farmsales.domain.exceptions import EntityNotFoundError
from farmsales.domain.repository.sale_repository import SaleRepository


class ShowSaleHandler:

    def __init__(self, sale_repo: SaleRepository, access_policy: AccessPolicy) -> None:
        self._sale_repo = sale_repo
        self._access = access_policy

    def handle(self, requester: Requester, sale_id: int) -> SaleDTO:
        sale = self._sale_repo.get_by_id(sale_id)
        if sale is None:
            raise EntityNotFoundError(f"Sale #{sale_id} not found")
        self._access.check(requester, sale.farm_id)
        return to_sale_dto(sale)
