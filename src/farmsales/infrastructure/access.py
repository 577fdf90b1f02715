"""Farm membership access policy: admins see every farm, everyone else
only the farms they belong to."""

from __future__ import annotations

from farmsales.application.ports import AccessPolicy, Requester


class FarmMembershipPolicy(AccessPolicy):

    def is_allowed(self, requester: Requester, farm_id: str) -> bool:
        return requester.is_admin or farm_id in requester.farm_ids
