# backend/jayple/core/caller.py
"""Verified caller identity passed from the API layer into services."""

from dataclasses import dataclass

from .enums import OPERATOR_ROLES, PROVIDER_ROLES, RoleName


@dataclass(frozen=True)
class Caller:
    user_id: str
    role: str

    @property
    def is_customer(self) -> bool:
        return self.role == RoleName.CUSTOMER.value

    @property
    def is_provider(self) -> bool:
        return self.role in PROVIDER_ROLES

    @property
    def is_operator(self) -> bool:
        return self.role in OPERATOR_ROLES


SYSTEM_CALLER = Caller(user_id="system", role=RoleName.SYSTEM.value)
