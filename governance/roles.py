"""
Fungible Token Governance - Role Sets

Client-side view of which addresses may act as proposer, authorizer or
relayer for governance status actions. The ledger remains the authority;
these sets let the client reject an obviously unauthorized action before
any signature is produced.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable


@dataclass(frozen=True)
class GovernanceRoles:
    """
    Address sets per governance role.

    An empty set leaves that role unrestricted on the client side.
    """
    proposers: FrozenSet[str] = field(default_factory=frozenset)
    authorizers: FrozenSet[str] = field(default_factory=frozenset)
    relayers: FrozenSet[str] = field(default_factory=frozenset)
    require_ownership_approval: bool = False

    @staticmethod
    def _permits(members: FrozenSet[str], address: str) -> bool:
        return not members or address in members

    def is_proposer(self, address: str) -> bool:
        return self._permits(self.proposers, address)

    def is_authorizer(self, address: str) -> bool:
        return self._permits(self.authorizers, address)

    def is_relayer(self, address: str) -> bool:
        return self._permits(self.relayers, address)

    @classmethod
    def from_config(cls, section: Dict[str, Any]) -> "GovernanceRoles":
        """
        Build role sets from the ``governance`` configuration section.

        Args:
            section: Mapping with optional ``proposers``, ``authorizers``,
                ``relayers`` lists and ``require_ownership_approval`` flag
        """
        def addresses(key: str) -> FrozenSet[str]:
            values: Iterable[str] = section.get(key) or ()
            return frozenset(values)

        return cls(
            proposers=addresses("proposers"),
            authorizers=addresses("authorizers"),
            relayers=addresses("relayers"),
            require_ownership_approval=bool(section.get("require_ownership_approval", False)),
        )
