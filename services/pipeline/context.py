"""
Per-cycle lookup tables shared by the sync stages
"""

from dataclasses import dataclass, field
from typing import Optional

from shared.schemas import Organization, User

UNKNOWN_ORG_ID = -1


@dataclass
class SyncContext:
    """
    Reference data for a single sync cycle.

    Built empty at the start of every cycle and filled by the reference
    loaders before the ticket and topic stages read it. Never reused
    across cycles.
    """
    organizations: dict[int, Organization] = field(default_factory=dict)
    users: dict[int, User] = field(default_factory=dict)
    forums: dict[int, Optional[str]] = field(default_factory=dict)
    field_names: dict[str, str] = field(default_factory=dict)
    _org_ids_by_name: dict[str, int] = field(default_factory=dict, repr=False)

    def add_organization(self, org: Organization):
        self.organizations[org.id] = org
        if org.name is not None:
            # First organization with a given name wins
            self._org_ids_by_name.setdefault(org.name, org.id)

    def add_user(self, user: User):
        self.users[user.id] = user

    def organization_id_for(self, name: Optional[str]) -> int:
        """Organization id for a name, or -1 when no loaded org has it"""
        if name is None:
            return UNKNOWN_ORG_ID
        return self._org_ids_by_name.get(name, UNKNOWN_ORG_ID)

    def organization_named(self, name: Optional[str]) -> Optional[Organization]:
        return self.organizations.get(self.organization_id_for(name))

    def organization_name(self, org_id: Optional[int]) -> Optional[str]:
        org = self.organizations.get(org_id) if org_id is not None else None
        return org.name if org else None

    def user_name(self, user_id: Optional[int]) -> Optional[str]:
        user = self.users.get(user_id) if user_id is not None else None
        return user.name if user else None
