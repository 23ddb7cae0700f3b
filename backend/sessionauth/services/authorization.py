"""Role checks on an already-validated claim set."""

from sessionauth.services.claims import ClaimSet

DEFAULT_ADMIN_ROLE = "ADMIN"


class AuthorizationProbe:
    """Boolean role membership checks.

    This is not a permission engine: a permission is granted only to holders
    of the administrative role.
    """

    def __init__(self, admin_role: str = DEFAULT_ADMIN_ROLE):
        self.admin_role = admin_role

    def has_role(self, claims: ClaimSet, role: str) -> bool:
        """Exact, case-sensitive membership test."""
        if not claims.roles:
            return False
        return role in claims.roles

    def check_authorization(
        self,
        claims: ClaimSet,
        role: str | None = None,
        permission: str | None = None,
    ) -> bool:
        if role and role.strip():
            if not self.has_role(claims, role):
                return False

        if permission and permission.strip():
            return self.has_role(claims, self.admin_role)

        return True
