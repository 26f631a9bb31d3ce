from typing import Optional


class CheckoutIdentity:
    """Identité résolue pour un checkout: utilisateur authentifié ou invité."""

    def __init__(self, email: str, user_id: Optional[str] = None):
        self.email = email
        self.user_id = user_id

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    def __repr__(self) -> str:
        return f"CheckoutIdentity(email={self.email!r}, user_id={self.user_id!r})"
