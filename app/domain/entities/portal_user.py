"""Portal user domain entity.

A profile record paired 1:1 with an identity-provider account via ``uid``.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class PortalUser:
    """Domain entity for a portal user.

    ``is_first_login`` is True at creation and after an admin password reset;
    it is cleared only once the user sets a new password.
    """

    id: str | None
    uid: str
    email: str
    username: str
    department: str
    is_first_login: bool = True
    created_at: datetime | None = None
    created_by: str = "admin"
    last_login: datetime | None = None
    status: str = "active"

    @property
    def must_change_password(self) -> bool:
        return self.is_first_login
