from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class UserHandle:
    uid: str
    email: str

    # remote backends only
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None
