from app.db import get_db
from app.services.auth_dependencies import require_capability, require_principal

__all__ = [
    "get_db",
    "require_capability",
    "require_principal",
]
