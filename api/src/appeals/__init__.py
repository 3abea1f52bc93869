"""Appeal workflow module.

Provides:
- Appeals submitted by banned users
- Approve or deny responses, each appeal processed at most once
"""

from .models import APPEALS_TABLES_CQL, Appeal, AppealDecision
from .service import AppealService


__all__ = [
    "APPEALS_TABLES_CQL",
    "Appeal",
    "AppealDecision",
    "AppealService",
]
