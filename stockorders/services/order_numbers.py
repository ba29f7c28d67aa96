from __future__ import annotations

import secrets
from datetime import datetime, timezone

from stockorders.app.config import ORDER_NUMBER_PREFIX


def generate_order_number(prefix: str = ORDER_NUMBER_PREFIX, now: datetime | None = None) -> str:
    """ORD-20260117-3F9A0C21B7 : date UTC + 40 bits aléatoires."""
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d")
    return f"{prefix}-{stamp}-{secrets.token_hex(5).upper()}"
