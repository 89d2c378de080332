from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class LedgerContext:
    """Caller identity, already authenticated upstream and trusted as-is."""

    tenant_id: int
    actor_id: Optional[int] = None
