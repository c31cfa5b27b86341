from __future__ import annotations

from dataclasses import dataclass

from sorteos.repository.store import TableStore
from sorteos.services.auth import SupabaseAuthClient


@dataclass
class AppState:
    store: TableStore
    auth_client: SupabaseAuthClient | None = None
