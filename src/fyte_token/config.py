from __future__ import annotations

import os
from dataclasses import dataclass
from dotenv import load_dotenv

DEFAULT_STATE_FILE = "fyte_state.json"


@dataclass(frozen=True)
class Settings:
    state_file: str
    rpc_url: str | None = None

    @staticmethod
    def from_env(
        state_file_override: str | None = None,
        rpc_url_override: str | None = None,
    ) -> "Settings":
        load_dotenv()

        state_file = (
            state_file_override
            or os.getenv("FYTE_STATE_FILE", "").strip()
            or DEFAULT_STATE_FILE
        )
        rpc_url = rpc_url_override or os.getenv("RPC_URL", "").strip() or None
        return Settings(state_file=state_file, rpc_url=rpc_url)

    def require_rpc_url(self) -> str:
        if not self.rpc_url:
            raise RuntimeError("Missing RPC_URL. Put it in .env, export it or pass --rpc-url.")
        return self.rpc_url
