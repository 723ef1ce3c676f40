from __future__ import annotations

import json
import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any


def _now_unix() -> int:
    return int(time.time())


def _safe_filename(s: str) -> str:
    out = []
    for ch in s:
        if ch.isalnum() or ch in ("-", "_", "."):
            out.append(ch)
        else:
            out.append("_")
    return "".join(out)[:120]


def default_run_id(*, prefix: str) -> str:
    ts = time.strftime("%Y%m%d_%H%M%S", time.gmtime())
    return f"{prefix}_{ts}_pid{os.getpid()}_{secrets.token_hex(3)}"


@dataclass(frozen=True)
class TransactionLogPaths:
    root: Path
    run_metadata: Path
    events: Path


class TransactionLog:
    """
    JSONL record of governance submissions:
    - run_metadata.json: one JSON object (chain, contract id, ...)
    - events.jsonl: one row per event, `tx_submitted` before signing and
      `tx_executed` once the node answers
    """

    def __init__(self, *, base_dir: Path, run_id: str) -> None:
        root = Path(base_dir) / _safe_filename(run_id)
        root.mkdir(parents=True, exist_ok=True)
        self.paths = TransactionLogPaths(
            root=root,
            run_metadata=root / "run_metadata.json",
            events=root / "events.jsonl",
        )

    def write_run_metadata(self, obj: dict[str, Any]) -> None:
        self.paths.run_metadata.write_text(json.dumps(obj, indent=2, sort_keys=True) + "\n")

    def event(self, name: str, **fields: object) -> None:
        """Append `{"t": <unix seconds>, "event": name, **fields}`."""
        row = {"t": _now_unix(), "event": name, **fields}
        with self.paths.events.open("a", encoding="utf-8") as f:
            f.write(json.dumps(row, sort_keys=True, default=str) + "\n")

    def tx_submitted(self, *, sender: str, gas_budget: int, gas_price: int, spec: dict[str, Any]) -> None:
        self.event("tx_submitted", sender=sender, gas_budget=gas_budget, gas_price=gas_price, ptb=spec)

    def tx_executed(self, *, digest: str | None, status: str | None, error: str | None) -> None:
        self.event("tx_executed", digest=digest, status=status, error=error)

    def read_events(self) -> list[dict[str, Any]]:
        if not self.paths.events.exists():
            return []
        with self.paths.events.open(encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]
