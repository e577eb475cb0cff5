"""
Append-only JSON line archive for raw webhooks and matched pools.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

WEBHOOK_LOG_FILE = "webhook_logs.jsonl"
MATCHED_POOLS_FILE = "matched_pools.jsonl"


class WebhookArchive:
    """Writes one JSON document per line; failures are logged, never raised."""

    def __init__(self, archive_dir: Optional[Union[str, Path]]):
        self.archive_dir = Path(archive_dir) if archive_dir else None
        if self.archive_dir:
            self.archive_dir.mkdir(parents=True, exist_ok=True)

    @property
    def enabled(self) -> bool:
        return self.archive_dir is not None

    def record_webhook(self, payload: Any):
        self._append(WEBHOOK_LOG_FILE, {
            "received_at": datetime.now(timezone.utc).isoformat(),
            "payload": payload,
        })

    def record_pool(self, pool_entry: Dict[str, Any]):
        self._append(MATCHED_POOLS_FILE, {
            "recorded_at": datetime.now(timezone.utc).isoformat(),
            **pool_entry,
        })

    def _append(self, filename: str, entry: Dict[str, Any]):
        if not self.enabled:
            return
        try:
            with open(self.archive_dir / filename, "a") as f:
                f.write(json.dumps(entry, default=str) + "\n")
        except OSError as e:
            logger.error(f"Failed to write {filename}: {e}")
