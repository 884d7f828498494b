"""
Operation audit log: append-only, one record per gateway request.
Records go to an in-memory ring (for search) and, when an audit directory is configured,
to <dir>/operation_audit.log. Each record carries lineHash (first 16 hex chars of SHA-256
over the record) so later tampering can be detected.
"""
from __future__ import annotations

import hashlib
import json
import logging
import os
import threading
import time
from collections import deque
from typing import Any, Dict, List, Optional

logger = logging.getLogger("gateway.audit")

AUDIT_FILE_NAME = "operation_audit.log"
DEFAULT_MEM_CACHE_MAX = 5000


def line_hash(record: Dict[str, Any]) -> str:
    """Hash of the record without its own lineHash."""
    body = {k: v for k, v in record.items() if k != "lineHash"}
    payload = json.dumps(body, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


class AuditLog:
    def __init__(self, audit_dir: str = "", mem_cache_max: int = DEFAULT_MEM_CACHE_MAX) -> None:
        self._lock = threading.Lock()
        self._mem: deque = deque(maxlen=mem_cache_max)
        self._file = os.path.join(audit_dir, AUDIT_FILE_NAME) if audit_dir else ""
        if audit_dir:
            os.makedirs(audit_dir, exist_ok=True)

    def append(self, method: str, path: str, status: int, duration_ms: int, trace_id: str = "",
               tenant: str = "", admin_id: str = "", ip: str = "",
               extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        ts = time.time()
        record = {
            "ts": ts,
            "time": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(ts)),
            "method": method,
            "path": path,
            "status": status,
            "durationMs": duration_ms,
            "traceId": trace_id or "",
            "tenant": tenant or "",
            "adminId": admin_id or "",
            "ip": ip or "",
            **(extra or {}),
        }
        record["lineHash"] = line_hash(record)
        with self._lock:
            self._mem.append(record)
            if self._file:
                try:
                    with open(self._file, "a", encoding="utf-8") as f:
                        f.write(json.dumps(record, ensure_ascii=False) + "\n")
                except OSError as e:
                    logger.error("audit write failed: %s", e)
        return record

    def search(self, since_ts: float = 0, tenant: str = "", trace_id: str = "", limit: int = 100) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        with self._lock:
            for r in self._mem:
                if r.get("ts", 0) < since_ts:
                    continue
                if tenant and r.get("tenant") != tenant:
                    continue
                if trace_id and r.get("traceId") != trace_id:
                    continue
                out.append(dict(r))
                if len(out) >= limit:
                    break
        return out

    def export_path(self) -> Optional[str]:
        if self._file and os.path.isfile(self._file):
            return self._file
        return None
