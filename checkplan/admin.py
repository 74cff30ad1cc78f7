"""Administrative maintenance over the key-value store.

Bulk clears and sample-data cleanup work on raw keys, outside the
scheduling engine, so they never go through check lifecycle rules.
"""

from __future__ import annotations

import logging
from typing import Any

from checkplan.scheduling.models import CHECK_PREFIX, DEVICE_PREFIX, PLAN_PREFIX
from checkplan.storage.kv_store import KVStore

logger = logging.getLogger(__name__)

# Identification numbers of the demo devices shipped with early installs
SAMPLE_DEVICE_IDENTS = frozenset({"HP-001", "CBS-002", "CNC-003", "COMP-004", "WS-005"})


class AdminMaintenance:
    def __init__(self, kv: KVStore) -> None:
        self._kv = kv

    def clear_devices(self) -> dict[str, int]:
        """Delete every device, check and plan."""
        cleared: dict[str, int] = {}
        for name, prefix in (("devices", DEVICE_PREFIX), ("checks", CHECK_PREFIX), ("plans", PLAN_PREFIX)):
            keys = [k for k, _ in self._kv.scan_by_prefix(prefix)]
            self._kv.mdel(keys)
            cleared[name] = len(keys)
        logger.warning(
            "Cleared %d devices, %d checks, %d plans",
            cleared["devices"], cleared["checks"], cleared["plans"],
        )
        return cleared

    def cleanup_sample_data(self) -> dict[str, list[str]]:
        """Remove sample devices and every check or plan that references them."""
        deleted: dict[str, list[str]] = {"devices": [], "checks": [], "plans": []}
        removed_ids: set[str] = set()

        for key, device in self._kv.scan_by_prefix(DEVICE_PREFIX):
            if (device or {}).get("identificationNumber") in SAMPLE_DEVICE_IDENTS:
                removed_ids.add(device.get("id") or key[len(DEVICE_PREFIX):])
                deleted["devices"].append(key)

        for key, check in self._kv.scan_by_prefix(CHECK_PREFIX):
            if (check or {}).get("deviceId") in removed_ids:
                deleted["checks"].append(key)

        for key, plan in self._kv.scan_by_prefix(PLAN_PREFIX):
            device_ids: Any = (plan or {}).get("deviceIds") or []
            if isinstance(device_ids, list) and removed_ids.intersection(device_ids):
                deleted["plans"].append(key)

        for keys in deleted.values():
            self._kv.mdel(keys)
        logger.info(
            "Sample data cleanup removed %d devices, %d checks, %d plans",
            len(deleted["devices"]), len(deleted["checks"]), len(deleted["plans"]),
        )
        return deleted
