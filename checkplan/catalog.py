"""Device catalog import: bulk-registers devices from a YAML file.

Expected layout::

    devices:
      - name: Hydraulic press
        identification_number: HP-101
        location: Hall A
        planned_frequency: 4
        plan_comment: Check seals   # optional
        id: press-a                 # optional, generated when absent
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from checkplan.admin import SAMPLE_DEVICE_IDENTS
from checkplan.config import settings
from checkplan.errors import ValidationError
from checkplan.scheduling.lifecycle import DeviceCatalog
from checkplan.scheduling.models import Device

logger = logging.getLogger(__name__)


def load_catalog(
    path: Path | str,
    catalog: DeviceCatalog,
    prevent_auto_seed: bool | None = None,
) -> list[Device]:
    """Create every well-formed device listed in ``path``.

    Malformed entries are logged and skipped; a file that is not a YAML
    mapping with a ``devices`` list raises ValidationError. With
    ``prevent_auto_seed`` the known sample devices are skipped as well.
    """
    guard = settings.prevent_auto_seed if prevent_auto_seed is None else prevent_auto_seed
    path = Path(path)
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid YAML in {path}: {e}", field="devices") from e
    if not isinstance(raw, dict):
        raise ValidationError(f"{path} must contain a mapping with a 'devices' list", field="devices")
    entries = raw.get("devices") or []
    if not isinstance(entries, list):
        raise ValidationError(f"'devices' in {path} must be a list", field="devices")

    created: list[Device] = []
    for entry in entries:
        if not isinstance(entry, dict):
            logger.warning("Skipping malformed device entry: %r", entry)
            continue
        ident = str(entry.get("identification_number", ""))
        if guard and ident in SAMPLE_DEVICE_IDENTS:
            logger.info("Auto-seed guard active; skipping sample device %s", ident)
            continue
        try:
            created.append(_create(entry, catalog))
        except ValidationError as e:
            logger.warning("Skipping malformed device entry: %s", e)

    logger.info("Imported %d devices from %s", len(created), path)
    return created


def _create(entry: dict[str, Any], catalog: DeviceCatalog) -> Device:
    return catalog.create_device(
        name=entry.get("name", ""),
        identification_number=str(entry.get("identification_number", "")),
        location=entry.get("location", ""),
        planned_frequency=entry.get("planned_frequency"),
        plan_comment=entry.get("plan_comment"),
        device_id=str(entry["id"]) if entry.get("id") else None,
    )
