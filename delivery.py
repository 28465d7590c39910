# delivery.py
"""Hand-off of a stamped capture to local storage and to the upload payload."""
import base64
import logging
import re
from pathlib import Path
from typing import Any, Dict

from models import CapturedImage

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^\w.-]")


def build_filename(record: CapturedImage, capture_id: str) -> str:
    """
    geosnap_<operator>_<epoch ms>_<capture id prefix>.jpg

    Whitespace runs in the operator name become underscores. The capture id
    keeps two captures taken by the same operator in the same instant apart,
    while re-stamping one capture keeps its name.
    """
    name = re.sub(r"\s+", "_", record.operator_name)
    name = _UNSAFE.sub("", name) or "operator"
    millis = int(record.captured_at.timestamp() * 1000)
    suffix = _UNSAFE.sub("", capture_id)[:8] or "capture"
    return f"geosnap_{name}_{millis}_{suffix}.jpg"


def save_local(encoded: bytes, record: CapturedImage, capture_id: str, directory: Path) -> Path:
    """Write the stamped JPEG, replacing any earlier output for the same capture."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / build_filename(record, capture_id)
    path.write_bytes(encoded)
    logger.info("Saved stamped capture to %s (%d bytes)", path, len(encoded))
    return path


def to_data_url(encoded: bytes) -> str:
    return "data:image/jpeg;base64," + base64.b64encode(encoded).decode("ascii")


def build_payload(encoded: bytes, record: CapturedImage) -> Dict[str, Any]:
    loc = record.location
    return {
        "timestamp": record.captured_at.isoformat(),
        "operator_name": record.operator_name,
        "device_label": record.device_label,
        "latitude": loc.latitude if loc else None,
        "longitude": loc.longitude if loc else None,
        "accuracy_m": loc.accuracy_m if loc else None,
        "fix_timestamp": loc.fix_timestamp if loc else None,
        "address": record.address_text(),
        "image": to_data_url(encoded),
    }
