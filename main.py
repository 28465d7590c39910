# main.py
import json
import logging
import re
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, File, Form, Header, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import ValidationError

import settings
from delivery import build_payload, save_local
from devices import device_label_from_user_agent
from errors import DecodeError, StampError
from models import CapturedImage, GeoLocation
from stamp_utils import composite_watermark

settings.configure_logging()
logger = logging.getLogger(__name__)

# Setup app
app = FastAPI(title="GeoStamp Backend")

# Allow the capture frontend to call APIs during development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in production
    allow_methods=["*"],
    allow_headers=["*"],
)

# Stamped files land here; raw captures and their records under captures/
UPLOAD_DIR = settings.UPLOAD_DIR

_CAPTURE_ID = re.compile(r"^[0-9a-f]{32}$")


def _secure_filename(name: str) -> str:
    """Return basename to avoid directory traversal."""
    return Path(name).name


def _capture_dir() -> Path:
    d = UPLOAD_DIR / "captures"
    d.mkdir(parents=True, exist_ok=True)
    return d


def _store_capture(capture_id: str, raw: bytes, record: CapturedImage):
    d = _capture_dir()
    (d / f"{capture_id}.raw").write_bytes(raw)
    (d / f"{capture_id}.json").write_text(record.model_dump_json(), encoding="utf-8")


def _load_capture(capture_id: str):
    if not _CAPTURE_ID.match(capture_id):
        raise HTTPException(status_code=404, detail="Capture not found.")
    d = _capture_dir()
    raw_path = d / f"{capture_id}.raw"
    record_path = d / f"{capture_id}.json"
    if not raw_path.exists() or not record_path.exists():
        raise HTTPException(status_code=404, detail="Capture not found.")
    record = CapturedImage.model_validate_json(record_path.read_text(encoding="utf-8"))
    return raw_path.read_bytes(), record


def _stamp_and_save(capture_id: str, raw: bytes, record: CapturedImage) -> dict:
    """Run the compositor and hand the result to both delivery pathways."""
    try:
        encoded = composite_watermark(raw, record)
    except DecodeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StampError as e:
        logger.error("Stamping capture %s failed: %s", capture_id, e)
        raise HTTPException(status_code=500, detail=f"Failed to stamp image: {e}")

    out = save_local(encoded, record, capture_id, UPLOAD_DIR)
    return {
        "capture_id": capture_id,
        "filename": out.name,
        "payload": build_payload(encoded, record),
    }


@app.post("/captures/")
def create_capture(
    file: UploadFile = File(...),
    operator_name: str = Form(...),
    device_label: Optional[str] = Form(None),
    captured_at: Optional[datetime] = Form(None),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    accuracy: float = Form(0.0),
    fix_timestamp: Optional[float] = Form(None),
    address: Optional[str] = Form(None),
    user_agent: Optional[str] = Header(None),
):
    """
    Accept a raw photo plus its metadata and stamp it straight away.

    Without an address the overlay carries the placeholder; POST the resolved
    address to /captures/{capture_id}/address to re-stamp.
    """
    if (latitude is None) != (longitude is None):
        raise HTTPException(status_code=422, detail="latitude and longitude must be sent together.")

    location = None
    if latitude is not None:
        location = GeoLocation(
            latitude=latitude,
            longitude=longitude,
            accuracy_m=accuracy,
            fix_timestamp=fix_timestamp,
            address=address or None,
        )
    try:
        record = CapturedImage(
            captured_at=captured_at or datetime.now(),
            operator_name=operator_name,
            device_label=device_label or device_label_from_user_agent(user_agent),
            location=location,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=json.loads(e.json()))

    file.file.seek(0)
    raw = file.file.read()
    capture_id = uuid.uuid4().hex
    result = _stamp_and_save(capture_id, raw, record)
    _store_capture(capture_id, raw, record)
    logger.info("Capture %s stamped for %s", capture_id, record.operator_name)
    return result


@app.post("/captures/{capture_id}/address")
def update_address(capture_id: str, address: str = Form(...)):
    """Attach a resolved address and re-stamp from the raw capture; the new output replaces the old."""
    raw, record = _load_capture(capture_id)
    if record.location is None:
        raise HTTPException(status_code=409, detail="Capture has no location to attach an address to.")

    address = address.strip()
    if not address:
        raise HTTPException(status_code=422, detail="address must not be empty.")

    record = record.with_address(address)
    result = _stamp_and_save(capture_id, raw, record)
    _store_capture(capture_id, raw, record)
    logger.info("Capture %s re-stamped with resolved address", capture_id)
    return result


@app.get("/captures/{capture_id}")
def get_capture(capture_id: str):
    _, record = _load_capture(capture_id)
    return JSONResponse(content=json.loads(record.model_dump_json()))


@app.get("/uploads/{fname}")
def get_upload(fname: str):
    """Serve a stamped file back to the frontend."""
    safe_name = _secure_filename(fname)
    fp = UPLOAD_DIR / safe_name
    if not fp.is_file():
        return JSONResponse(status_code=404, content={"error": "file not found"})
    return FileResponse(fp, media_type="image/jpeg")


# Run with:
# uvicorn main:app --reload --host 0.0.0.0 --port 8000
