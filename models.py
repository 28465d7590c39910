# models.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

ADDRESS_PLACEHOLDER = "Đang cập nhật địa chỉ..."


class GeoLocation(BaseModel):
    latitude: float
    longitude: float
    accuracy_m: float = 0.0
    # epoch milliseconds of the position fix
    fix_timestamp: Optional[float] = None
    address: Optional[str] = None


class CapturedImage(BaseModel):
    """
    Metadata record of one capture. The raw bitmap travels next to it as bytes.

    A record is amended (address resolved) by building a new one with
    `with_address`; the compositor is then simply re-run on the new record.
    """

    captured_at: datetime
    operator_name: str
    device_label: str
    location: Optional[GeoLocation] = None

    @field_validator("operator_name")
    @classmethod
    def _operator_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("operator_name must not be empty")
        return v

    def with_address(self, address: str) -> "CapturedImage":
        if self.location is None:
            raise ValueError("cannot attach an address to a capture without location")
        location = self.location.model_copy(update={"address": address})
        return self.model_copy(update={"location": location})

    # -- overlay texts --

    def time_text(self) -> str:
        return f"{self.captured_at:%H:%M} - {self.captured_at:%d/%m/%Y}"

    def coords_text(self) -> str:
        if self.location is None:
            return ""
        return f"{self.location.latitude:.6f}, {self.location.longitude:.6f}"

    def address_text(self) -> str:
        if self.location is not None and self.location.address:
            return self.location.address
        return ADDRESS_PLACEHOLDER

    def person_device_text(self) -> str:
        return f"Người chụp: {self.operator_name} | Thiết bị: {self.device_label}"
