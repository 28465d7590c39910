# devices.py
import re
from typing import Optional

_ANDROID_MODEL = re.compile(r";\s*([^;]+)\s+Build/")


def device_label_from_user_agent(ua: Optional[str]) -> str:
    """Best-effort human readable device name from a browser User-Agent."""
    ua = ua or ""

    if re.search(r"Windows NT", ua, re.I):
        return "Laptop/PC (Windows)"
    if re.search(r"Macintosh", ua, re.I):
        return "Macbook/iMac"
    if re.search(r"X11; CrOS", ua, re.I):
        return "ChromeBook"
    if re.search(r"X11; Linux", ua, re.I):
        return "Laptop/PC (Linux)"

    if re.search(r"iPhone", ua, re.I):
        return "iPhone"
    if re.search(r"iPad", ua, re.I):
        return "iPad"

    if re.search(r"Android", ua, re.I):
        m = _ANDROID_MODEL.search(ua)
        if m and m.group(1).strip():
            model = m.group(1).strip()
            if model.startswith("SM-"):
                return f"Samsung {model}"
            if "Pixel" in model:
                return f"Google {model}"
            return model
        if re.search(r"Samsung", ua, re.I):
            return "Samsung Device"
        return "Android Device"

    return "Laptop/PC"
