"""
Responsive layout arithmetic.

Pure functions mapping a viewport to breakpoints and scaled sizes. Clients
send their window dimensions; nothing here keeps state or touches I/O.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict

BASE_WIDTH = 375
BASE_HEIGHT = 812

BREAKPOINTS = {
    "xs": 0,  # phones
    "sm": 576,  # large phones
    "md": 768,  # tablets
    "lg": 992,  # laptops/small desktops
    "xl": 1200,  # large desktops
}

PLATFORMS = ("web", "ios", "android")


@dataclass(frozen=True)
class Viewport:
    width: float
    height: float
    platform: str = "web"


@dataclass(frozen=True)
class QRTier:
    size: int
    logo_size: int


def get_breakpoint(width: float) -> str:
    for name in ("xl", "lg", "md", "sm"):
        if width >= BREAKPOINTS[name]:
            return name
    return "xs"


def get_device_type(width: float) -> str:
    return "tablet" if width >= BREAKPOINTS["md"] else "phone"


def get_orientation(width: float, height: float) -> str:
    return "landscape" if width > height else "portrait"


def normalize(size: float, width: float, platform: str = "web") -> int:
    """Scale a font size to the screen width; non-iOS targets render 2px smaller"""
    scaled = round(size * width / BASE_WIDTH)
    return scaled if platform == "ios" else scaled - 2


def responsive_spacing(size: float, width: float) -> int:
    return round(size * width / BASE_WIDTH)


def responsive_width(percentage: float, width: float) -> float:
    return percentage / 100 * width


def responsive_height(percentage: float, height: float) -> float:
    return percentage / 100 * height


def dynamic_font_size(size: float, width: float, height: float, platform: str = "web") -> int:
    standard_length = max(width, height)
    if width > height:
        offset = 0
    else:
        offset = 78 if platform == "ios" else 24
    return round(size * (standard_length - offset) / BASE_HEIGHT)


def qr_tier(viewport: Viewport) -> QRTier:
    """QR code and embedded logo size for the viewport"""
    if viewport.platform == "web" and viewport.width > BREAKPOINTS["md"]:
        return QRTier(size=220, logo_size=50)
    return QRTier(size=200, logo_size=40)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def action_button_size(viewport: Viewport) -> Dict[str, float]:
    """Floating scan button geometry"""
    base = min(viewport.width, viewport.height) * 0.12
    return {
        "button_size": _clamp(base, 40, 56),
        "icon_size": _clamp(base * 0.5, 20, 28),
        "bottom": _clamp(viewport.height * 0.1, 70, 100),
    }


def describe(viewport: Viewport) -> Dict[str, Any]:
    """Everything a screen needs to pick its layout"""
    width = viewport.width
    return {
        "width": width,
        "height": viewport.height,
        "platform": viewport.platform,
        "breakpoint": get_breakpoint(width),
        "orientation": get_orientation(width, viewport.height),
        "device_type": get_device_type(width),
        "is_phone": width < BREAKPOINTS["md"],
        "is_tablet": BREAKPOINTS["md"] <= width < BREAKPOINTS["lg"],
        "is_desktop": width >= BREAKPOINTS["lg"],
        "qr": asdict(qr_tier(viewport)),
        "action_button": action_button_size(viewport),
    }
