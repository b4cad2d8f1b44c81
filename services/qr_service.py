"""
QR Code Encode/Decode Service.

Encoding renders the caller's canonical profile URL as a PNG and reports the
rendering parameters alongside it. Decoding takes the text a camera scanner
read from a code and decides what the client should do next.

Key Components:
- `QRConfig`: Colours, module style, corner radius and optional logo.
- `QRService.encode`: Renders with error-correction level H (enough redundancy
  for a centred logo), sized by the viewport tier.
- `QRService.decode`: Routes the scanned text through the `LinkResolver`; it
  never raises, so a scanner can always be re-armed.

Architectural Design:
- Rendering uses the `qrcode` styled PIL image, with one module drawer per
  style. The logo is pasted afterwards with Pillow on a white backing.
- Decoding is pure: image capture and barcode detection happen on the device,
  the service only sees the decoded string.
"""

import io
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional

import qrcode
from PIL import Image
from qrcode.image.styledpil import StyledPilImage
from qrcode.image.styles.colormasks import SolidFillColorMask
from qrcode.image.styles.moduledrawers.pil import (
    CircleModuleDrawer,
    RoundedModuleDrawer,
    SquareModuleDrawer,
)

from core.exceptions import ValidationError
from core.responsive import Viewport, qr_tier
from core.validation import InputValidator
from services.link_resolver import EXTERNAL, REDIRECT_HOME, LinkResolver

logger = logging.getLogger(__name__)

STYLES = ("dots", "squares", "rounded")
MAX_CORNER_RADIUS = 25
ERROR_CORRECTION = "H"

NAVIGATE = "navigate"
GO_HOME = "redirect_home"
OPEN_EXTERNAL = "open_external"
REARM = "rearm"


def hex_to_rgb(value: str) -> tuple:
    digits = value.lstrip("#")
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return tuple(int(digits[i:i + 2], 16) for i in (0, 2, 4))


@dataclass
class QRConfig:
    foreground_color: str = "#000000"
    background_color: str = "#FFFFFF"
    style: str = "squares"
    corner_radius: int = 0
    show_logo: bool = False
    logo_image: Optional[bytes] = field(default=None, repr=False)

    def __post_init__(self):
        InputValidator.validate_hex_color("foreground_color", self.foreground_color)
        InputValidator.validate_hex_color("background_color", self.background_color)
        if self.style not in STYLES:
            raise ValidationError("style", self.style, f"Must be one of {', '.join(STYLES)}")
        if not 0 <= self.corner_radius <= MAX_CORNER_RADIUS:
            raise ValidationError(
                "corner_radius", self.corner_radius, f"Must be between 0 and {MAX_CORNER_RADIUS}"
            )

    @property
    def inner_eye_radius(self) -> float:
        return self.corner_radius / 2


@dataclass
class QRPayload:
    png: bytes
    metadata: Dict[str, Any]


@dataclass(frozen=True)
class ScanResult:
    action: str
    raw: str
    user_id: Optional[str] = None
    url: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def module_drawer(style: str):
    if style == "dots":
        return CircleModuleDrawer()
    if style == "rounded":
        return RoundedModuleDrawer()
    return SquareModuleDrawer()


def eye_drawer(corner_radius: int):
    if corner_radius <= 0:
        return SquareModuleDrawer()
    return RoundedModuleDrawer(radius_ratio=corner_radius / MAX_CORNER_RADIUS)


class QRService:
    """Render profile QR codes and interpret scanned payloads"""

    def __init__(self, resolver: LinkResolver):
        self.resolver = resolver

    def metadata(self, url: str, config: QRConfig, viewport: Viewport) -> Dict[str, Any]:
        tier = qr_tier(viewport)
        return {
            "value": url,
            "size": tier.size,
            "logo_size": tier.logo_size if config.show_logo else 0,
            "ecl": ERROR_CORRECTION,
            "foreground_color": config.foreground_color,
            "background_color": config.background_color,
            "style": config.style,
            "outer_eye_radius": config.corner_radius,
            "inner_eye_radius": config.inner_eye_radius,
            "show_logo": config.show_logo,
        }

    def encode(self, url: str, config: QRConfig, viewport: Viewport) -> QRPayload:
        if not url:
            raise ValidationError("url", url, "Nothing to encode")

        meta = self.metadata(url, config, viewport)

        qr = qrcode.QRCode(
            error_correction=qrcode.constants.ERROR_CORRECT_H,
            box_size=10,
            border=2,
        )
        qr.add_data(url)
        qr.make(fit=True)

        styled = qr.make_image(
            image_factory=StyledPilImage,
            module_drawer=module_drawer(config.style),
            eye_drawer=eye_drawer(config.corner_radius),
            color_mask=SolidFillColorMask(
                back_color=hex_to_rgb(config.background_color),
                front_color=hex_to_rgb(config.foreground_color),
            ),
        )
        image = styled.get_image().convert("RGB")
        image = image.resize((meta["size"], meta["size"]), Image.Resampling.NEAREST)

        if config.show_logo and config.logo_image:
            image = self._paste_logo(image, config.logo_image, meta["logo_size"])

        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        logger.debug(f"Rendered QR code ({meta['size']}px, style={config.style})")
        return QRPayload(png=buffer.getvalue(), metadata=meta)

    @staticmethod
    def _paste_logo(image: Image.Image, logo_bytes: bytes, logo_size: int) -> Image.Image:
        try:
            logo = Image.open(io.BytesIO(logo_bytes)).convert("RGBA")
        except (OSError, ValueError) as e:
            raise ValidationError("logo_image", "<bytes>", f"Unreadable image: {e}")

        logo.thumbnail((logo_size, logo_size))
        backing_size = logo_size + 8
        backing = Image.new("RGBA", (backing_size, backing_size), (255, 255, 255, 255))
        backing.paste(
            logo,
            ((backing_size - logo.width) // 2, (backing_size - logo.height) // 2),
            logo,
        )

        offset = ((image.width - backing_size) // 2, (image.height - backing_size) // 2)
        image.paste(backing.convert("RGB"), offset)
        return image

    def decode(self, raw: Optional[str]) -> ScanResult:
        """What to do with a scanned string; never raises"""
        resolution = self.resolver.resolve(raw)

        if resolution.is_profile:
            return ScanResult(
                action=NAVIGATE,
                raw=resolution.raw,
                user_id=resolution.user_id,
                url=resolution.canonical_url,
            )
        if resolution.kind == REDIRECT_HOME:
            return ScanResult(action=GO_HOME, raw=resolution.raw, url="/")
        if resolution.kind == EXTERNAL:
            return ScanResult(
                action=OPEN_EXTERNAL,
                raw=resolution.raw,
                message=f"The scanned QR code contains: {resolution.raw}",
            )

        logger.debug(f"Unusable QR payload: {raw!r}")
        return ScanResult(action=REARM, raw=resolution.raw, message="Invalid QR code")
