"""
Public-Profile Link Resolution.

Single source of truth for turning a user id into a shareable URL and for
turning any previously issued URL or deep link back into a user id.

Outbound, every profile has exactly one canonical form:
`{base}/viewprofile/{userId}` on the web, `nexia://viewprofile/{userId}` for
native callers. The base is the production domain unless the caller is running
against a local development host, in which case the caller's own origin is
kept so links work on that machine.

Inbound, the accepted shapes are kept in `LINK_RULES`, an ordered table of
rules evaluated in fixed priority. The first rule whose marker occurs in the
input wins. For path markers the user id is everything after the last `/` of
the matched path (query string and fragment removed). The `/qr?id=` shape is an
indirection: it resolves to the same profile, or to the landing page when no
id is given on one of the app's own roots. Anything else, a foreign `/qr` path
included, is handed back unresolved as an external link.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple
from urllib.parse import parse_qs, urlsplit

logger = logging.getLogger(__name__)

LOCAL_HOSTS = ("localhost", "127.0.0.1")

PROFILE = "profile"
REDIRECT_HOME = "redirect_home"
EXTERNAL = "external"
INVALID = "invalid"


@dataclass(frozen=True)
class LinkResolution:
    kind: str
    raw: str
    user_id: Optional[str] = None
    canonical_url: Optional[str] = None
    rule: Optional[str] = None
    legacy: bool = False

    @property
    def is_profile(self) -> bool:
        return self.kind == PROFILE


def _strip_query(value: str) -> str:
    for separator in ("?", "#"):
        value = value.split(separator, 1)[0]
    return value


def extract_path_id(raw: str, marker: str) -> Optional[str]:
    """Everything after the last `/` of the path that follows `marker`"""
    start = raw.rfind(marker)
    path = _strip_query(raw[start:]).rstrip("/")
    if path.endswith(marker.rstrip("/")):
        return None
    user_id = path.rsplit("/", 1)[-1]
    return user_id or None


def extract_query_id(raw: str, marker: str) -> Optional[str]:
    query = urlsplit(raw).query
    if not query and "?" in raw:
        query = raw.split("?", 1)[1]
    values = parse_qs(query).get("id") or []
    user_id = values[0].strip() if values else ""
    return user_id or None


def _is_qr_path(raw: str) -> bool:
    path = _strip_query(urlsplit(raw).path or raw).rstrip("/")
    return path == "/qr" or path.endswith("/qr") or path == "qr"


@dataclass(frozen=True)
class LinkRule:
    name: str
    marker: str
    extractor: Callable[[str, str], Optional[str]]
    native: bool = False
    legacy: bool = False
    redirect: bool = False

    def matches(self, raw: str) -> bool:
        if self.redirect:
            return _is_qr_path(raw)
        return self.marker in raw


def build_rules(scheme: str = "nexia") -> Tuple[LinkRule, ...]:
    """Accepted inbound link shapes, highest priority first"""
    return (
        LinkRule("deep_link", f"{scheme}://viewprofile/", extract_path_id, native=True),
        LinkRule(
            "legacy_deep_link",
            f"{scheme}://public-profile/",
            extract_path_id,
            native=True,
            legacy=True,
        ),
        LinkRule("viewprofile", "/viewprofile/", extract_path_id),
        LinkRule("legacy_public_profile", "/public-profile/", extract_path_id, legacy=True),
        LinkRule("qr_redirect", "/qr", extract_query_id, redirect=True),
    )


LINK_RULES = build_rules()


class LinkResolver:
    """Builds canonical profile URLs and resolves inbound link shapes"""

    def __init__(self, app_url: str, scheme: str = "nexia"):
        self.app_url = app_url.rstrip("/")
        self.scheme = scheme
        self.rules = LINK_RULES if scheme == "nexia" else build_rules(scheme)

    @staticmethod
    def is_local_origin(origin: Optional[str]) -> bool:
        if not origin:
            return False
        hostname = urlsplit(origin if "://" in origin else f"http://{origin}").hostname
        return hostname in LOCAL_HOSTS

    def is_own_root(self, raw: str) -> bool:
        """Relative paths, deep links, local hosts and the production domain"""
        parts = urlsplit(raw)
        if not parts.netloc:
            return not parts.scheme or parts.scheme == self.scheme
        if parts.scheme == self.scheme or parts.hostname in LOCAL_HOSTS:
            return True
        return parts.hostname == urlsplit(self.app_url).hostname

    def base_url(self, origin: Optional[str] = None) -> str:
        """Production domain, or the caller's origin on a local dev host"""
        if self.is_local_origin(origin):
            parts = urlsplit(origin if "://" in origin else f"http://{origin}")
            return f"{parts.scheme}://{parts.netloc}"
        return self.app_url

    def build_profile_url(
        self, user_id: str, origin: Optional[str] = None, native: bool = False
    ) -> str:
        if native:
            return f"{self.scheme}://viewprofile/{user_id}"
        return f"{self.base_url(origin)}/viewprofile/{user_id}"

    def build_qr_redirect_url(self, user_id: str, origin: Optional[str] = None) -> str:
        return f"{self.base_url(origin)}/qr?id={user_id}"

    def canonicalize(self, url: Optional[str]) -> Optional[str]:
        """Rewrite legacy `public-profile` links into the canonical shape"""
        if not url or "public-profile/" not in url:
            return url
        head, _, tail = url.rpartition("public-profile/")
        return f"{head}viewprofile/{tail}"

    def resolve(self, raw: Optional[str]) -> LinkResolution:
        """Classify a link; never raises on malformed input"""
        if not isinstance(raw, str) or not raw.strip():
            return LinkResolution(kind=INVALID, raw=raw if isinstance(raw, str) else "")

        value = raw.strip()
        for rule in self.rules:
            if not rule.matches(value):
                continue

            try:
                user_id = rule.extractor(value, rule.marker)
            except ValueError as e:
                logger.debug(f"Could not extract id with rule {rule.name}: {e}")
                user_id = None

            if user_id is None:
                if rule.redirect and not self.is_own_root(value):
                    continue
                kind = REDIRECT_HOME if rule.redirect else INVALID
                return LinkResolution(kind=kind, raw=value, rule=rule.name, legacy=rule.legacy)

            origin = None
            if not rule.native:
                parts = urlsplit(value)
                if parts.scheme and parts.netloc:
                    origin = f"{parts.scheme}://{parts.netloc}"

            return LinkResolution(
                kind=PROFILE,
                raw=value,
                user_id=user_id,
                canonical_url=self.build_profile_url(user_id, origin, native=rule.native),
                rule=rule.name,
                legacy=rule.legacy,
            )

        return LinkResolution(kind=EXTERNAL, raw=value)
