from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import parse_qs, urlencode, urlsplit

EXPIRED_MARKERS = ("otp_expired", "access_denied")


@dataclass(frozen=True)
class InviteLink:
    organization_id: Optional[str]
    link_expired: bool = False
    error: Optional[str] = None


def build_invite_link(site_url: str, organization_id: str) -> str:
    return f"{site_url.rstrip('/')}/invite?{urlencode({'org': str(organization_id)})}"


def parse_invite_link(url: str, route_params: Optional[Mapping[str, str]] = None) -> InviteLink:
    """
    Read the organization from an invite URL.

    Route parameters win over the query string. The auth service reports
    failed magic links in the fragment (``#error=...&error_code=otp_expired``).
    """
    parts = urlsplit(url)

    organization_id = (route_params or {}).get("org") or None
    if not organization_id:
        organization_id = (parse_qs(parts.query).get("org") or [None])[0] or None

    fragment = parts.fragment
    error = None
    link_expired = False
    if "error=" in fragment or "error_code=" in fragment:
        params = parse_qs(fragment)
        error = (params.get("error_description") or params.get("error") or [fragment])[0]
        link_expired = any(marker in fragment for marker in EXPIRED_MARKERS)

    return InviteLink(organization_id=organization_id, link_expired=link_expired, error=error)
