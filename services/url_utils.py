# services/url_utils.py
"""
URL helpers shared by adapters and the validator.
Pure functions, no I/O.
"""
from typing import Optional
from urllib.parse import urlparse, urlencode, parse_qsl, urljoin

# Tracking / affiliate params stripped from product URLs (compared lowercase)
TRACKING_PARAMS = {
    "utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content",
    "mcid", "mc_eid", "fbclid", "gclid", "igshid",
    "ranmid", "ransiteid", "raneaid",
    "tag", "affid", "affidv", "affsource",
    "aff_sub", "aff_sub2", "aff_sub3", "aff_sub4", "aff_sub5",
    "cjevent", "awc",
}


def normalize_product_url(url: str) -> str:
    """
    Strip tracking parameters and fragments from a product URL.
    Unparseable input is returned unchanged.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    if not parsed.scheme or not parsed.netloc:
        return url

    kept = [
        (k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True)
        if k.lower() not in TRACKING_PARAMS
    ]
    base = f"{parsed.scheme}://{parsed.netloc}{parsed.path}"
    return f"{base}?{urlencode(kept)}" if kept else base


def ensure_absolute_url(url: str) -> str:
    """
    Make a scheme-less URL absolute ("www.x.com/a" -> "https://www.x.com/a").
    """
    if not url:
        return url
    url = url.strip()
    if url.startswith("//"):
        url = "https:" + url
    elif not url.lower().startswith(("http://", "https://")):
        url = "https://" + url.lstrip("/")

    parsed = urlparse(url)
    if not parsed.path:
        url = parsed._replace(path="/").geturl()
    return url


def absolutize(base: str, href: str) -> Optional[str]:
    """Resolve a possibly relative href against a page URL."""
    if not href:
        return None
    try:
        return urljoin(base, href)
    except ValueError:
        return None


def host_of(url: str) -> Optional[str]:
    """Lowercased hostname without a leading 'www.'."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        return None
    if not host:
        return None
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


def host_matches(url: str, domain: str) -> bool:
    """True when the URL host is the domain or one of its subdomains."""
    host = host_of(url)
    if not host:
        return False
    domain = domain.lower()
    if domain.startswith("www."):
        domain = domain[4:]
    return host == domain or host.endswith("." + domain)
