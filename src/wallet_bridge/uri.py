"""
Pairing URI helpers: manual URI generation, loose validation, wallet deep links.

Legacy scheme: ``wc:<id>@<version>?bridge=<url>&key=<hex>``.
"""

import logging
import secrets
import uuid
from typing import NamedTuple, Optional
from urllib.parse import parse_qs, quote, urlparse

from wallet_bridge.config import DEFAULT_BRIDGE

logger = logging.getLogger(__name__)

URI_PREFIX = "wc:"
LEGACY_VERSION = "1"
SUPPORTED_VERSIONS = {"1", "2"}
MIN_ID_LENGTH = 10
MIN_KEY_LENGTH = 20

WALLET_SCHEMES = {
    "metamask": "metamask://wc",
    "trust": "trust://wc",
    "rainbow": "rainbow://wc",
    "coinbase": "cbwallet://wc",
    "imtoken": "imtoken://wc",
    "universal": "https://metamask.app.link/wc",
}


class ManualPairing(NamedTuple):
    uri: str
    session_id: str
    key: str
    bridge: str


def generate_manual_uri(bridge: str = DEFAULT_BRIDGE) -> ManualPairing:
    """Build a self-contained legacy pairing URI with a fresh id and 32-byte key."""
    session_id = str(uuid.uuid4())
    key = secrets.token_hex(32)
    uri = f"{URI_PREFIX}{session_id}@{LEGACY_VERSION}?bridge={quote(bridge, safe='')}&key={key}"
    logger.debug("Generated manual URI (key length %d, uri length %d)", len(key), len(uri))
    return ManualPairing(uri=uri, session_id=session_id, key=key, bridge=bridge)


def validate_uri(uri: Optional[str]) -> bool:
    if not uri or not uri.startswith(URI_PREFIX):
        return False

    parts = uri.split("?")
    if len(parts) != 2:
        return False
    base, query = parts

    base_parts = base[len(URI_PREFIX):].split("@")
    if len(base_parts) != 2:
        return False
    pairing_id, version = base_parts

    if len(pairing_id) < MIN_ID_LENGTH:
        return False
    if version not in SUPPORTED_VERSIONS:
        return False

    if version == LEGACY_VERSION:
        params = parse_qs(query)
        bridge = (params.get("bridge") or [""])[0]
        key = (params.get("key") or [""])[0]
        parsed = urlparse(bridge)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            return False
        if len(key) < MIN_KEY_LENGTH:
            return False

    return True


def build_deep_links(uri: Optional[str]) -> Optional[dict[str, str]]:
    """Deep links that open common wallet apps on the pairing URI."""
    if not uri:
        return None
    encoded = quote(uri, safe="")
    return {name: f"{base}?uri={encoded}" for name, base in WALLET_SCHEMES.items()}


def wallet_redirect_link(uri: Optional[str]) -> Optional[str]:
    links = build_deep_links(uri)
    return links["metamask"] if links else None
