"""Locator normalization: IPFS URIs to gateway URLs, data URI recognition.

Pure string transforms, no network I/O.
"""

_IPFS_SCHEME = "ipfs://"
_DATA_SCHEME = "data:"

# Public gateways in preference order; the pipeline always uses the first.
IPFS_GATEWAYS: tuple[str, ...] = (
    "https://ipfs.io/ipfs/",
    "https://gateway.pinata.cloud/ipfs/",
    "https://cloudflare-ipfs.com/ipfs/",
    "https://dweb.link/ipfs/",
)


def is_data_uri(locator: str) -> bool:
    """Check whether the locator is an inline data URI."""
    return locator[:5].lower() == _DATA_SCHEME


def is_ipfs_uri(locator: str) -> bool:
    """Check whether the locator uses the ipfs:// scheme."""
    return locator[:7].lower() == _IPFS_SCHEME


def _ipfs_path(locator: str) -> str:
    """Strip the scheme (and a redundant leading "ipfs/") from an IPFS URI."""
    path = locator[len(_IPFS_SCHEME) :]
    if path.startswith("ipfs/"):
        path = path[len("ipfs/") :]
    return path


def gateway_candidates(locator: str) -> list[str]:
    """Return every gateway URL for an IPFS locator, in preference order.

    Non-IPFS locators yield a single-element list containing themselves.
    """
    if not is_ipfs_uri(locator):
        return [locator]
    path = _ipfs_path(locator)
    return [f"{gateway}{path}" for gateway in IPFS_GATEWAYS]


def resolve_to_fetchable(locator: str) -> str:
    """Rewrite an IPFS URI to the first gateway; pass everything else through."""
    return gateway_candidates(locator)[0]
