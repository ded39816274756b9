"""
Manifest rewriting for the proxy path.

Relative URIs in HLS playlists and DASH manifests are made absolute against
the manifest's own location so the rewritten text can be served from a
different origin.
"""
import re
from urllib.parse import urlsplit


DEFAULT_PORTS = {"http": 80, "https": 443}

ABSOLUTE_URI_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
URI_ATTRIBUTE_PATTERN = re.compile(r'URI="([^"]*)"')
MPD_OPEN_TAG_PATTERN = re.compile(r"<MPD\b[^>]*>")
DASH_BASE_URL_PATTERN = re.compile(r"(<BaseURL\b[^>]*>)(\s*)([^<]*?)(\s*)(</BaseURL>)")


def get_base_url(url: str) -> str:
    """
    Base URL of a manifest: scheme://host[:port] plus the path up to and
    including its last slash. Default ports and credentials are dropped.

    Raises:
        ValueError: If the URL has no scheme or host
    """
    parts = urlsplit(url)
    origin = get_origin(url)
    path = parts.path or "/"
    return origin + path[:path.rfind("/") + 1]


def get_origin(url: str) -> str:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"Not an absolute URL: {url!r}")

    host = parts.netloc.rsplit("@", 1)[-1]
    port = parts.port
    if port is not None and DEFAULT_PORTS.get(parts.scheme.lower()) == port:
        host = host[:host.rfind(":")]
    return f"{parts.scheme}://{host}"


def resolve_uri(uri: str, base_url: str) -> str:
    """
    Absolute form of a manifest URI

    Args:
        uri: URI as written in the manifest
        base_url: Result of get_base_url() for the manifest

    Returns:
        uri unchanged when it already has a scheme, otherwise base_url + uri
        (origin + uri for root-relative, scheme + uri for protocol-relative)
    """
    if not uri or ABSOLUTE_URI_PATTERN.match(uri):
        return uri
    if uri.startswith("//"):
        return f"{urlsplit(base_url).scheme}:{uri}"
    if uri.startswith("/"):
        return get_origin(base_url) + uri
    return base_url + uri


def rewrite_hls(content: str, base_url: str) -> str:
    """Rewrite variant, segment and URI="..." references of an HLS playlist"""
    rewritten = []
    for line in content.splitlines(keepends=True):
        body = line.rstrip("\r\n")
        ending = line[len(body):]
        stripped = body.strip()

        if not stripped:
            rewritten.append(line)
        elif stripped.startswith("#"):
            if 'URI="' in body:
                body = URI_ATTRIBUTE_PATTERN.sub(
                    lambda m: f'URI="{resolve_uri(m.group(1), base_url)}"', body
                )
            rewritten.append(body + ending)
        else:
            rewritten.append(resolve_uri(stripped, base_url) + ending)

    return "".join(rewritten)


def rewrite_dash(content: str, base_url: str) -> str:
    """Resolve relative <BaseURL> elements, or anchor the MPD with one"""
    if DASH_BASE_URL_PATTERN.search(content):
        return DASH_BASE_URL_PATTERN.sub(
            lambda m: m.group(1) + m.group(2) + resolve_uri(m.group(3), base_url) + m.group(4) + m.group(5),
            content,
        )

    open_tag = MPD_OPEN_TAG_PATTERN.search(content)
    if open_tag is None or open_tag.group(0).endswith("/>"):
        return content
    return content[:open_tag.end()] + f"<BaseURL>{base_url}</BaseURL>" + content[open_tag.end():]


def is_dash_manifest(content: str) -> bool:
    return MPD_OPEN_TAG_PATTERN.search(content) is not None


def rewrite_for_proxy(manifest_text: str, manifest_url: str) -> str:
    """
    Make every relative URI in a manifest absolute

    Args:
        manifest_text: HLS playlist or DASH MPD text
        manifest_url: URL the manifest was fetched from

    Returns:
        Rewritten manifest text
    """
    base_url = get_base_url(manifest_url)
    if is_dash_manifest(manifest_text):
        return rewrite_dash(manifest_text, base_url)
    return rewrite_hls(manifest_text, base_url)


__all__ = [
    "get_base_url",
    "get_origin",
    "resolve_uri",
    "rewrite_hls",
    "rewrite_dash",
    "is_dash_manifest",
    "rewrite_for_proxy",
]
