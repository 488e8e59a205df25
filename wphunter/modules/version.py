"""
version.py
-----------
WordPress version fingerprint from the generator marker.

HOW IT WORKS:
1. Normalize the target into a URL (https:// when no scheme is given)
2. GET the root document, reading at most 1 MiB of the body
3. Match "WordPress X.Y[.Z]" in <meta name="generator"> tags, then in the raw body
4. No match → detector error (not a zero-confidence result)
"""

import re

import requests
from bs4 import BeautifulSoup

from wphunter.core.detectors import Detector
from wphunter.core.errors import DetectorError
from wphunter.models.detector_result import DetectorResult
from wphunter.models.severity import get_severity


VERSION_PATTERN = re.compile(r"WordPress\s+([0-9]+\.[0-9]+(\.[0-9]+)?)")

# Generator tags are reliable but can be edited or stripped by site owners.
GENERATOR_TAG_CONFIDENCE = 0.85

MAX_BODY_BYTES = 1024 * 1024
DEFAULT_TIMEOUT = 10
USER_AGENT = "wphunter-version-detector"


def normalize_target_url(target):
    """Prefix https:// unless the target already starts with http:// or https://.

    The scheme check is case-sensitive: "HTTP://host" becomes
    "https://HTTP://host". Whitespace-only input is returned unchanged.
    """
    trimmed = target.strip()
    if not trimmed:
        return target
    if trimmed.startswith("http://") or trimmed.startswith("https://"):
        return trimmed
    return "https://" + trimmed


def _read_capped(response, limit):
    chunks = []
    size = 0
    for chunk in response.iter_content(chunk_size=8192):
        if not chunk:
            continue
        chunks.append(chunk)
        size += len(chunk)
        if size >= limit:
            break
    return b"".join(chunks)[:limit]


def extract_version(html):
    """Return (version, source) or (None, None)."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all("meta", attrs={"name": re.compile("^generator$", re.I)}):
        match = VERSION_PATTERN.search(tag.get("content", ""))
        if match:
            return match.group(1), "meta-generator"

    match = VERSION_PATTERN.search(html)
    if match:
        return match.group(1), "body"
    return None, None


class VersionDetector(Detector):
    name = "version"

    def __init__(self, session=None, timeout=DEFAULT_TIMEOUT, max_body_bytes=MAX_BODY_BYTES):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_body_bytes = max_body_bytes

    def detect(self, ctx, target):
        url = normalize_target_url(target)
        ctx.check()

        response = self.session.get(
            url,
            headers={"User-Agent": USER_AGENT},
            timeout=ctx.remaining(self.timeout),
            stream=True,
        )
        try:
            if response.status_code >= 400:
                raise DetectorError(f"unexpected status code {response.status_code}")
            body = _read_capped(response, self.max_body_bytes)
        finally:
            response.close()

        ctx.check()

        version, source = extract_version(body.decode("utf-8", errors="replace"))
        if not version:
            raise DetectorError("version not discovered in generator tag")

        return DetectorResult(
            target=target,
            detector=self.name,
            severity=get_severity(self.name),
            summary=f"WordPress version {version} detected",
            metadata={"version": version, "source": source},
            confidence=GENERATOR_TAG_CONFIDENCE,
        )
