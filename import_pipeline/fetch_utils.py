# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import concurrent.futures
import ipaddress
import json
import logging
import re
import socket
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from import_pipeline.url_parse import is_private_host
from shared import string_utils

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15  # seconds
IMAGE_REQUEST_TIMEOUT = 5  # seconds
MAX_CONCURRENT_IMAGE_DOWNLOADS = 3
MAX_IMAGE_BYTES = 10 * 1024 * 1024
MAX_REDIRECTS = 5

# Vendors serve bot-blocking pages to the default requests user agent.
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

SUN_KEYWORDS = ("sun", "light", "exposure")
SPACING_KEYWORDS = ("plant spacing", "spacing", "sowing rate")
GERMINATION_KEYWORDS = ("days to germination", "days to sprout", "germination", "emergence")
MATURITY_KEYWORDS = ("days to maturity", "days to harvest", "maturity")
LATIN_NAME_KEYWORDS = ("scientific name", "botanical name", "latin name", "latin", "species")

MAX_LABEL_CHARS = 50


@dataclass
class FetchedPage:
    url: str
    status_code: int
    html: str


@dataclass
class PageMetadata:
    title: Optional[str] = None
    image_url: Optional[str] = None
    # Every candidate in page order; image_url is the first.
    image_urls: List[str] = field(default_factory=list)
    description: Optional[str] = None
    site_name: Optional[str] = None
    product_name: Optional[str] = None
    scientific_name: Optional[str] = None
    sun: Optional[str] = None
    plant_spacing: Optional[str] = None
    days_to_germination: Optional[str] = None
    maturity_days: Optional[int] = None


def _resolve_addresses(host: str) -> List[str]:
    try:
        infos = socket.getaddrinfo(host, None)
    except socket.gaierror as e:
        raise requests.ConnectionError(f"Cannot resolve {host}: {e}") from e
    return [info[4][0] for info in infos]


def check_public_url(url: str) -> None:
    """
    Refuses URLs whose host is, or resolves to, a non-public address
    (loopback, RFC 1918, link-local, metadata endpoints).

    Raises requests.exceptions.InvalidURL so callers handle it like any
    other request failure.
    """
    try:
        parsed = urlparse(url)
        host = parsed.hostname
    except ValueError as e:
        raise requests.exceptions.InvalidURL(str(e)) from e
    if parsed.scheme not in ("http", "https") or not host:
        raise requests.exceptions.InvalidURL(f"Unsupported URL: {url}")
    if is_private_host(host):
        raise requests.exceptions.InvalidURL(f"Refusing non-public host {host}")
    for address in _resolve_addresses(host):
        if not ipaddress.ip_address(address.split("%")[0]).is_global:
            raise requests.exceptions.InvalidURL(f"Refusing non-public address for {host}")


def _get_public(url: str, timeout: float, **kwargs) -> requests.Response:
    """GET that re-checks the target host before following each redirect."""
    for _ in range(MAX_REDIRECTS + 1):
        check_public_url(url)
        response = requests.get(
            url, headers=BROWSER_HEADERS, timeout=timeout, allow_redirects=False, **kwargs
        )
        if not response.is_redirect:
            return response
        url = urljoin(url, response.headers["location"])
        response.close()
    raise requests.TooManyRedirects(f"More than {MAX_REDIRECTS} redirects")


def fetch_page(url: str, timeout: float = REQUEST_TIMEOUT) -> FetchedPage:
    """
    Fetches a vendor product page.

    Non-2xx responses are returned rather than raised so callers can log the
    status code. Network failures and non-public hosts raise
    requests.RequestException.
    """
    response = _get_public(url, timeout)
    return FetchedPage(url=response.url or url, status_code=response.status_code, html=response.text)


def _meta_content(soup: BeautifulSoup, *names: str) -> Optional[str]:
    for name in names:
        tag = soup.find("meta", attrs={"property": name}) or soup.find(
            "meta", attrs={"name": name}
        )
        if tag and tag.get("content", "").strip():
            return string_utils.decode_html_entities(tag["content"])
    return None


def _json_ld_products(soup: BeautifulSoup) -> List[dict]:
    products: List[dict] = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or "")
        except json.JSONDecodeError:
            continue
        candidates = data if isinstance(data, list) else [data]
        for candidate in candidates:
            if not isinstance(candidate, dict):
                continue
            graph = candidate.get("@graph")
            items = graph if isinstance(graph, list) else [candidate]
            for item in items:
                item_type = item.get("@type") if isinstance(item, dict) else None
                if item_type == "Product" or (
                    isinstance(item_type, list) and "Product" in item_type
                ):
                    products.append(item)
    return products


def _images(value) -> List[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, list):
        return [url for item in value for url in _images(item)]
    if isinstance(value, dict):
        return _images(value.get("url"))
    return []


def _page_lines(soup: BeautifulSoup) -> List[str]:
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    text = soup.get_text("\n")
    return [line.strip() for line in text.splitlines() if line.strip()]


def extract_label(lines: List[str], keywords: Iterable[str], max_chars: int = MAX_LABEL_CHARS) -> Optional[str]:
    """
    Value of the first "Label: value" line whose label matches a keyword.

    When the label stands alone (table cell, <dt>), the next line is the value.
    """
    pattern = "|".join(re.escape(k).replace(r"\ ", r"\s+") for k in keywords)
    label_re = re.compile(rf"^(?:{pattern})\b\s*:?\s*(.*)$", re.IGNORECASE)
    for i, line in enumerate(lines):
        match = label_re.match(line)
        if not match:
            continue
        value = match.group(1).strip()
        if not value and i + 1 < len(lines):
            value = lines[i + 1]
        value = string_utils.strip_html_for_display(value).strip(" :")
        if not value:
            continue
        return value[:max_chars].strip()
    return None


def extract_maturity_days(lines: List[str]) -> Optional[int]:
    pattern = "|".join(re.escape(k).replace(r"\ ", r"\s+") for k in MATURITY_KEYWORDS)
    text = "\n".join(lines)
    match = re.search(
        rf"(?:{pattern})[^\d]{{0,20}}(\d+)\s*[-–]\s*(\d+)|(?:{pattern})[^\d]{{0,20}}(\d+)\s*day",
        text,
        re.IGNORECASE,
    )
    if not match:
        return None
    if match.group(1) and match.group(2):
        return (int(match.group(1)) + int(match.group(2)) + 1) // 2
    return int(match.group(3)) if match.group(3) else None


def extract_page_metadata(html: str, page_url: str = "") -> PageMetadata:
    """
    Pulls Open Graph tags, JSON-LD Product data and labelled growing specs
    out of a product page.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    meta = PageMetadata(
        title=_meta_content(soup, "og:title", "twitter:title"),
        description=_meta_content(soup, "og:description", "description"),
        site_name=_meta_content(soup, "og:site_name"),
    )
    images: List[str] = []
    for name in ("og:image", "og:image:secure_url", "twitter:image"):
        content = _meta_content(soup, name)
        if content:
            images.append(content)

    for product in _json_ld_products(soup):
        if not meta.product_name and isinstance(product.get("name"), str):
            meta.product_name = string_utils.decode_html_entities(product["name"])
        images.extend(_images(product.get("image")))
        if not meta.description and isinstance(product.get("description"), str):
            meta.description = string_utils.strip_html_for_display(product["description"])

    if not meta.title and soup.title and soup.title.string:
        meta.title = string_utils.collapse_whitespace(soup.title.string)

    if page_url:
        images = [urljoin(page_url, url) for url in images]
    meta.image_urls = list(dict.fromkeys(images))
    meta.image_url = meta.image_urls[0] if meta.image_urls else None

    lines = _page_lines(soup)
    scientific = extract_label(lines, LATIN_NAME_KEYWORDS, max_chars=120)
    if string_utils.looks_like_scientific_name(scientific):
        meta.scientific_name = string_utils.strip_html_for_display(scientific)
    meta.sun = extract_label(lines, SUN_KEYWORDS, max_chars=30)
    meta.plant_spacing = extract_label(lines, SPACING_KEYWORDS)
    meta.days_to_germination = extract_label(lines, GERMINATION_KEYWORDS)
    meta.maturity_days = extract_maturity_days(lines)
    return meta


def fetch_image_bytes(
    url: str, timeout: float = IMAGE_REQUEST_TIMEOUT, max_bytes: int = MAX_IMAGE_BYTES
) -> bytes:
    """
    Downloads one image.

    Raises requests.RequestException on network errors, non-2xx responses
    and non-public hosts, and ValueError when the body exceeds `max_bytes`.
    """
    response = _get_public(url, timeout, stream=True)
    try:
        response.raise_for_status()
        chunks: List[bytes] = []
        size = 0
        for chunk in response.iter_content(chunk_size=64 * 1024):
            size += len(chunk)
            if size > max_bytes:
                raise ValueError(f"Image larger than {max_bytes} bytes: {url}")
            chunks.append(chunk)
        return b"".join(chunks)
    finally:
        response.close()


def fetch_images(
    urls: Iterable[str],
    timeout: float = IMAGE_REQUEST_TIMEOUT,
    max_workers: int = MAX_CONCURRENT_IMAGE_DOWNLOADS,
) -> Dict[str, Optional[bytes]]:
    """
    Downloads several images with at most `max_workers` requests in flight.

    Failed downloads map to None.
    """
    unique = list(dict.fromkeys(u for u in urls if u))
    results: Dict[str, Optional[bytes]] = {}
    if not unique:
        return results
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(fetch_image_bytes, url, timeout): url for url in unique}
        for future in concurrent.futures.as_completed(futures):
            url = futures[future]
            try:
                results[url] = future.result()
            except (requests.RequestException, ValueError) as e:
                logger.warning("Image download failed for %s: %s", url, e)
                results[url] = None
    return results
