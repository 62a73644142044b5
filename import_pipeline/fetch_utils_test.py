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

import unittest
from unittest.mock import MagicMock, patch

import requests

from import_pipeline import fetch_utils

PRODUCT_PAGE = """
<html>
  <head>
    <title>Fallback Title</title>
    <meta property="og:title" content="Cherokee Purple Tomato Seeds | Baker Creek">
    <meta property="og:image" content="/img/cherokee.jpg">
    <meta property="og:site_name" content="Baker Creek">
    <meta name="description" content="An heirloom &amp; pollinator favorite.">
    <script type="application/ld+json">
      {"@context": "https://schema.org", "@graph": [
        {"@type": "WebPage", "name": "Shop"},
        {"@type": "Product", "name": "Cherokee Purple Tomato", "image": ["https://cdn.example.com/a.jpg"]}
      ]}
    </script>
  </head>
  <body>
    <dl>
      <dt>Botanical Name</dt>
      <dd><em>Solanum lycopersicum</em></dd>
      <dt>Sun</dt>
      <dd>Full Sun</dd>
      <dt>Plant Spacing</dt>
      <dd>24 inches</dd>
    </dl>
    <p>Days to Germination: 7-14 days</p>
    <p>Days to Maturity: 75-90 days</p>
  </body>
</html>
"""


class ExtractPageMetadataTest(unittest.TestCase):
    def test_product_page(self):
        meta = fetch_utils.extract_page_metadata(PRODUCT_PAGE, "https://www.rareseeds.com/tomato")
        self.assertEqual(meta.title, "Cherokee Purple Tomato Seeds | Baker Creek")
        self.assertEqual(meta.product_name, "Cherokee Purple Tomato")
        self.assertEqual(meta.site_name, "Baker Creek")
        self.assertEqual(meta.description, "An heirloom & pollinator favorite.")
        self.assertEqual(meta.image_url, "https://www.rareseeds.com/img/cherokee.jpg")
        self.assertEqual(
            meta.image_urls,
            ["https://www.rareseeds.com/img/cherokee.jpg", "https://cdn.example.com/a.jpg"],
        )
        self.assertEqual(meta.scientific_name, "Solanum lycopersicum")
        self.assertEqual(meta.sun, "Full Sun")
        self.assertEqual(meta.plant_spacing, "24 inches")
        self.assertEqual(meta.days_to_germination, "7-14 days")
        self.assertEqual(meta.maturity_days, 83)

    def test_json_ld_fills_missing_open_graph(self):
        html = """
        <html><head>
          <script type="application/ld+json">not json</script>
          <script type="application/ld+json">
            {"@type": ["Product", "Thing"], "name": "Genovese Basil",
             "image": {"url": "https://cdn.example.com/basil.jpg"},
             "description": "<p>Classic <b>pesto</b> basil.</p>"}
          </script>
        </head><body></body></html>
        """
        meta = fetch_utils.extract_page_metadata(html)
        self.assertEqual(meta.product_name, "Genovese Basil")
        self.assertEqual(meta.image_url, "https://cdn.example.com/basil.jpg")
        self.assertEqual(meta.description, "Classic pesto basil.")

    def test_title_fallback(self):
        meta = fetch_utils.extract_page_metadata(
            "<html><head><title>  Genovese   Basil </title></head><body></body></html>"
        )
        self.assertEqual(meta.title, "Genovese Basil")
        self.assertIsNone(meta.image_url)
        self.assertIsNone(meta.maturity_days)

    def test_empty_html(self):
        meta = fetch_utils.extract_page_metadata("")
        self.assertIsNone(meta.title)
        self.assertIsNone(meta.sun)


class ExtractLabelTest(unittest.TestCase):
    def test_inline_and_next_line_values(self):
        lines = ["Spacing:", "12 inches", "Days to Germination: 5-7 days"]
        self.assertEqual(
            fetch_utils.extract_label(lines, fetch_utils.SPACING_KEYWORDS), "12 inches"
        )
        self.assertEqual(
            fetch_utils.extract_label(lines, fetch_utils.GERMINATION_KEYWORDS), "5-7 days"
        )

    def test_value_is_truncated(self):
        lines = ["Sun: " + "x" * 80]
        self.assertEqual(len(fetch_utils.extract_label(lines, fetch_utils.SUN_KEYWORDS)), 50)

    def test_missing_label(self):
        self.assertIsNone(fetch_utils.extract_label(["Nothing here"], fetch_utils.SUN_KEYWORDS))

    def test_single_maturity_value(self):
        self.assertEqual(fetch_utils.extract_maturity_days(["Days to harvest: about 60 days"]), 60)


class FetchTest(unittest.TestCase):
    def setUp(self):
        resolver = patch(
            "import_pipeline.fetch_utils._resolve_addresses", return_value=["93.184.216.34"]
        )
        self.mock_resolve = resolver.start()
        self.addCleanup(resolver.stop)

    @patch("import_pipeline.fetch_utils.requests.get")
    def test_fetch_page_returns_non_2xx(self, mock_get):
        mock_get.return_value = MagicMock(
            status_code=403, text="blocked", url="https://example.com/final", is_redirect=False
        )

        page = fetch_utils.fetch_page("https://example.com/a")

        self.assertEqual(page.status_code, 403)
        self.assertEqual(page.html, "blocked")
        self.assertEqual(page.url, "https://example.com/final")
        mock_get.assert_called_once_with(
            "https://example.com/a",
            headers=fetch_utils.BROWSER_HEADERS,
            timeout=fetch_utils.REQUEST_TIMEOUT,
            allow_redirects=False,
        )

    @patch("import_pipeline.fetch_utils.requests.get")
    def test_private_address_is_refused(self, mock_get):
        for url in (
            "http://169.254.169.254/latest/meta-data",
            "http://127.0.0.1:8080/admin",
            "http://localhost/",
            "ftp://example.com/file",
        ):
            with self.assertRaises(requests.exceptions.InvalidURL):
                fetch_utils.fetch_page(url)
        mock_get.assert_not_called()

    @patch("import_pipeline.fetch_utils.requests.get")
    def test_hostname_resolving_to_private_address_is_refused(self, mock_get):
        self.mock_resolve.return_value = ["10.0.0.7"]

        with self.assertRaises(requests.exceptions.InvalidURL):
            fetch_utils.fetch_page("https://intranet.example.com/")
        mock_get.assert_not_called()

    @patch("import_pipeline.fetch_utils.requests.get")
    def test_redirect_to_private_address_is_refused(self, mock_get):
        mock_get.return_value = MagicMock(
            is_redirect=True, headers={"location": "http://192.168.1.1/router"}
        )

        with self.assertRaises(requests.exceptions.InvalidURL):
            fetch_utils.fetch_page("https://example.com/a")
        self.assertEqual(mock_get.call_count, 1)

    @patch("import_pipeline.fetch_utils.requests.get")
    def test_public_redirect_is_followed(self, mock_get):
        redirect = MagicMock(is_redirect=True, headers={"location": "/b"})
        final = MagicMock(
            status_code=200, text="ok", url="https://example.com/b", is_redirect=False
        )
        mock_get.side_effect = [redirect, final]

        page = fetch_utils.fetch_page("https://example.com/a")

        self.assertEqual(page.html, "ok")
        self.assertEqual(mock_get.call_args_list[1][0][0], "https://example.com/b")

    @patch("import_pipeline.fetch_utils.requests.get")
    def test_fetch_image_bytes_raises_on_http_error(self, mock_get):
        response = MagicMock(is_redirect=False)
        response.raise_for_status.side_effect = requests.HTTPError("404")
        mock_get.return_value = response

        with self.assertRaises(requests.HTTPError):
            fetch_utils.fetch_image_bytes("https://example.com/missing.jpg")

    @patch("import_pipeline.fetch_utils.requests.get")
    def test_fetch_image_bytes_streams_body(self, mock_get):
        response = MagicMock(is_redirect=False)
        response.iter_content.return_value = [b"abc", b"def"]
        mock_get.return_value = response

        self.assertEqual(fetch_utils.fetch_image_bytes("https://example.com/a.jpg"), b"abcdef")
        self.assertTrue(mock_get.call_args.kwargs["stream"])
        response.close.assert_called_once()

    @patch("import_pipeline.fetch_utils.requests.get")
    def test_oversized_image_is_rejected(self, mock_get):
        response = MagicMock(is_redirect=False)
        response.iter_content.return_value = [b"x" * 600, b"x" * 600]
        mock_get.return_value = response

        with self.assertRaises(ValueError):
            fetch_utils.fetch_image_bytes("https://example.com/huge.jpg", max_bytes=1000)
        response.close.assert_called_once()

    @patch("import_pipeline.fetch_utils.fetch_image_bytes")
    def test_fetch_images_maps_failures_to_none(self, mock_fetch):
        def fake_fetch(url, timeout):
            if "bad" in url:
                raise requests.ConnectionError("down")
            if "huge" in url:
                raise ValueError("too large")
            return url.encode()

        mock_fetch.side_effect = fake_fetch

        results = fetch_utils.fetch_images(
            [
                "https://a.test/1.jpg",
                "https://a.test/bad.jpg",
                "https://a.test/huge.jpg",
                "https://a.test/1.jpg",
                "",
            ],
            max_workers=2,
        )

        self.assertEqual(
            results,
            {
                "https://a.test/1.jpg": b"https://a.test/1.jpg",
                "https://a.test/bad.jpg": None,
                "https://a.test/huge.jpg": None,
            },
        )
        self.assertEqual(mock_fetch.call_count, 3)

    def test_fetch_images_empty(self):
        self.assertEqual(fetch_utils.fetch_images([]), {})


if __name__ == "__main__":
    unittest.main()
