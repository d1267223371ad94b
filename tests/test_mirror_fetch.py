import http.client
import socket
import unittest
import urllib.error
from unittest.mock import MagicMock, patch

from streamrelay.connectors.mirror import (
    MirrorFetchError,
    fetch_profile_markdown,
    fetch_text,
    mirror_url,
)


def _response(body: bytes, *, status: int = 200, charset: str | None = "utf-8") -> MagicMock:
    resp = MagicMock()
    resp.status = status
    resp.headers.get_content_charset.return_value = charset
    resp.read.side_effect = lambda size=-1: body if size is None or size < 0 else body[:size]
    resp.__enter__.return_value = resp
    resp.__exit__.return_value = False
    return resp


class TestMirrorUrl(unittest.TestCase):
    def test_scheme_is_stripped(self):
        self.assertEqual(
            mirror_url("https://www.youtube.com/@chefsam/about"),
            "https://r.jina.ai/http://www.youtube.com/@chefsam/about",
        )
        self.assertEqual(
            mirror_url("http://kick.com/x", "https://mirror.local/{target}"),
            "https://mirror.local/kick.com/x",
        )


class TestFetchText(unittest.TestCase):
    @patch("streamrelay.connectors.mirror.urllib.request.urlopen")
    def test_success_decodes_body(self, urlopen):
        urlopen.return_value = _response("Café stream".encode("utf-8"))
        self.assertEqual(fetch_text("https://mirror.local/x", timeout=3), "Café stream")
        urlopen.assert_called_once()
        request = urlopen.call_args.args[0]
        self.assertEqual(urlopen.call_args.kwargs["timeout"], 3)
        self.assertIn("User-agent", request.headers)

    @patch("streamrelay.connectors.mirror.urllib.request.urlopen")
    def test_non_success_status(self, urlopen):
        urlopen.return_value = _response(b"", status=304)
        with self.assertRaises(MirrorFetchError) as ctx:
            fetch_text("https://mirror.local/x")
        self.assertEqual(ctx.exception.status, 304)

    @patch("streamrelay.connectors.mirror.urllib.request.urlopen")
    def test_http_error(self, urlopen):
        urlopen.side_effect = urllib.error.HTTPError("https://mirror.local/x", 503, "busy", None, None)
        with self.assertRaises(MirrorFetchError) as ctx:
            fetch_text("https://mirror.local/x")
        self.assertEqual(ctx.exception.status, 503)
        self.assertEqual(urlopen.call_count, 1)

    @patch("streamrelay.connectors.mirror.urllib.request.urlopen")
    def test_network_error(self, urlopen):
        urlopen.side_effect = urllib.error.URLError("name resolution failed")
        with self.assertRaises(MirrorFetchError) as ctx:
            fetch_text("https://mirror.local/x")
        self.assertIsNone(ctx.exception.status)
        self.assertIn("name resolution", ctx.exception.reason)

    @patch("streamrelay.connectors.mirror.urllib.request.urlopen")
    def test_timeout(self, urlopen):
        urlopen.side_effect = socket.timeout("timed out")
        with self.assertRaises(MirrorFetchError) as ctx:
            fetch_text("https://mirror.local/x")
        self.assertEqual(ctx.exception.reason, "timeout")
        self.assertEqual(urlopen.call_count, 1)


    @patch("streamrelay.connectors.mirror.urllib.request.urlopen")
    def test_unknown_charset_decodes_as_utf8(self, urlopen):
        urlopen.return_value = _response("Café".encode("utf-8"), charset="x-bogus")
        self.assertEqual(fetch_text("https://mirror.local/x"), "Café")

    @patch("streamrelay.connectors.mirror.urllib.request.urlopen")
    def test_declared_charset_is_used(self, urlopen):
        urlopen.return_value = _response("Café".encode("latin-1"), charset="ISO-8859-1")
        self.assertEqual(fetch_text("https://mirror.local/x"), "Café")

    @patch("streamrelay.connectors.mirror.urllib.request.urlopen")
    def test_truncated_body(self, urlopen):
        resp = _response(b"")
        resp.read.side_effect = http.client.IncompleteRead(b"partial", 100)
        urlopen.return_value = resp
        with self.assertRaises(MirrorFetchError) as ctx:
            fetch_text("https://mirror.local/x")
        self.assertEqual(ctx.exception.reason, "IncompleteRead")


class TestFetchProfileMarkdown(unittest.TestCase):
    @patch("streamrelay.connectors.mirror.urllib.request.urlopen")
    def test_truncates_to_max_chars(self, urlopen):
        urlopen.return_value = _response(b"x" * 500)
        text = fetch_profile_markdown("https://kick.com/someone", max_chars=100)
        self.assertEqual(len(text), 100)
        request = urlopen.call_args.args[0]
        self.assertEqual(request.full_url, "https://r.jina.ai/http://kick.com/someone")


if __name__ == "__main__":
    unittest.main()
