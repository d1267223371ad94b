import io
import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from streamrelay.cli import build_parser, main
from streamrelay.connectors.mirror import MirrorFetchError

ABOUT_MD = "Description\nPasta every Sunday.\nLinks"
NO_CONFIG = "/nonexistent/relay.yaml"


@patch("streamrelay.cli.setup_logging")
@patch("streamrelay.cli.load_dotenv")
class TestCli(unittest.TestCase):
    def _run(self, argv):
        out = io.StringIO()
        err = io.StringIO()
        with patch("sys.stdout", out), patch("sys.stderr", err):
            code = main(argv)
        return code, out.getvalue(), err.getvalue()

    def test_extract_from_file(self, _dotenv, _logging):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "about.md"
            path.write_text(ABOUT_MD, encoding="utf-8")
            code, out, _ = self._run(
                ["--config", NO_CONFIG, "extract", "https://www.youtube.com/@chefsam", "--file", str(path)]
            )
        self.assertEqual(code, 0)
        self.assertEqual(out.strip(), "Pasta every Sunday.")

    def test_extract_from_stdin_as_json(self, _dotenv, _logging):
        with patch("sys.stdin", io.StringIO(ABOUT_MD)):
            code, out, _ = self._run(
                ["--config", NO_CONFIG, "extract", "https://www.youtube.com/@chefsam", "--json"]
            )
        self.assertEqual(code, 0)
        self.assertEqual(
            json.loads(out),
            {"byline": "Pasta every Sunday.", "platform": "video_host", "outcome": "ok"},
        )

    def test_byline_rejects_bad_url(self, _dotenv, _logging):
        with patch("streamrelay.cli.fetch_profile_markdown") as fetch:
            code, _, err = self._run(["--config", NO_CONFIG, "byline", "https://evil.example/x"])
        self.assertEqual(code, 2)
        self.assertIn("invalid url", err)
        fetch.assert_not_called()

    def test_byline_reports_mirror_failure(self, _dotenv, _logging):
        failure = MirrorFetchError("https://mirror/x", "timeout")
        with patch("streamrelay.cli.fetch_profile_markdown", side_effect=failure):
            code, out, err = self._run(["--config", NO_CONFIG, "byline", "https://www.youtube.com/@chefsam"])
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("upstream unavailable", err)

    def test_byline_fetches_normalized_url(self, _dotenv, _logging):
        with patch("streamrelay.cli.fetch_profile_markdown", return_value=ABOUT_MD) as fetch:
            code, out, _ = self._run(["--config", NO_CONFIG, "byline", "youtube.com/@chefsam/videos"])
        self.assertEqual(code, 0)
        self.assertEqual(out.strip(), "Pasta every Sunday.")
        self.assertEqual(fetch.call_args.args[0], "https://www.youtube.com/@chefsam/about")

    def test_web_runs_uvicorn(self, _dotenv, _logging):
        uvicorn = MagicMock()
        with patch("streamrelay.cli.importlib.import_module", return_value=uvicorn):
            code, _, _ = self._run(["--config", NO_CONFIG, "web", "--host", "127.0.0.1", "--port", "9100"])
        self.assertEqual(code, 0)
        kwargs = uvicorn.run.call_args.kwargs
        self.assertEqual(kwargs["host"], "127.0.0.1")
        self.assertEqual(kwargs["port"], 9100)

    def test_port_defaults_from_env(self, _dotenv, _logging):
        with patch.dict("os.environ", {"PORT": "8123"}, clear=False):
            args = build_parser().parse_args(["web"])
        self.assertEqual(args.port, 8123)


if __name__ == "__main__":
    unittest.main()
