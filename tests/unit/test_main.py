"""
Unit tests for the command line entry points.
"""

import io
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch

from live_ladder.core.main import build_serve_parser, main, sweep_main
from live_ladder.utils import logging as live_logging
from live_ladder.utils.logging import get_logger, set_debug_mode, set_log_level, set_quiet_mode


@patch.dict(os.environ, {}, clear=True)
class TestMain(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self._saved = (live_logging._DEBUG_ENABLED, live_logging._LOG_LEVEL)

    def tearDown(self):
        set_quiet_mode(False)
        set_debug_mode(self._saved[0])
        set_log_level(self._saved[1])
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_parser_defaults_leave_config_alone(self):
        args = build_serve_parser().parse_args([])
        self.assertIsNone(args.output_root)
        self.assertIsNone(args.debug)
        self.assertIsNone(args.resolutions)
        self.assertIsNone(args.dry_run)

    def test_dry_run_prints_command(self):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main(["--quiet", "--dry-run", "/live/cam1", "--resolutions", "720,360",
                         "--ffmpeg", "/opt/ffmpeg", "--output-root", str(self.temp_dir)])

        self.assertEqual(code, 0)
        rendered = out.getvalue()
        self.assertTrue(rendered.startswith("/opt/ffmpeg -y -fflags nobuffer"))
        self.assertIn("split=2", rendered)
        self.assertIn(str(self.temp_dir / "live" / "cam1" / "%v.m3u8"), rendered)
        self.assertFalse((self.temp_dir / "live").exists())

    def test_dry_run_bad_path(self):
        self.assertEqual(main(["--quiet", "--dry-run", "nope"]), 2)

    def test_invalid_configuration(self):
        self.assertEqual(main(["--quiet", "--resolutions", "1080,123", "--dry-run", "/a/b"]), 2)

    @patch("live_ladder.core.main.uvicorn.run")
    def test_serve_runs_hook_app(self, mock_run):
        code = main(["--quiet", "--output-root", str(self.temp_dir), "--port", "9100"])

        self.assertEqual(code, 0)
        mock_run.assert_called_once()
        kwargs = mock_run.call_args.kwargs
        self.assertEqual(kwargs["host"], "127.0.0.1")
        self.assertEqual(kwargs["port"], 9100)

    def test_ingest_config(self):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main(["--quiet", "--ingest-config", "live", "event", "--rtmp-port", "1936",
                         "--host", "0.0.0.0", "--port", "9100"])

        self.assertEqual(code, 0)
        rendered = out.getvalue()
        self.assertIn("listen 1936;", rendered)
        self.assertIn("chunk_size 60000;", rendered)
        self.assertIn("application event {", rendered)
        self.assertIn("on_publish http://127.0.0.1:9100/hooks/on_publish;", rendered)

    @patch.dict(os.environ, {"RTMP_CHUNK_SIZE": "4096", "RTMP_PING": "90"})
    def test_ingest_config_defaults_to_live(self):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main(["--quiet", "--ingest-config"])

        self.assertEqual(code, 0)
        rendered = out.getvalue()
        self.assertIn("application live {", rendered)
        self.assertIn("chunk_size 4096;", rendered)
        self.assertIn("ping 90s;", rendered)

    def test_ingest_config_bad_application(self):
        self.assertEqual(main(["--quiet", "--ingest-config", "bad app"]), 2)

    def test_log_level_flag(self):
        set_debug_mode(False)
        main(["--log-level", "warn", "--dry-run", "nope"])
        self.assertEqual(live_logging._LOG_LEVEL, "WARN")
        self.assertFalse(live_logging._DEBUG_ENABLED)

    def test_unknown_log_level_rejected(self):
        with redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                build_serve_parser().parse_args(["--log-level", "verbose"])

    @patch("builtins.print")
    def test_debug_flag_shows_debug_lines(self, mock_print):
        main(["--debug", "--dry-run", "nope"])
        mock_print.reset_mock()

        get_logger("test").debug("shown")

        mock_print.assert_called_once()
        self.assertEqual(mock_print.call_args.args[0], "[DEBUG] [test] shown")

    @patch.dict(os.environ, {"DEBUG": "true"})
    def test_explicit_log_level_wins_over_debug(self):
        main(["--log-level", "error", "--dry-run", "nope"])
        self.assertEqual(live_logging._LOG_LEVEL, "ERROR")

    def test_sweep(self):
        stream_dir = self.temp_dir / "live" / "cam1"
        stream_dir.mkdir(parents=True)
        (stream_dir / "0-1.ts").write_text("x")
        (stream_dir / "master.m3u8").write_text("x")

        code = sweep_main(["--quiet", "--output-root", str(self.temp_dir)])

        self.assertEqual(code, 0)
        self.assertEqual(list(stream_dir.iterdir()), [])


if __name__ == '__main__':
    unittest.main()
