"""Tests for the edgespeed CLI -- argument handling and config layering."""

import os
import tempfile
import unittest
from unittest import mock


class TestParser(unittest.TestCase):
    def _parse(self, *argv):
        from edgespeed import _build_parser
        return _build_parser().parse_args(list(argv))

    def test_defaults_left_unset(self):
        args = self._parse()
        self.assertIsNone(args.workers)
        self.assertIsNone(args.ping_count)
        self.assertFalse(args.json)
        self.assertEqual(args.verbose, 0)

    def test_flags(self):
        args = self._parse("--json", "--workers", "8", "--download-duration", "5", "-vv")
        self.assertTrue(args.json)
        self.assertEqual(args.workers, 8)
        self.assertEqual(args.download_duration, 5.0)
        self.assertEqual(args.verbose, 2)


class TestConfigFromArgs(unittest.TestCase):
    def _config(self, *argv, saved=None):
        from edgespeed import _build_parser, _config_from_args
        from speedcore.config import save_config

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "config.json")
            with mock.patch("speedcore.config._config_path", return_value=path):
                if saved:
                    save_config(saved)
                return _config_from_args(_build_parser().parse_args(list(argv)))

    def test_engine_defaults(self):
        cfg = self._config()
        self.assertEqual(cfg.workers, 4)
        self.assertEqual(cfg.ping_count, 8)

    def test_flags_override_file(self):
        cfg = self._config("--workers", "2", saved={"workers": 8, "upload_window": 5.0})
        self.assertEqual(cfg.workers, 2)
        self.assertEqual(cfg.upload_window, 5.0)

    def test_durations_map_to_windows(self):
        cfg = self._config("--download-duration", "3", "--upload-duration", "4")
        self.assertEqual(cfg.download_window, 3.0)
        self.assertEqual(cfg.upload_window, 4.0)


class TestMainValidation(unittest.TestCase):
    def test_invalid_workers_exit(self):
        import edgespeed

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "config.json")
            with mock.patch("speedcore.config._config_path", return_value=path), \
                    mock.patch.object(edgespeed, "configure_logging"), \
                    mock.patch.object(edgespeed, "run_speedtest") as run:
                with self.assertRaises(SystemExit) as ctx:
                    edgespeed.main(["--workers", "0"])
        self.assertEqual(ctx.exception.code, 1)
        run.assert_not_called()


if __name__ == "__main__":
    unittest.main()
