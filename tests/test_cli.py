import io
import json
import logging
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

from ccswitch import __version__
from ccswitch.cli import build_arg_parser, main, resolve_config_dir, split_global_options
from ccswitch.logs import configure_logging
from ccswitch.models import AUTH_TOKEN_KEY, BASE_URL_KEY


class CliTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config_dir = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()
        root = logging.getLogger()
        for handler in list(root.handlers):
            if getattr(handler, "_ccs_handler", False):
                root.removeHandler(handler)

    def test_build_arg_parser_collects_command_arguments(self):
        args = build_arg_parser().parse_args(["--config-dir", "/tmp/x", "--debug", "notify", "setup", "https://h"])

        self.assertEqual(args.config_dir, "/tmp/x")
        self.assertTrue(args.debug)
        self.assertEqual(args.command, "notify")
        self.assertEqual(args.args, ["setup", "https://h"])

    def test_no_arguments_prints_help(self):
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(main([]), 0)
        self.assertIn("usage: ccs", out.getvalue())
        self.assertIn("health", out.getvalue())

    def test_version_flag(self):
        out = io.StringIO()
        with redirect_stdout(out), self.assertRaises(SystemExit) as ctx:
            main(["-v"])
        self.assertEqual(ctx.exception.code, 0)
        self.assertIn(f"ccs version: {__version__}", out.getvalue())

    def test_unknown_command_exits_1(self):
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(main(["--config-dir", str(self.config_dir), "frobnicate"]), 1)
        self.assertIn("frobnicate", out.getvalue())
        self.assertIn("remove", out.getvalue())

    @patch("ccswitch.ui.SwitcherUI.confirm", return_value=True)
    def test_switch_end_to_end(self, mock_confirm):
        configs = [{"name": "A", "config": {"env": {AUTH_TOKEN_KEY: "sk-a", BASE_URL_KEY: "https://a"}}}]
        (self.config_dir / "apiConfigs.json").write_text(json.dumps(configs), encoding="utf-8")
        (self.config_dir / "settings.json").write_text(json.dumps({"model": "opus"}), encoding="utf-8")

        with redirect_stdout(io.StringIO()):
            self.assertEqual(main(["--config-dir", str(self.config_dir), "list", "1"]), 0)

        settings = json.loads((self.config_dir / "settings.json").read_text(encoding="utf-8"))
        self.assertEqual(settings["model"], "opus")
        self.assertEqual(settings["_configName"], "A")
        mock_confirm.assert_called_once()

    def test_corrupt_preferences_fall_back_to_defaults(self):
        (self.config_dir / "ccs_config.toml").write_text("debug = = 1", encoding="utf-8")

        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(main(["--config-dir", str(self.config_dir), "list"]), 0)
        self.assertIn("No API configurations found", out.getvalue())

    def test_global_options_after_command_are_not_passed_to_it(self):
        args = split_global_options(
            build_arg_parser().parse_args(["list", "1", "--debug", "--config-dir", "/tmp/x"])
        )

        self.assertEqual(args.command, "list")
        self.assertEqual(args.args, ["1"])
        self.assertTrue(args.debug)
        self.assertEqual(args.config_dir, "/tmp/x")

    @patch("ccswitch.ui.SwitcherUI.confirm", return_value=True)
    def test_switch_with_trailing_debug_flag(self, mock_confirm):
        configs = [{"name": "A", "config": {"env": {AUTH_TOKEN_KEY: "sk-a", BASE_URL_KEY: "https://a"}}}]
        (self.config_dir / "apiConfigs.json").write_text(json.dumps(configs), encoding="utf-8")

        with redirect_stdout(io.StringIO()):
            self.assertEqual(main(["list", "1", "--debug", "--config-dir", str(self.config_dir)]), 0)

        settings = json.loads((self.config_dir / "settings.json").read_text(encoding="utf-8"))
        self.assertEqual(settings["_configName"], "A")

    def test_notify_send_with_corrupt_preferences_exits_0(self):
        (self.config_dir / "ccs_config.toml").write_text("debug = = 1", encoding="utf-8")

        with redirect_stdout(io.StringIO()):
            self.assertEqual(main(["--config-dir", str(self.config_dir), "notify", "send"]), 0)

    @patch.dict("os.environ", {"CCS_CONFIG_DIR": "/tmp/from-env"})
    def test_resolve_config_dir_precedence(self):
        self.assertEqual(resolve_config_dir("/tmp/from-flag"), Path("/tmp/from-flag"))
        self.assertEqual(resolve_config_dir(None), Path("/tmp/from-env"))


class ConfigureLoggingTests(unittest.TestCase):
    def test_is_idempotent(self):
        root = logging.getLogger()
        configure_logging(debug=True)
        configure_logging(debug=False)

        marked = [handler for handler in root.handlers if getattr(handler, "_ccs_handler", False)]
        self.assertEqual(len(marked), 1)
        self.assertEqual(root.level, logging.WARNING)

        root.removeHandler(marked[0])


if __name__ == "__main__":
    unittest.main()
