import io
import unittest

from prompt_toolkit.document import Document
from prompt_toolkit.validation import ValidationError
from rich.console import Console

from ccswitch.health import ProbeResult
from ccswitch.models import AUTH_TOKEN_KEY, BASE_URL_KEY, ApiConfig
from ccswitch.ui import CheckValidator, SwitcherUI, masked_view
from ccswitch.workflows import ConfigSnapshot


class MaskedViewTests(unittest.TestCase):
    def test_masks_nested_and_flat_tokens_without_touching_source(self):
        nested = ApiConfig.from_dict(
            {"name": "n", "config": {"env": {AUTH_TOKEN_KEY: "sk-ant-secret-value", BASE_URL_KEY: "https://x"}}}
        )
        flat = ApiConfig.from_dict({"name": "f", "authToken": "sk-flat-secret", "baseUrl": "https://y"})

        self.assertEqual(masked_view(nested)["config"]["env"][AUTH_TOKEN_KEY], "sk-ant-****")
        self.assertEqual(masked_view(flat)["authToken"], "sk-flat****")
        self.assertEqual(nested.raw["config"]["env"][AUTH_TOKEN_KEY], "sk-ant-secret-value")


class CheckValidatorTests(unittest.TestCase):
    def test_raises_with_check_message(self):
        validator = CheckValidator(lambda text: None if text else "Name cannot be empty")

        validator.validate(Document("demo"))
        with self.assertRaises(ValidationError) as ctx:
            validator.validate(Document("   "))
        self.assertEqual(ctx.exception.message, "Name cannot be empty")


class SwitcherUIRenderingTests(unittest.TestCase):
    def setUp(self):
        self.out = io.StringIO()
        self.ui = SwitcherUI(console=Console(file=self.out, width=200, color_system=None))

    def test_config_label_marks_active_and_masks_token(self):
        config = ApiConfig.create("A", "https://x", "sk-aaaaaaaaaaaa")

        label = SwitcherUI.config_label(0, config, width=3, active=True)

        self.assertEqual(label, "1. [A  ]  sk-aaaa****  https://x (current)")

    def test_display_configs_never_prints_full_token(self):
        config = ApiConfig.create("[odd] name", "https://x", "sk-aaaaaaaaaaaa")

        self.ui.display_configs(ConfigSnapshot(configs=[config], active=config))

        output = self.out.getvalue()
        self.assertIn("[odd] name", output)
        self.assertIn("(current)", output)
        self.assertNotIn("sk-aaaaaaaaaaaa", output)

    def test_display_probe_results_summarizes(self):
        results = [
            ProbeResult(base_url="https://x", names=["A"], reachable=True, status_code=404, latency_ms=12.0,
                        endpoint="https://x/v1/models", masked_token="sk-aaaa****"),
            ProbeResult(base_url="https://y", names=["B"], timed_out=True, error="timeout after 30s",
                        endpoint="https://y/health", masked_token="sk-bbbb****"),
        ]

        self.ui.display_probe_results(results)

        output = self.out.getvalue()
        self.assertIn("HTTP 404", output)
        self.assertIn("timeout after 30s", output)
        self.assertIn("1/2 reachable", output)


if __name__ == "__main__":
    unittest.main()
