import json
import tempfile
import unittest
from pathlib import Path

import httpx

from ccswitch.config import ConfigManager
from ccswitch.errors import InvalidConfigShape
from ccswitch.notify import (
    HOOK_COMMAND,
    NotifyError,
    NotifyManager,
    build_webhook_payload,
    hook_installed,
    mask_webhook_url,
    validate_webhook_url,
)
from ccswitch.store import ConfigStore

WEBHOOK = "https://oapi.dingtalk.com/robot/send?access_token=secret"


class PayloadTests(unittest.TestCase):
    def test_payload_shape_follows_host(self):
        self.assertEqual(
            build_webhook_payload("https://open.feishu.cn/open-apis/bot/v2/hook/x", "hi"),
            {"msg_type": "text", "content": {"text": "hi"}},
        )
        self.assertEqual(build_webhook_payload("https://hooks.slack.com/services/x", "hi"), {"text": "hi"})
        self.assertEqual(build_webhook_payload("https://discord.com/api/webhooks/x", "hi"), {"content": "hi"})
        self.assertEqual(build_webhook_payload(WEBHOOK, "hi"), {"msgtype": "text", "text": {"content": "hi"}})

    def test_validate_and_mask(self):
        self.assertIsNone(validate_webhook_url(WEBHOOK))
        self.assertIsNotNone(validate_webhook_url("ftp://example.com"))
        self.assertIsNotNone(validate_webhook_url("not a url"))
        self.assertEqual(mask_webhook_url(WEBHOOK), "https://oapi.dingtalk.com/****")
        self.assertEqual(mask_webhook_url(""), "(not configured)")


class NotifyManagerTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        config_dir = Path(self._tmp.name)
        self.store = ConfigStore(config_dir)
        self.config_manager = ConfigManager(config_dir)
        self.requests = []
        self.status_code = 200
        self.manager = NotifyManager(self.store, self.config_manager, client_factory=self._client)

    def tearDown(self):
        self._tmp.cleanup()

    def _client(self, url):
        def handler(request):
            self.requests.append(request)
            return httpx.Response(self.status_code)

        return httpx.Client(transport=httpx.MockTransport(handler))

    def _settings(self):
        return json.loads(self.store.settings_file.read_text(encoding="utf-8"))

    def test_setup_saves_webhook_and_installs_hook_once(self):
        self.store.settings_file.write_text(
            json.dumps({"model": "opus", "hooks": {"PreToolUse": [{"matcher": "Bash", "hooks": []}]}}),
            encoding="utf-8",
        )

        self.assertTrue(self.manager.setup(WEBHOOK))
        self.assertFalse(self.manager.setup(WEBHOOK))

        self.assertEqual(self.config_manager.load_config().webhook_url, WEBHOOK)
        settings = self._settings()
        self.assertEqual(settings["model"], "opus")
        self.assertEqual(settings["hooks"]["PreToolUse"], [{"matcher": "Bash", "hooks": []}])
        self.assertEqual(settings["hooks"]["Stop"], [{"hooks": [{"type": "command", "command": HOOK_COMMAND}]}])
        self.assertTrue(hook_installed(settings))

    def test_setup_rejects_invalid_url(self):
        with self.assertRaises(NotifyError):
            self.manager.setup("example.com/hook")
        self.assertEqual(self.config_manager.load_config().webhook_url, "")
        self.assertFalse(self.store.settings_file.exists())

    def test_install_hook_rejects_non_object_hooks(self):
        self.store.settings_file.write_text(json.dumps({"hooks": []}), encoding="utf-8")

        with self.assertRaises(InvalidConfigShape):
            self.manager.install_hook()

    def test_status(self):
        status = self.manager.status()
        self.assertFalse(status.configured)
        self.assertFalse(status.hook_installed)

        self.manager.setup(WEBHOOK)

        status = self.manager.status()
        self.assertTrue(status.configured)
        self.assertTrue(status.hook_installed)
        self.assertNotIn("secret", status.webhook)

    def test_send_posts_payload(self):
        self.config_manager.save_config(webhook_url=WEBHOOK)

        self.assertEqual(self.manager.send("hello"), 200)

        [request] = self.requests
        self.assertEqual(request.method, "POST")
        self.assertEqual(json.loads(request.content), {"msgtype": "text", "text": {"content": "hello"}})

    def test_send_finished_mentions_directory(self):
        self.config_manager.save_config(webhook_url=WEBHOOK)

        self.manager.send_finished("/work/project")

        self.assertIn("/work/project", json.loads(self.requests[0].content)["text"]["content"])

    def test_send_without_webhook_fails(self):
        with self.assertRaises(NotifyError):
            self.manager.send_test()
        self.assertEqual(self.requests, [])

    def test_send_reports_http_errors(self):
        self.config_manager.save_config(webhook_url=WEBHOOK)
        self.status_code = 500

        with self.assertRaises(NotifyError) as ctx:
            self.manager.send_test()
        self.assertIn("HTTP 500", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
