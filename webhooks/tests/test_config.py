from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, override_settings

from webhooks.config import WebhookConfig, WebhookConfigNotFound, get_config, load_configs
from webhooks.tests.factories import PIN_LOCAL_URL, SECRET, TEST_CONFIGS


@override_settings(WEBHOOK_CLIENT_CONFIGS=TEST_CONFIGS)
class WebhookConfigTests(SimpleTestCase):
    def test_get_config(self):
        config = get_config("pin-local")
        self.assertEqual(config.signed_url, PIN_LOCAL_URL)
        self.assertEqual(config.signing_secret, SECRET)

    def test_unknown_config(self):
        with self.assertRaises(WebhookConfigNotFound):
            get_config("nope")

    def test_repr_hides_secret(self):
        config = get_config("compare-my-move")
        self.assertNotIn(SECRET, repr(config))

    def test_redacted_summary(self):
        summary = WebhookConfig(name="really-moving", signing_secret="abcdefghijklmnop").redacted()
        self.assertEqual(summary["signing_secret"], "abcdefgh...")
        self.assertEqual(summary["signature_validator"], "webhooks.validators.SignatureValidator")

    def test_duplicate_names_rejected(self):
        with self.assertRaises(ImproperlyConfigured):
            load_configs([{"name": "pin-local"}, {"name": "pin-local"}])

    def test_unknown_keys_rejected(self):
        with self.assertRaises(ImproperlyConfigured):
            load_configs([{"name": "pin-local", "secret": "x"}])

    def test_missing_name_rejected(self):
        with self.assertRaises(ImproperlyConfigured):
            load_configs([{"signing_secret": "x"}])
