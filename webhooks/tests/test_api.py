from unittest import mock

from django.contrib.auth import get_user_model
from django.test import override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from webhooks.models import WebhookDelivery, WebhookEndpoint, WebhookEvent
from webhooks.services import emit_webhook
from webhooks.vault import SecretNotFound, VaultError, get_vault


@override_settings(WEBHOOK_VAULT_BACKEND="webhooks.vault.LocalMemoryVault")
class WebhookEndpointAPITests(APITestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(email="creator@example.com", password="pass1234", username="creator")
        self.other_user = User.objects.create_user(email="other@example.com", password="pass1234", username="other")
        self.client.force_authenticate(user=self.user)
        self.list_url = reverse("webhook-endpoint-list")

        delay_patcher = mock.patch("webhooks.tasks.deliver_webhook_task.delay")
        self.mock_delay = delay_patcher.start()
        self.addCleanup(delay_patcher.stop)

    def _create(self, **overrides):
        payload = {"url": "https://hooks.example.com/in", "events": ["page.viewed", "link.clicked"]}
        payload.update(overrides)
        return self.client.post(self.list_url, payload, format="json")

    def test_create_returns_secret_once(self):
        response = self._create()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        secret = response.data["secret"]
        self.assertEqual(len(secret), 64)
        endpoint = WebhookEndpoint.objects.get(pk=response.data["id"])
        self.assertEqual(endpoint.user, self.user)
        self.assertEqual(endpoint.events, ["page.viewed", "link.clicked"])
        self.assertEqual(get_vault().read(endpoint.secret_ref), secret)

        detail = self.client.get(reverse("webhook-endpoint-detail", args=[endpoint.id]))
        listing = self.client.get(self.list_url)
        self.assertNotIn(secret, detail.content.decode())
        self.assertNotIn(secret, listing.content.decode())
        self.assertNotIn("secret_ref", detail.data["endpoint"])

    def test_raw_secret_is_never_persisted(self):
        secret = self._create().data["secret"]
        with self.captureOnCommitCallbacks(execute=True):
            emit_webhook(self.user.id, "page.viewed", {"page_id": "pg_1"})

        rows = list(WebhookEndpoint.objects.values()) + list(WebhookDelivery.objects.values())
        self.assertEqual(len(rows), 2)
        for row in rows:
            self.assertNotIn(secret, str(row))

    def test_create_rejects_invalid_input(self):
        cases = [
            {"url": "not-a-url"},
            {"url": "ftp://hooks.example.com/in"},
            {"events": []},
            {"events": ["page.deleted"]},
        ]
        for overrides in cases:
            with self.subTest(overrides=overrides):
                response = self._create(**overrides)
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(WebhookEndpoint.objects.exists())

    def test_create_deduplicates_events(self):
        response = self._create(events=["page.viewed", "page.viewed"])

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["events"], ["page.viewed"])

    def test_create_fails_cleanly_when_vault_unavailable(self):
        vault = mock.Mock()
        vault.store.side_effect = VaultError("vault down")
        with mock.patch("webhooks.services.registry.get_vault", return_value=vault):
            response = self._create()

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertFalse(WebhookEndpoint.objects.exists())

    def test_list_is_scoped_to_owner_and_lists_valid_events(self):
        self._create()
        WebhookEndpoint.objects.create(
            user=self.other_user,
            url="https://hooks.example.com/other",
            events=["page.viewed"],
            secret_ref="vault_other",
        )

        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data["endpoints"]), 1)
        self.assertEqual(response.data["valid_events"], WebhookEvent.values)

    def test_toggle_active_and_change_events(self):
        endpoint_id = self._create().data["id"]
        url = reverse("webhook-endpoint-detail", args=[endpoint_id])

        response = self.client.patch(url, {"is_active": False, "events": ["block.created"]}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)
        endpoint = WebhookEndpoint.objects.get(pk=endpoint_id)
        self.assertFalse(endpoint.is_active)
        self.assertEqual(endpoint.events, ["block.created"])

    def test_update_rejects_empty_events(self):
        endpoint_id = self._create().data["id"]
        url = reverse("webhook-endpoint-detail", args=[endpoint_id])

        response = self.client.patch(url, {"events": []}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(len(WebhookEndpoint.objects.get(pk=endpoint_id).events), 2)

    def test_delete_removes_vault_secret_and_deliveries(self):
        endpoint_id = self._create().data["id"]
        endpoint = WebhookEndpoint.objects.get(pk=endpoint_id)
        with self.captureOnCommitCallbacks(execute=True):
            emit_webhook(self.user.id, "page.viewed", {"page_id": "pg_1"})

        response = self.client.delete(reverse("webhook-endpoint-detail", args=[endpoint_id]))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(WebhookEndpoint.objects.exists())
        self.assertFalse(WebhookDelivery.objects.exists())
        with self.assertRaises(SecretNotFound):
            get_vault().read(endpoint.secret_ref)

    def test_delete_proceeds_when_vault_delete_fails(self):
        endpoint = WebhookEndpoint.objects.create(
            user=self.user,
            url="https://hooks.example.com/orphan",
            events=["page.viewed"],
            secret_ref="vault_unknown",
        )

        with self.assertLogs("webhooks", level="ERROR"):
            response = self.client.delete(reverse("webhook-endpoint-detail", args=[endpoint.id]))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(WebhookEndpoint.objects.exists())

    def test_detail_includes_recent_deliveries(self):
        endpoint_id = self._create().data["id"]
        with self.captureOnCommitCallbacks(execute=True):
            emit_webhook(self.user.id, "page.viewed", {"page_id": "pg_1"})
            emit_webhook(self.user.id, "link.clicked", {"link_id": "lnk_1"})

        response = self.client.get(reverse("webhook-endpoint-detail", args=[endpoint_id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data["deliveries"]), 2)
        delivery = response.data["deliveries"][0]
        self.assertEqual(delivery["state"], "pending")
        self.assertEqual(delivery["attempts"], 0)
        self.assertIn("data", delivery["payload"])

    def test_deliveries_action_honours_limit(self):
        endpoint_id = self._create().data["id"]
        with self.captureOnCommitCallbacks(execute=True):
            for _ in range(3):
                emit_webhook(self.user.id, "page.viewed", {"page_id": "pg_1"})

        url = reverse("webhook-endpoint-deliveries", args=[endpoint_id])
        self.assertEqual(len(self.client.get(url, {"limit": 2}).data), 2)
        self.assertEqual(len(self.client.get(url).data), 3)
        self.assertEqual(self.client.get(url, {"limit": "many"}).status_code, status.HTTP_400_BAD_REQUEST)

    def test_foreign_endpoint_is_not_found(self):
        endpoint = WebhookEndpoint.objects.create(
            user=self.other_user,
            url="https://hooks.example.com/other",
            events=["page.viewed"],
            secret_ref="vault_other",
        )
        url = reverse("webhook-endpoint-detail", args=[endpoint.id])

        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(WebhookEndpoint.objects.filter(pk=endpoint.pk).exists())

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)

        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


@override_settings(WEBHOOK_VAULT_BACKEND="webhooks.vault.LocalMemoryVault")
class WebhookDeliveryAPITests(APITestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(email="creator@example.com", password="pass1234", username="creator")
        self.other_user = User.objects.create_user(email="other@example.com", password="pass1234", username="other")
        self.client.force_authenticate(user=self.user)
        self.endpoint = WebhookEndpoint.objects.create(
            user=self.user,
            url="https://hooks.example.com/in",
            events=["page.viewed"],
            secret_ref="vault_in",
        )
        self.failed = WebhookDelivery.objects.create(
            endpoint=self.endpoint,
            event="page.viewed",
            payload_json='{"event":"page.viewed","timestamp":"2026-10-18T09:00:00.000Z","data":{"page_id":"pg_1"}}',
            status_code=500,
            attempts=3,
            response="boom",
        )

        delay_patcher = mock.patch("webhooks.tasks.deliver_webhook_task.delay")
        self.mock_delay = delay_patcher.start()
        self.addCleanup(delay_patcher.stop)

    def test_retry_failed_delivery(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(reverse("webhook-delivery-retry", args=[self.failed.id]))

        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)
        self.mock_delay.assert_called_once_with(str(self.failed.id))
        original_payload = self.failed.payload_json
        self.failed.refresh_from_db()
        self.assertEqual(self.failed.attempts, 0)
        self.assertIsNone(self.failed.status_code)
        self.assertEqual(self.failed.response, "")
        self.assertEqual(self.failed.payload_json, original_payload)

    def test_retry_rejects_delivered_and_pending(self):
        delivered = WebhookDelivery.objects.create(
            endpoint=self.endpoint,
            event="page.viewed",
            payload_json="{}",
            status_code=200,
            attempts=1,
            delivered_at=timezone.now(),
        )
        pending = WebhookDelivery.objects.create(endpoint=self.endpoint, event="page.viewed", payload_json="{}")

        for delivery in (delivered, pending):
            with self.subTest(state=delivery.state):
                response = self.client.post(reverse("webhook-delivery-retry", args=[delivery.id]))
                self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.mock_delay.assert_not_called()

    def test_retry_foreign_delivery_is_not_found(self):
        foreign_endpoint = WebhookEndpoint.objects.create(
            user=self.other_user,
            url="https://hooks.example.com/other",
            events=["page.viewed"],
            secret_ref="vault_other",
        )
        foreign = WebhookDelivery.objects.create(
            endpoint=foreign_endpoint, event="page.viewed", payload_json="{}", attempts=3
        )

        response = self.client.post(reverse("webhook-delivery-retry", args=[foreign.id]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_filters_by_endpoint(self):
        url = reverse("webhook-delivery-list")

        self.assertEqual(len(self.client.get(url, {"endpoint": str(self.endpoint.id)}).data), 1)
        self.assertEqual(len(self.client.get(url, {"endpoint": "not-a-uuid"}).data), 0)
        detail = self.client.get(reverse("webhook-delivery-detail", args=[self.failed.id]))
        self.assertEqual(detail.data["state"], "failed")
        self.assertEqual(detail.data["payload"]["data"], {"page_id": "pg_1"})
