from django.test import TestCase

from accounts.models import User


class VaultOwnerRefTests(TestCase):
    def test_prefers_workos_user_id(self):
        user = User.objects.create_user(
            email="linked@example.com",
            password="pass1234",
            username="linked",
            workos_user_id="user_01HXYZ",
        )
        self.assertEqual(user.vault_owner_ref, "user_01HXYZ")

    def test_falls_back_to_primary_key(self):
        user = User.objects.create_user(
            email="local@example.com",
            password="pass1234",
            username="local",
        )
        self.assertEqual(user.vault_owner_ref, f"user:{user.pk}")
