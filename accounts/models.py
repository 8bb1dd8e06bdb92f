from django.contrib.auth.models import AbstractUser
from django.db import models


# -----------------------------
# MODELS - accounts/models.py
# -----------------------------


class User(AbstractUser):
	email = models.EmailField(unique=True)
	workos_user_id = models.CharField(max_length=255, blank=True, db_index=True)
	USERNAME_FIELD = 'email'
	REQUIRED_FIELDS = ['username']

	@property
	def vault_owner_ref(self) -> str:
		"""Context handed to the secret vault when storing this user's secrets."""
		return self.workos_user_id or f"user:{self.pk}"
