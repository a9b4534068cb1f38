from django.contrib.auth.models import AbstractUser
from django.core.validators import RegexValidator
from django.db import models


class User(AbstractUser):
    """Back-office user. Every mutating dispatch operation is attributed to one."""

    class Role(models.TextChoices):
        DISPATCHER = "dispatcher", "Dispatcher"
        FLEET_MANAGER = "fleet_manager", "Fleet Manager"
        ACCOUNTS = "accounts", "Accounts"
        ADMIN = "admin", "Admin"

    role = models.CharField(
        choices=Role.choices,
        default=Role.DISPATCHER,
        max_length=20,
        help_text="Decides which dispatch screens and actions are offered",
    )
    email = models.EmailField(unique=True)
    phone_regex = RegexValidator(
        regex=r"^\+?[0-9\-\(\)\s]{7,20}$",
        message="Enter a valid phone number.",
    )
    phone = models.CharField(
        validators=[phone_regex], max_length=20, blank=True, default=""
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.get_full_name() or self.username

    @property
    def display_name(self):
        return self.get_full_name() or self.username
