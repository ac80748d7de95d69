from django.contrib.auth.models import User
from django.db import models


class Household(models.Model):
    name = models.CharField(max_length=120)
    slug = models.SlugField(max_length=140, unique=True)
    currency_code = models.CharField(max_length=3, default="BRL")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class HouseholdMembership(models.Model):
    class Role(models.TextChoices):
        OWNER = "owner", "Owner"
        MEMBER = "member", "Member"

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="memberships")
    household = models.ForeignKey(Household, on_delete=models.CASCADE, related_name="memberships")
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.MEMBER)
    is_primary = models.BooleanField(default=False)
    phone_number = models.CharField(max_length=20, blank=True)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["household", "user__username"]
        constraints = [
            models.UniqueConstraint(fields=["user", "household"], name="unique_household_membership")
        ]

    def __str__(self):
        return f"{self.user} @ {self.household}"

    @property
    def is_owner(self):
        return self.role == self.Role.OWNER

    @property
    def display_name(self):
        return self.user.get_full_name() or self.user.get_username()


class SystemLog(models.Model):
    LEVEL_ERROR = "ERRO"
    LEVEL_WARNING = "AVISO"
    LEVEL_INFO = "INFO"
    SOURCE_BACKEND = "BACKEND"
    SOURCE_FRONTEND = "FRONTEND"

    LEVEL_CHOICES = [
        (LEVEL_ERROR, "Erro"),
        (LEVEL_WARNING, "Aviso"),
        (LEVEL_INFO, "Info"),
    ]

    SOURCE_CHOICES = [
        (SOURCE_BACKEND, "Backend"),
        (SOURCE_FRONTEND, "Frontend"),
    ]

    level = models.CharField(max_length=10, choices=LEVEL_CHOICES, default=LEVEL_ERROR)
    source = models.CharField(max_length=10, choices=SOURCE_CHOICES)
    message = models.CharField(max_length=255)
    details = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    is_resolved = models.BooleanField(default=False)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.get_level_display()} - {self.message}"
