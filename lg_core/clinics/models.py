# lg_core/clinics/models.py
from django.conf import settings
from django.db import models

from lg_core.common.models import UUIDModel


class Clinic(UUIDModel):
    """
    Tenant root.
    Owned by the principal that created it; never hard-deleted, access is
    withdrawn through membership/access flags instead.
    """

    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=64, unique=True, null=True, blank=True)

    # contact / address
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    website = models.URLField(blank=True, default="")
    address = models.CharField(max_length=255, blank=True, default="")
    city = models.CharField(max_length=128, blank=True, default="")
    state = models.CharField(max_length=128, blank=True, default="")
    zip_code = models.CharField(max_length=16, blank=True, default="")
    country = models.CharField(max_length=64, blank=True, default="")
    description = models.TextField(blank=True, default="")

    # branding
    primary_color = models.CharField(max_length=16, blank=True, default="")
    secondary_color = models.CharField(max_length=16, blank=True, default="")
    font_family = models.CharField(max_length=64, blank=True, default="")
    logo_url = models.URLField(blank=True, default="")
    avatar_url = models.URLField(blank=True, default="")
    tagline = models.CharField(max_length=255, blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="created_clinics",
    )

    class Meta:
        db_table = "clinics_clinic"
        indexes = [
            models.Index(fields=["created_by"]),
        ]

    def __str__(self) -> str:
        return self.name


class DegreeType(models.TextChoices):
    MD = "MD", "MD"
    DO = "DO", "DO"


class Physician(UUIDModel):
    """
    Public-facing physician profile used on patient pages.
    Never authenticates; distinct from DoctorProfile.
    """
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="physicians")

    first_name = models.CharField(max_length=128)
    last_name = models.CharField(max_length=128)
    degree_type = models.CharField(max_length=8, choices=DegreeType.choices, default=DegreeType.MD)
    credentials = models.JSONField(default=list, blank=True)

    email = models.EmailField(blank=True, default="")
    mobile = models.CharField(max_length=32, blank=True, default="")
    bio = models.TextField(blank=True, default="")
    short_bio = models.CharField(max_length=500, blank=True, default="")
    headshot_url = models.URLField(blank=True, default="")
    full_shot_url = models.URLField(blank=True, default="")

    is_active = models.BooleanField(default=True, db_index=True)
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "clinics_physician"
        ordering = ["display_order", "last_name"]
        indexes = [
            models.Index(fields=["clinic", "is_active"]),
        ]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        return f"{self.full_name}, {self.degree_type}"
