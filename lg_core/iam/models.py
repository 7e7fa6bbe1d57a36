# lg_core/iam/models.py
from django.conf import settings
from django.db import models
from django.db.models import Q

from lg_core.clinics.models import Clinic
from lg_core.common.models import UUIDModel


class DoctorProfile(UUIDModel):
    """
    Principal-facing tenant membership row.
    One per (principal, clinic); a principal may also own one unlinked row
    (clinic is NULL) where clinic-level fields are denormalized onto it.

    Portal access is granted iff ANY row for the principal has
    access_control = True.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="doctor_profiles",
    )
    clinic = models.ForeignKey(
        Clinic,
        on_delete=models.PROTECT,
        related_name="doctor_profiles",
        null=True,
        blank=True,
    )

    # access gate
    access_control = models.BooleanField(default=False, db_index=True)
    access_changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )
    access_changed_at = models.DateTimeField(null=True, blank=True)

    is_staff = models.BooleanField(default=False)
    is_manager = models.BooleanField(default=False)
    is_admin = models.BooleanField(default=False)

    # self-service fields
    first_name = models.CharField(max_length=128, blank=True, default="")
    last_name = models.CharField(max_length=128, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    specialty = models.CharField(max_length=128, blank=True, default="")
    website = models.URLField(blank=True, default="")
    avatar_url = models.URLField(blank=True, default="")

    # denormalized clinic fields (used when clinic is NULL)
    clinic_name = models.CharField(max_length=255, blank=True, default="")
    location = models.CharField(max_length=255, blank=True, default="")

    # telephony integration (forwarded to automation)
    twilio_account_sid = models.CharField(max_length=64, blank=True, default="")
    twilio_auth_token = models.CharField(max_length=128, blank=True, default="")
    twilio_phone_number = models.CharField(max_length=32, blank=True, default="")

    class Meta:
        db_table = "iam_doctor_profile"
        constraints = [
            models.UniqueConstraint(
                fields=["user", "clinic"],
                condition=Q(clinic__isnull=False),
                name="uq_doctor_profile_user_clinic",
            ),
            models.UniqueConstraint(
                fields=["user"],
                condition=Q(clinic__isnull=True),
                name="uq_doctor_profile_user_unlinked",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "access_control"]),
        ]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def display_clinic_name(self) -> str:
        if self.clinic_id and self.clinic:
            return self.clinic.name
        return self.clinic_name

    def __str__(self) -> str:
        return f"{self.full_name or self.email} ({self.display_clinic_name or 'unlinked'})"


class MemberRole(models.TextChoices):
    OWNER = "owner", "Owner"
    STAFF = "staff", "Staff"
    PHYSICIAN = "physician", "Physician"


class MembershipStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    INACTIVE = "inactive", "Inactive"
    REVOKED = "revoked", "Revoked"


class ClinicMembership(UUIDModel):
    """
    Invitation-based relationship between an email address and a clinic.
    Exists before the invitee ever authenticates; `user` is linked on accept.
    """

    clinic = models.ForeignKey(Clinic, on_delete=models.PROTECT, related_name="memberships")

    email = models.EmailField()
    first_name = models.CharField(max_length=128, blank=True, default="")
    last_name = models.CharField(max_length=128, blank=True, default="")

    role = models.CharField(max_length=16, choices=MemberRole.choices, default=MemberRole.STAFF, db_index=True)
    # {"leads": bool, "content": bool, "payments": bool, "team": bool}
    permissions = models.JSONField(default=dict, blank=True)
    location_ids = models.JSONField(default=list, blank=True)

    status = models.CharField(
        max_length=16,
        choices=MembershipStatus.choices,
        default=MembershipStatus.PENDING,
        db_index=True,
    )

    invitation_token = models.CharField(max_length=64, unique=True, null=True, blank=True)
    token_expires_at = models.DateTimeField(null=True, blank=True)
    invited_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="clinic_memberships",
        null=True,
        blank=True,
    )
    doctor_profile = models.ForeignKey(
        DoctorProfile,
        on_delete=models.SET_NULL,
        related_name="memberships",
        null=True,
        blank=True,
    )
    accepted_at = models.DateTimeField(null=True, blank=True)
    suspended_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "iam_clinic_membership"
        constraints = [
            # one live membership per (clinic, email); revoked rows free the slot
            models.UniqueConstraint(
                fields=["clinic", "email"],
                condition=~Q(status="revoked"),
                name="uq_membership_clinic_email_live",
            ),
        ]
        indexes = [
            models.Index(fields=["clinic", "status"]),
            models.Index(fields=["user", "status"]),
        ]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        return f"{self.email} [{self.role}/{self.status}]"
