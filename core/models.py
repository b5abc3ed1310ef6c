"""
Data models for the 3D Print Marketplace.
"""

from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from .validators import validate_materials, validate_price_per_gram


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Users log in with their email address. Whether someone may bid on jobs
    is decided by printer ownership, not by ``user_type``; the type only
    records which side of the marketplace the account signed up for.

    Additional fields:
    - email: Required, unique email address (login identifier)
    - user_type: Either 'customer' or 'printer_owner'
    - created_at: Account creation timestamp
    - updated_at: Last update timestamp
    """

    USER_TYPE_CHOICES = [
        ('customer', 'Customer'),
        ('printer_owner', 'Printer Owner'),
    ]

    email = models.EmailField(
        _('email address'),
        unique=True,
        blank=False,
        null=False,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Enter a valid email address.')
    )

    user_type = models.CharField(
        _('user type'),
        max_length=20,
        choices=USER_TYPE_CHOICES,
        default='customer',
        help_text=_('Which side of the marketplace the account signed up for.')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the account was created.')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the account was last updated.')
    )

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user_type'], name='core_user_type_idx'),
        ]

    def __str__(self):
        """Return email as string representation."""
        return self.email or self.username

    def is_printer_owner(self):
        """
        Check if user signed up as a printer owner.

        Returns:
            bool: True if user_type is 'printer_owner', False otherwise
        """
        return self.user_type == 'printer_owner'

    def save(self, *args, **kwargs):
        """Normalize email to lowercase before saving."""
        if self.email:
            self.email = self.email.lower()
        super().save(*args, **kwargs)


class Printer(models.Model):
    """
    A registered 3D printer and its selling parameters.

    Fields:
    - owner: User who operates the printer
    - name: Display name
    - location: Declared location string (coarse, free text)
    - materials: Non-empty list of supported material identifiers
    - price_per_gram: Selling price per gram of printed material
    - status: available, busy or unavailable
    - rating: Average rating from 0.00 to 5.00
    - completed_jobs: Number of jobs this printer has completed
    - description: Free-text description
    """

    STATUS_AVAILABLE = 'available'
    STATUS_BUSY = 'busy'
    STATUS_UNAVAILABLE = 'unavailable'

    STATUS_CHOICES = [
        (STATUS_AVAILABLE, 'Available'),
        (STATUS_BUSY, 'Busy'),
        (STATUS_UNAVAILABLE, 'Unavailable'),
    ]

    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='printers',
        help_text=_('User who owns and operates this printer')
    )

    name = models.CharField(
        _('name'),
        max_length=255,
        help_text=_('Display name of the printer')
    )

    location = models.CharField(
        _('location'),
        max_length=255,
        help_text=_('Declared location, e.g. "Austin, TX"')
    )

    materials = models.JSONField(
        _('materials'),
        default=list,
        validators=[validate_materials],
        help_text=_('Supported materials, e.g. ["PLA", "PETG"]')
    )

    price_per_gram = models.DecimalField(
        _('price per gram'),
        max_digits=10,
        decimal_places=4,
        validators=[validate_price_per_gram],
        help_text=_('Price per gram in USD')
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_AVAILABLE,
        help_text=_('Whether the printer currently accepts work')
    )

    rating = models.DecimalField(
        _('rating'),
        max_digits=3,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[
            MinValueValidator(Decimal('0.00'), message=_('Rating cannot be negative.')),
            MaxValueValidator(Decimal('5.00'), message=_('Rating cannot exceed 5.00.'))
        ],
        help_text=_('Average rating from 0.00 to 5.00')
    )

    completed_jobs = models.PositiveIntegerField(
        _('completed jobs'),
        default=0,
        help_text=_('Number of jobs completed on this printer')
    )

    description = models.TextField(
        _('description'),
        blank=True,
        default='',
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
    )

    class Meta:
        verbose_name = _('printer')
        verbose_name_plural = _('printers')
        ordering = ['-rating', 'id']
        indexes = [
            models.Index(fields=['owner'], name='core_printer_owner_idx'),
            models.Index(fields=['status'], name='core_printer_status_idx'),
            models.Index(fields=['rating'], name='core_printer_rating_idx'),
            models.Index(fields=['price_per_gram'], name='core_printer_price_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.location})"

    def supports_material(self, material):
        """Return True if ``material`` is in this printer's material set."""
        return material in (self.materials or [])

    def is_available(self):
        return self.status == self.STATUS_AVAILABLE

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - Name and location are not empty
        - Materials set is never empty
        - Price per gram is greater than 0

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if not self.name or not self.name.strip():
            raise ValidationError({
                'name': _('Printer name cannot be empty.')
            })

        if not self.location or not self.location.strip():
            raise ValidationError({
                'location': _('Location cannot be empty.')
            })

        if not self.materials:
            raise ValidationError({
                'materials': _('A printer must support at least one material.')
            })

    def save(self, *args, **kwargs):
        """Run full validation before saving."""
        self.full_clean()
        super().save(*args, **kwargs)


class Job(models.Model):
    """
    A customer's request to have a model printed.

    A job has at most one assigned printer. Assignment and the move to
    ``matched`` always happen together in one conditional update, see
    ``core.directory.JobStore.claim``.
    """

    STATUS_PENDING = 'pending'
    STATUS_MATCHED = 'matched'
    STATUS_PRINTING = 'printing'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_MATCHED, 'Matched'),
        (STATUS_PRINTING, 'Printing'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    # Valid state transitions for the job lifecycle
    VALID_TRANSITIONS = {
        STATUS_PENDING: [STATUS_MATCHED, STATUS_CANCELLED],
        STATUS_MATCHED: [STATUS_PRINTING, STATUS_COMPLETED, STATUS_CANCELLED],
        STATUS_PRINTING: [STATUS_COMPLETED, STATUS_CANCELLED],
        STATUS_COMPLETED: [],  # Terminal state
        STATUS_CANCELLED: [],  # Terminal state
    }

    PAYMENT_STATUS_CHOICES = [
        ('unpaid', 'Unpaid'),
        ('paid', 'Paid'),
    ]

    customer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='jobs',
        help_text=_('Customer who requested the print')
    )

    printer = models.ForeignKey(
        Printer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='jobs',
        help_text=_('Printer assigned to this job, if any')
    )

    file_name = models.CharField(
        _('file name'),
        max_length=255,
        blank=True,
        default='',
    )

    stl_file_url = models.CharField(
        _('STL file URL'),
        max_length=255,
        blank=True,
        default='',
    )

    material = models.CharField(
        _('material'),
        max_length=50,
        blank=True,
        default='',
        help_text=_('Required material; blank means any material')
    )

    estimated_weight = models.DecimalField(
        _('estimated weight'),
        max_digits=8,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text=_('Estimated weight in grams')
    )

    estimated_cost = models.DecimalField(
        _('estimated cost'),
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )

    final_cost = models.DecimalField(
        _('final cost'),
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )

    notes = models.TextField(
        _('notes'),
        blank=True,
        default='',
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
    )

    payment_status = models.CharField(
        _('payment status'),
        max_length=20,
        choices=PAYMENT_STATUS_CHOICES,
        default='unpaid',
    )

    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
    )

    class Meta:
        verbose_name = _('job')
        verbose_name_plural = _('jobs')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['customer'], name='core_job_customer_idx'),
            models.Index(fields=['printer'], name='core_job_printer_idx'),
            models.Index(fields=['status'], name='core_job_status_idx'),
        ]

    def __str__(self):
        return f"Job #{self.pk} ({self.file_name or 'untitled'})"

    def is_assigned(self):
        return self.printer_id is not None

    def can_transition_to(self, new_status):
        """
        Check if transition to new status is valid.

        Args:
            new_status: Target job status

        Returns:
            bool: True if transition is valid, False otherwise
        """
        valid_next_statuses = self.VALID_TRANSITIONS.get(self.status, [])
        return new_status in valid_next_statuses or new_status == self.status

    def clean(self):
        """
        Validate model fields and status transitions.

        Ensures:
        - A matched, printing or completed job has an assigned printer
        - Status transitions follow the lifecycle (only on update)

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.status in (self.STATUS_MATCHED, self.STATUS_PRINTING, self.STATUS_COMPLETED):
            if self.printer_id is None:
                raise ValidationError({
                    'printer': _('A job in this status must have an assigned printer.')
                })

        if self.pk is not None:
            old_status = (
                Job.objects.filter(pk=self.pk).values_list('status', flat=True).first()
            )
            if old_status is not None and old_status != self.status:
                if self.status not in self.VALID_TRANSITIONS.get(old_status, []):
                    raise ValidationError({
                        'status': _(
                            f'Invalid job status transition from {old_status} to {self.status}.'
                        )
                    })

    def save(self, *args, **kwargs):
        """Run full validation before saving."""
        self.full_clean()
        super().save(*args, **kwargs)


class Bid(models.Model):
    """
    A printer owner's competing offer to fulfil an open job.

    Fields:
    - job: Job being bid on
    - printer: Printer that would do the work (owned by bidder)
    - bidder: User who submitted the bid
    - amount: Total price offered
    - estimated_completion_days: Promised lead time in days
    - notes: Optional message to the customer
    - status: pending, accepted, rejected, withdrawn or expired
    - resolved_at: When the bid left ``pending``

    A bid leaves ``pending`` exactly once and never returns to it.
    """

    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_REJECTED = 'rejected'
    STATUS_WITHDRAWN = 'withdrawn'
    STATUS_EXPIRED = 'expired'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_WITHDRAWN, 'Withdrawn'),
        (STATUS_EXPIRED, 'Expired'),
    ]

    VALID_TRANSITIONS = {
        STATUS_PENDING: [STATUS_ACCEPTED, STATUS_REJECTED, STATUS_WITHDRAWN, STATUS_EXPIRED],
        STATUS_ACCEPTED: [],
        STATUS_REJECTED: [],
        STATUS_WITHDRAWN: [],
        STATUS_EXPIRED: [],
    }

    job = models.ForeignKey(
        Job,
        on_delete=models.CASCADE,
        related_name='bids',
    )

    printer = models.ForeignKey(
        Printer,
        on_delete=models.CASCADE,
        related_name='bids',
    )

    bidder = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='bids',
        help_text=_('User who submitted the bid (the printer owner)')
    )

    amount = models.DecimalField(
        _('amount'),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'), message=_('Bid amount must be greater than 0.'))],
        help_text=_('Total price offered in USD')
    )

    estimated_completion_days = models.PositiveIntegerField(
        _('estimated completion days'),
        validators=[MinValueValidator(1, message=_('Estimated completion must be at least 1 day.'))],
    )

    notes = models.CharField(
        _('notes'),
        max_length=500,
        blank=True,
        default='',
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
    )

    resolved_at = models.DateTimeField(
        _('resolved at'),
        null=True,
        blank=True,
    )

    class Meta:
        verbose_name = _('bid')
        verbose_name_plural = _('bids')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['job', 'status'], name='core_bid_job_status_idx'),
            models.Index(fields=['printer'], name='core_bid_printer_idx'),
            models.Index(fields=['bidder'], name='core_bid_bidder_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['job', 'printer'],
                name='unique_pending_bid_per_printer_job',
                condition=models.Q(status='pending')
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name='bid_amount_positive'
            ),
            models.CheckConstraint(
                condition=models.Q(estimated_completion_days__gt=0),
                name='bid_completion_days_positive'
            ),
        ]

    def __str__(self):
        return f"Bid #{self.pk} on job {self.job_id}: ${self.amount} ({self.status})"

    def is_pending(self):
        return self.status == self.STATUS_PENDING

    def clean(self):
        """
        Validate bidder ownership and status transitions.

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.printer_id and self.bidder_id and self.printer.owner_id != self.bidder_id:
            raise ValidationError({
                'printer': _('Bids can only be placed with your own printers.')
            })

        if self.pk is not None:
            old_status = (
                Bid.objects.filter(pk=self.pk).values_list('status', flat=True).first()
            )
            if old_status is not None and old_status != self.status:
                if self.status not in self.VALID_TRANSITIONS.get(old_status, []):
                    raise ValidationError({
                        'status': _(
                            f'Invalid bid status transition from {old_status} to {self.status}.'
                        )
                    })

    def save(self, *args, **kwargs):
        """
        Validate fields and transitions before saving.

        Note: database constraints are left to the database so that a
        concurrent duplicate pending bid surfaces as IntegrityError.
        """
        self.full_clean(validate_unique=False, validate_constraints=False)
        super().save(*args, **kwargs)


class Notification(models.Model):
    """
    A message delivered to one user, e.g. "New bid received".
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='notifications',
    )

    type = models.CharField(_('type'), max_length=50)

    title = models.CharField(_('title'), max_length=255)

    message = models.TextField(_('message'))

    data = models.JSONField(_('data'), default=dict, blank=True)

    read = models.BooleanField(_('read'), default=False)

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
    )

    class Meta:
        verbose_name = _('notification')
        verbose_name_plural = _('notifications')
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'read'], name='core_notif_user_read_idx'),
        ]

    def __str__(self):
        return f"{self.type} for {self.user_id}: {self.title}"
