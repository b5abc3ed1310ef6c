"""
Serializers for authentication, printers, jobs, bids, matches and
notifications.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.hashers import make_password
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from rest_framework import serializers

from .models import Bid, Job, Notification, Printer
from .services import marketplace_setting
from .validators import validate_materials

User = get_user_model()


class UserRegistrationSerializer(serializers.ModelSerializer):
    """
    Serializer for user registration with comprehensive validation.

    Fields:
    - email: Required, unique, valid email format
    - password: Required, must meet strength requirements
    - confirm_password: Required, must match password
    - user_type: 'customer' (default) or 'printer_owner'
    """

    password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )
    confirm_password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )

    class Meta:
        model = User
        fields = ['id', 'email', 'password', 'confirm_password', 'first_name',
                  'last_name', 'user_type', 'created_at']
        read_only_fields = ['id', 'created_at']
        extra_kwargs = {
            'email': {'required': True},
        }

    def validate_email(self, value):
        """
        Validate email uniqueness, case-insensitively.
        """
        value = value.strip().lower()

        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError(
                "A user with that email already exists."
            )

        return value

    def validate_password(self, value):
        """
        Validate password strength using Django's password validators.
        """
        try:
            validate_password(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))

        return value

    def validate(self, attrs):
        if attrs.get('password') != attrs.get('confirm_password'):
            raise serializers.ValidationError({
                'confirm_password': 'Password confirmation does not match.'
            })

        return attrs

    def create(self, validated_data):
        """
        Create user with hashed password.

        The username is derived from the email's local part and made unique
        with a numeric suffix; login always uses the email.
        """
        validated_data.pop('confirm_password', None)
        validated_data['password'] = make_password(validated_data.pop('password'))

        base = validated_data['email'].split('@')[0][:30] or 'user'
        username = base
        suffix = 1
        while User.objects.filter(username=username).exists():
            suffix += 1
            username = f"{base}{suffix}"
        validated_data['username'] = username

        with transaction.atomic():
            user = User.objects.create(**validated_data)

        return user


class UserPublicSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'email', 'first_name', 'last_name', 'user_type']
        read_only_fields = fields


# ============================================================================
# Printer Serializers
# ============================================================================

class PrinterSerializer(serializers.ModelSerializer):
    """
    Public printer profile, also used to register a printer.

    The owner, rating and completed job count are never writable; the owner
    is taken from the authenticated user.
    """

    owner_id = serializers.IntegerField(read_only=True)
    materials = serializers.ListField(
        child=serializers.CharField(max_length=50),
        allow_empty=False,
    )

    class Meta:
        model = Printer
        fields = [
            'id',
            'owner_id',
            'name',
            'location',
            'materials',
            'price_per_gram',
            'status',
            'rating',
            'completed_jobs',
            'description',
            'created_at',
        ]
        read_only_fields = ['id', 'owner_id', 'rating', 'completed_jobs', 'created_at']

    def validate_name(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Printer name cannot be empty or whitespace only.")
        return value.strip()

    def validate_location(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Location cannot be empty or whitespace only.")
        return value.strip()

    def validate_materials(self, value):
        value = [material.strip() for material in value]
        try:
            validate_materials(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))
        return value

    def validate_price_per_gram(self, value):
        if value <= 0:
            raise serializers.ValidationError("Price per gram must be greater than 0.")
        return value

    def create(self, validated_data):
        request = self.context.get('request')
        validated_data['owner'] = request.user
        return Printer.objects.create(**validated_data)


class PrinterSearchSerializer(serializers.Serializer):
    """
    Query parameters for printer search.

    ``materials`` is a comma separated list; a printer matches if it
    supports any of them.
    """

    materials = serializers.CharField(required=False, allow_blank=True)
    location = serializers.CharField(required=False, allow_blank=True)
    min_price = serializers.DecimalField(max_digits=10, decimal_places=4, required=False, min_value=Decimal('0'))
    max_price = serializers.DecimalField(max_digits=10, decimal_places=4, required=False, min_value=Decimal('0'))
    status = serializers.ChoiceField(choices=Printer.STATUS_CHOICES, required=False)

    def validate_materials(self, value):
        return [material.strip() for material in value.split(',') if material.strip()]

    def validate(self, attrs):
        min_price = attrs.get('min_price')
        max_price = attrs.get('max_price')
        if min_price is not None and max_price is not None and min_price > max_price:
            raise serializers.ValidationError({
                'min_price': 'Minimum price cannot exceed maximum price.'
            })
        return attrs


# ============================================================================
# Job Serializers
# ============================================================================

class JobSerializer(serializers.ModelSerializer):
    """
    Job representation, also used to create a job.

    The customer comes from the authenticated user. Status, printer and
    final cost only change through bidding and the job lifecycle.
    """

    customer_id = serializers.IntegerField(read_only=True)
    printer_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Job
        fields = [
            'id',
            'customer_id',
            'printer_id',
            'file_name',
            'stl_file_url',
            'material',
            'estimated_weight',
            'estimated_cost',
            'final_cost',
            'notes',
            'status',
            'payment_status',
            'started_at',
            'completed_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'id', 'customer_id', 'printer_id', 'final_cost', 'status', 'payment_status',
            'started_at', 'completed_at', 'created_at', 'updated_at',
        ]

    def validate_material(self, value):
        return value.strip() if value else ''

    def validate_estimated_weight(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError("Estimated weight must be greater than 0.")
        return value

    def create(self, validated_data):
        request = self.context.get('request')
        validated_data['customer'] = request.user
        return Job.objects.create(**validated_data)


class JobStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[
        Job.STATUS_PRINTING,
        Job.STATUS_COMPLETED,
        Job.STATUS_CANCELLED,
    ])


class JobAssignSerializer(serializers.Serializer):
    printer_id = serializers.IntegerField(min_value=1)


# ============================================================================
# Bid Serializers
# ============================================================================

class BidCreateSerializer(serializers.Serializer):
    """
    Validates a bid before it reaches the ledger.

    Fields:
    - printer_id: One of the bidder's own printers
    - amount: Total price, greater than 0
    - estimated_completion_days: Whole days, at least 1
    - notes: Optional, limited to BID_NOTES_MAX_LENGTH characters
    """

    printer_id = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    estimated_completion_days = serializers.IntegerField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Bid amount must be greater than 0.")
        return value

    def validate_estimated_completion_days(self, value):
        if value <= 0:
            raise serializers.ValidationError("Estimated completion days must be at least 1.")
        return value

    def validate_notes(self, value):
        max_length = marketplace_setting('BID_NOTES_MAX_LENGTH')
        if len(value) > max_length:
            raise serializers.ValidationError(
                f"Bid notes cannot exceed {max_length} characters. Current length: {len(value)}."
            )
        return value


class BidSerializer(serializers.ModelSerializer):
    job_id = serializers.IntegerField(read_only=True)
    printer_id = serializers.IntegerField(read_only=True)
    bidder_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Bid
        fields = [
            'id',
            'job_id',
            'printer_id',
            'bidder_id',
            'amount',
            'estimated_completion_days',
            'notes',
            'status',
            'created_at',
            'updated_at',
            'resolved_at',
        ]
        read_only_fields = fields


class BidWithPrinterSerializer(BidSerializer):
    """Bid with the public profile of the printer that placed it."""

    printer = PrinterSerializer(read_only=True)

    class Meta(BidSerializer.Meta):
        fields = BidSerializer.Meta.fields + ['printer']
        read_only_fields = fields


class BidJobSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Job
        fields = ['id', 'file_name', 'material', 'estimated_weight', 'status']
        read_only_fields = fields


class BidWithJobSerializer(BidSerializer):
    """Bid with a summary of the job it was placed on."""

    job = BidJobSummarySerializer(read_only=True)

    class Meta(BidSerializer.Meta):
        fields = BidSerializer.Meta.fields + ['job']
        read_only_fields = fields


# ============================================================================
# Match Serializers
# ============================================================================

class MatchQuerySerializer(serializers.Serializer):
    """
    Query parameters for job matches.

    Any of material, location, max_price or min_rating switches the lookup
    to criteria matching.
    """

    limit = serializers.IntegerField(required=False, min_value=1)
    material = serializers.CharField(required=False, allow_blank=True)
    location = serializers.CharField(required=False, allow_blank=True)
    max_price = serializers.DecimalField(
        max_digits=10, decimal_places=4, required=False, min_value=Decimal('0.0001')
    )
    min_rating = serializers.DecimalField(
        max_digits=3, decimal_places=2, required=False,
        min_value=Decimal('0'), max_value=Decimal('5')
    )

    def validate_limit(self, value):
        max_limit = marketplace_setting('MAX_MATCH_LIMIT')
        if value > max_limit:
            raise serializers.ValidationError(f"Limit cannot exceed {max_limit}.")
        return value

    def has_criteria(self):
        data = self.validated_data
        return bool(
            data.get('material') or data.get('location')
            or data.get('max_price') is not None or data.get('min_rating') is not None
        )


class MatchScoreSerializer(serializers.Serializer):
    printer = PrinterSerializer(read_only=True)
    score = serializers.FloatField(read_only=True)
    reasons = serializers.ListField(child=serializers.CharField(), read_only=True)
    estimated_cost = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)


# ============================================================================
# Notification Serializers
# ============================================================================

class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ['id', 'type', 'title', 'message', 'data', 'read', 'created_at']
        read_only_fields = fields
