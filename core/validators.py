"""
Custom validators for printer and bid fields.
"""

from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError


MAX_MATERIAL_LENGTH = 50


def validate_materials(value):
    """
    Validate a printer's material set.

    The set must be a non-empty list of non-blank strings, each at most
    50 characters, without duplicates.

    Args:
        value: List of material identifiers

    Raises:
        ValidationError: If the material list is invalid
    """
    if not isinstance(value, (list, tuple)):
        raise ValidationError(
            'Materials must be a list of material names.',
            code='invalid_materials_type'
        )

    if len(value) == 0:
        raise ValidationError(
            'At least one material is required.',
            code='materials_empty'
        )

    seen = set()
    for material in value:
        if not isinstance(material, str) or not material.strip():
            raise ValidationError(
                'Material names must be non-empty strings.',
                code='invalid_material'
            )
        if len(material) > MAX_MATERIAL_LENGTH:
            raise ValidationError(
                f'Material names cannot exceed {MAX_MATERIAL_LENGTH} characters.',
                code='material_too_long'
            )
        if material in seen:
            raise ValidationError(
                f'Duplicate material: {material}',
                code='duplicate_material'
            )
        seen.add(material)


def validate_price_per_gram(value):
    """
    Validate price per gram is a positive amount.

    Raises:
        ValidationError: If price is not a number or not greater than 0
    """
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(
            'Price per gram must be a valid number.',
            code='invalid_price'
        )

    if price <= 0:
        raise ValidationError(
            'Price per gram must be greater than 0.',
            code='price_not_positive'
        )
