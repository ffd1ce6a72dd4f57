"""
Preset validation patterns for text and textarea fields.

A static table keyed by PatternPreset holding the compiled regex, input
mask, example and default message of each preset.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional

from ..choices import PatternPreset


@dataclass(frozen=True)
class PatternInfo:
    id: str
    name: str
    description: str
    regex: str
    example: str
    category: str
    mask: Optional[str] = None

    @property
    def compiled(self):
        return _COMPILED[self.id]

    @property
    def default_message(self) -> str:
        return f"Please enter a valid {self.name.lower()}"


@dataclass(frozen=True)
class ValueCheck:
    valid: bool
    message: Optional[str] = None


VALIDATION_PATTERNS: Dict[str, PatternInfo] = {
    PatternPreset.EMAIL: PatternInfo(
        id=PatternPreset.EMAIL,
        name='Email Address',
        description='Standard email address format',
        regex=r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$',
        example='user@example.com',
        category='contact',
    ),
    PatternPreset.PHONE_US: PatternInfo(
        id=PatternPreset.PHONE_US,
        name='US Phone Number',
        description='US phone number with optional formatting',
        regex=r'^\(?([0-9]{3})\)?[-. ]?([0-9]{3})[-. ]?([0-9]{4})$',
        mask='(###) ###-####',
        example='(555) 123-4567',
        category='contact',
    ),
    PatternPreset.PHONE_INTL: PatternInfo(
        id=PatternPreset.PHONE_INTL,
        name='International Phone',
        description='International phone number with country code',
        regex=r'^\+?[1-9]\d{1,14}$',
        mask='+## ### ### ####',
        example='+15551234567',
        category='contact',
    ),
    PatternPreset.SA_ID: PatternInfo(
        id=PatternPreset.SA_ID,
        name='South African ID',
        description='13-digit South African ID number',
        regex=r'^[0-9]{13}$',
        mask='#############',
        example='8001015009087',
        category='identity',
    ),
    PatternPreset.SSN: PatternInfo(
        id=PatternPreset.SSN,
        name='US Social Security Number',
        description='US SSN in XXX-XX-XXXX format',
        regex=r'^(?!000|666|9\d{2})\d{3}-(?!00)\d{2}-(?!0000)\d{4}$',
        mask='###-##-####',
        example='123-45-6789',
        category='identity',
    ),
    PatternPreset.ZIP_US: PatternInfo(
        id=PatternPreset.ZIP_US,
        name='US ZIP Code',
        description='5-digit or 9-digit ZIP code',
        regex=r'^\d{5}(-\d{4})?$',
        mask='#####-####',
        example='12345 or 12345-6789',
        category='location',
    ),
    PatternPreset.POSTAL_CA: PatternInfo(
        id=PatternPreset.POSTAL_CA,
        name='Canadian Postal Code',
        description='Canadian postal code (A1B 2C3 format)',
        regex=r'^[A-Za-z]\d[A-Za-z][ -]?\d[A-Za-z]\d$',
        mask='A#A #A#',
        example='K1A 0B1',
        category='location',
    ),
    PatternPreset.POSTAL_UK: PatternInfo(
        id=PatternPreset.POSTAL_UK,
        name='UK Postal Code',
        description='UK postcode format',
        regex=r'^[A-Z]{1,2}\d[A-Z\d]? ?\d[A-Z]{2}$',
        example='SW1A 1AA',
        category='location',
    ),
    PatternPreset.NUMBER: PatternInfo(
        id=PatternPreset.NUMBER,
        name='Number',
        description='Numeric values only (including decimals)',
        regex=r'^-?\d*\.?\d+$',
        example='123.45',
        category='format',
    ),
    PatternPreset.ALPHA: PatternInfo(
        id=PatternPreset.ALPHA,
        name='Letters Only',
        description='Alphabetic characters and spaces only',
        regex=r'^[a-zA-Z\s]+$',
        example='John Doe',
        category='format',
    ),
    PatternPreset.ALPHANUMERIC: PatternInfo(
        id=PatternPreset.ALPHANUMERIC,
        name='Alphanumeric',
        description='Letters, numbers, and spaces only',
        regex=r'^[a-zA-Z0-9\s]+$',
        example='ABC 123',
        category='format',
    ),
    PatternPreset.URL: PatternInfo(
        id=PatternPreset.URL,
        name='URL',
        description='Web URL format',
        regex=r'^(https?://)?([\da-z.-]+)\.([a-z.]{2,6})([/\w.-]*)/?$',
        example='https://example.com',
        category='format',
    ),
    PatternPreset.DATE_ISO: PatternInfo(
        id=PatternPreset.DATE_ISO,
        name='Date (ISO)',
        description='Date in YYYY-MM-DD format',
        regex=r'^\d{4}-\d{2}-\d{2}$',
        mask='####-##-##',
        example='2024-01-29',
        category='format',
    ),
    PatternPreset.CURRENCY: PatternInfo(
        id=PatternPreset.CURRENCY,
        name='Currency',
        description='Currency amount with optional $ and commas',
        regex=r'^-?\$?\d{1,3}(,\d{3})*(\.\d{2})?$',
        example='$1,234.56',
        category='format',
    ),
    PatternPreset.CUSTOM: PatternInfo(
        id=PatternPreset.CUSTOM,
        name='Custom Pattern',
        description='Define your own regex pattern',
        regex=r'.*',
        example='Your custom format',
        category='general',
    ),
}

_COMPILED = {key: re.compile(info.regex) for key, info in VALIDATION_PATTERNS.items()}


class ValidationPatternService:
    """Lookups and value checks against the preset pattern table."""

    @staticmethod
    def patterns_by_category(category: str) -> List[PatternInfo]:
        return [p for p in VALIDATION_PATTERNS.values() if p.category == category]

    @staticmethod
    def is_valid_regex(pattern) -> bool:
        if not isinstance(pattern, str) or not pattern:
            return False
        try:
            re.compile(pattern)
        except re.error:
            return False
        return True

    @staticmethod
    def validate_value(value, preset, custom_regex=None, message=None) -> ValueCheck:
        """
        Check a value against a preset (or custom) pattern.

        Empty values pass; required-ness is checked elsewhere.

        Args:
            value: str, the value supplied by a signer
            preset: PatternPreset value
            custom_regex: str, required when preset is 'custom'
            message: str, overrides the preset's default failure message

        Returns:
            ValueCheck
        """
        if value is None or value == '':
            return ValueCheck(valid=True)

        info = VALIDATION_PATTERNS.get(preset)
        if info is None:
            return ValueCheck(valid=True)

        if preset == PatternPreset.CUSTOM:
            if not custom_regex:
                return ValueCheck(valid=True)
            try:
                regex = re.compile(custom_regex)
            except re.error:
                return ValueCheck(valid=False, message='Invalid custom pattern configuration')
        else:
            regex = info.compiled

        if regex.search(str(value)) is None:
            return ValueCheck(valid=False, message=message or info.default_message)
        return ValueCheck(valid=True)

    @staticmethod
    def build_validation_config(preset, message=None, custom_regex=None) -> dict:
        """Build the `validation` properties entry for a text/textarea field."""
        config = {'pattern': str(preset)}
        if message:
            config['message'] = message
        if preset == PatternPreset.CUSTOM and custom_regex:
            config['customRegex'] = custom_regex
        info = VALIDATION_PATTERNS.get(preset)
        if info is not None and info.mask:
            config['mask'] = info.mask
        return config

    @staticmethod
    def validate_south_african_id(id_number: str, today: Optional[date] = None) -> dict:
        """
        Validate a South African ID number including its Luhn check digit.

        Returns:
            dict: {'valid': bool, 'message': str?, 'details': dict?} where
            details carries birth_date, gender and citizenship.
        """
        if not re.fullmatch(r'\d{13}', id_number or ''):
            return {'valid': False, 'message': 'South African ID must be 13 digits'}

        year = int(id_number[0:2])
        month = int(id_number[2:4])
        day = int(id_number[4:6])
        gender_digits = int(id_number[6:10])
        citizenship = int(id_number[10])
        check_digit = int(id_number[12])

        if not 1 <= month <= 12:
            return {'valid': False, 'message': 'Invalid month in ID number'}
        if not 1 <= day <= 31:
            return {'valid': False, 'message': 'Invalid day in ID number'}
        if citizenship not in (0, 1):
            return {'valid': False, 'message': 'Invalid citizenship digit in ID number'}

        total = 0
        for i, char in enumerate(id_number[:12]):
            digit = int(char)
            if i % 2 == 1:
                digit *= 2
                if digit > 9:
                    digit -= 9
            total += digit
        if (10 - total % 10) % 10 != check_digit:
            return {'valid': False, 'message': 'Invalid ID number (checksum failed)'}

        today = today or date.today()
        century = 1900 if year > today.year % 100 else 2000
        return {
            'valid': True,
            'details': {
                'birth_date': f'{century + year}-{month:02d}-{day:02d}',
                'gender': 'male' if gender_digits >= 5000 else 'female',
                'citizenship': 'citizen' if citizenship == 0 else 'resident',
            },
        }
