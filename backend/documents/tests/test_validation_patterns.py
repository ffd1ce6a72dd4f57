from datetime import date

import pytest

from documents.choices import PatternPreset
from documents.services.validation_patterns import VALIDATION_PATTERNS, ValidationPatternService


def test_every_preset_has_an_entry():
    assert set(VALIDATION_PATTERNS) == set(PatternPreset.values)


@pytest.mark.parametrize('preset,value,valid', [
    (PatternPreset.EMAIL, 'user@example.com', True),
    (PatternPreset.EMAIL, 'user@', False),
    (PatternPreset.PHONE_US, '(555) 123-4567', True),
    (PatternPreset.PHONE_US, '555-1234', False),
    (PatternPreset.ZIP_US, '12345-6789', True),
    (PatternPreset.ZIP_US, '1234', False),
    (PatternPreset.POSTAL_CA, 'K1A 0B1', True),
    (PatternPreset.POSTAL_UK, 'SW1A 1AA', True),
    (PatternPreset.SSN, '000-12-3456', False),
    (PatternPreset.NUMBER, '-12.5', True),
    (PatternPreset.NUMBER, '12a', False),
    (PatternPreset.DATE_ISO, '2024-01-29', True),
    (PatternPreset.CURRENCY, '$1,234.56', True),
    (PatternPreset.CURRENCY, '1,23', False),
])
def test_validate_value(preset, value, valid):
    assert ValidationPatternService.validate_value(value, preset).valid is valid


def test_failure_uses_default_message():
    check = ValidationPatternService.validate_value('nope', PatternPreset.ZIP_US)
    assert check.message == 'Please enter a valid us zip code'


def test_failure_uses_custom_message():
    check = ValidationPatternService.validate_value('nope', PatternPreset.ZIP_US, message='ZIP please')
    assert check.message == 'ZIP please'


def test_empty_value_passes():
    assert ValidationPatternService.validate_value('', PatternPreset.EMAIL).valid


def test_custom_regex():
    assert ValidationPatternService.validate_value('AB-12', PatternPreset.CUSTOM, custom_regex=r'^[A-Z]{2}-\d{2}$').valid
    assert not ValidationPatternService.validate_value('ab', PatternPreset.CUSTOM, custom_regex=r'^[A-Z]+$').valid


def test_invalid_custom_regex():
    check = ValidationPatternService.validate_value('x', PatternPreset.CUSTOM, custom_regex='([')
    assert check.message == 'Invalid custom pattern configuration'


def test_is_valid_regex():
    assert ValidationPatternService.is_valid_regex(r'^\d+$')
    assert not ValidationPatternService.is_valid_regex('([')


def test_build_validation_config():
    config = ValidationPatternService.build_validation_config(PatternPreset.PHONE_US)
    assert config == {'pattern': 'phone_us', 'mask': '(###) ###-####'}


def test_patterns_by_category():
    ids = [p.id for p in ValidationPatternService.patterns_by_category('location')]
    assert ids == [PatternPreset.ZIP_US, PatternPreset.POSTAL_CA, PatternPreset.POSTAL_UK]


class TestSouthAfricanId:

    def test_valid_id(self):
        result = ValidationPatternService.validate_south_african_id('8001015009087', today=date(2024, 1, 1))
        assert result['valid']
        assert result['details'] == {
            'birth_date': '1980-01-01',
            'gender': 'male',
            'citizenship': 'citizen',
        }

    def test_checksum_failure(self):
        result = ValidationPatternService.validate_south_african_id('8001015009088')
        assert result == {'valid': False, 'message': 'Invalid ID number (checksum failed)'}

    def test_wrong_length(self):
        assert not ValidationPatternService.validate_south_african_id('123')['valid']
