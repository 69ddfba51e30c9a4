"""
Unit Tests for Request Validators
"""

import pytest

from oxic_payments.utils.validators import (
    format_kenyan_phone_number,
    normalize_callback_url,
    validate_amount,
    validate_payment_request,
)


class TestValidatePaymentRequest:
    """Checks run shape -> phone presence -> phone format -> amount presence -> amount range"""

    @pytest.mark.parametrize('body', [None, 'phoneNumber=0712345678', 42, ['0712345678', 500]])
    def test_non_object_body(self, body):
        result = validate_payment_request(body)
        assert result['valid'] is False
        assert result['error'] == 'Invalid request body'

    def test_missing_phone_reported_before_amount(self):
        result = validate_payment_request({'amount': 0})
        assert result['error'] == 'Phone number is required'

    def test_non_string_phone_is_missing(self):
        result = validate_payment_request({'phoneNumber': 712345678, 'amount': 500})
        assert result['error'] == 'Phone number is required'

    def test_bad_phone_format_reported_before_amount(self):
        result = validate_payment_request({'phoneNumber': '12345', 'amount': None})
        assert result['error'] == 'Invalid phone number format'

    def test_missing_amount(self):
        result = validate_payment_request({'phoneNumber': '0712345678'})
        assert result['error'] == 'Amount is required'

    @pytest.mark.parametrize('amount', [0, 0.99, -5, 150000.01, 1000000])
    def test_amount_out_of_range(self, amount):
        result = validate_payment_request({'phoneNumber': '0712345678', 'amount': amount})
        assert result['valid'] is False
        assert result['error'] == 'Amount must be between KES 1 and 150,000'

    @pytest.mark.parametrize('amount', ['500', True, [500], {'value': 500}])
    def test_non_numeric_amount(self, amount):
        result = validate_payment_request({'phoneNumber': '0712345678', 'amount': amount})
        assert result['valid'] is False
        assert result['error'] == 'Amount must be a valid number'

    @pytest.mark.parametrize('amount', [1, 1.0, 500, 99999.5, 150000])
    def test_amount_in_range(self, amount):
        result = validate_payment_request({'phoneNumber': '0712345678', 'amount': amount})
        assert result['valid'] is True
        assert result['normalized_amount'] == float(amount)

    @pytest.mark.parametrize('phone', [
        '0712345678',
        '+254712345678',
        '254712345678',
        '0712 345 678',
        ' +254 712 345 678 ',
        '0812345678',  # shape is accepted here, Daraja prefix is checked later
    ])
    def test_accepted_phone_shapes(self, phone):
        result = validate_payment_request({'phoneNumber': phone, 'amount': 500})
        assert result['valid'] is True
        assert result['normalized_phone'] == ''.join(phone.split())

    @pytest.mark.parametrize('phone', [
        '712345678',
        '07123456789',
        '+25471234567',
        '255712345678',
        '07123456a8',
        '',
    ])
    def test_rejected_phone_shapes(self, phone):
        result = validate_payment_request({'phoneNumber': phone, 'amount': 500})
        assert result['valid'] is False

    def test_unicode_digits_rejected(self):
        result = validate_payment_request({'phoneNumber': '07١٢٣٤٥٦٧٨', 'amount': 500})
        assert result['error'] == 'Invalid phone number format'


class TestValidateAmount:

    def test_infinite_amount_rejected(self):
        is_valid, error = validate_amount(float('inf'))
        assert is_valid is False
        assert 'between' in error

    def test_nan_rejected(self):
        is_valid, _ = validate_amount(float('nan'))
        assert is_valid is False

    def test_custom_bounds(self):
        assert validate_amount(5, min_amount=10) == (False, 'Amount must be between KES 10 and 150,000')


class TestFormatKenyanPhoneNumber:

    @pytest.mark.parametrize('raw, expected', [
        ('254712345678',    '254712345678'),
        ('+254712345678',   '254712345678'),
        ('0712345678',      '254712345678'),
        ('712345678',       '254712345678'),
        ('254 712 345 678', '254712345678'),
        ('0112345678',      '254112345678'),
        ('+254 110 000 000', '254110000000'),
    ])
    def test_normalises(self, raw, expected):
        assert format_kenyan_phone_number(raw) == (expected, None)

    @pytest.mark.parametrize('raw', [
        '0812345678',       # 8 is not a Safaricom mobile prefix
        '07123456',         # too short
        '2547123456789',    # too long
        '+1 555 123 4567',
        'not-a-phone',
        None,
    ])
    def test_rejects(self, raw):
        formatted, error = format_kenyan_phone_number(raw)
        assert formatted is None
        assert error == 'Invalid phone number. Use format 07XXXXXXXX or 01XXXXXXXX'

    @pytest.mark.parametrize('raw', ['0712345678', '+254712345678', '712345678', '0110 000 000'])
    def test_idempotent(self, raw):
        once, _ = format_kenyan_phone_number(raw)
        twice, _ = format_kenyan_phone_number(once)
        assert twice == once


class TestNormalizeCallbackUrl:

    @pytest.mark.parametrize('raw, expected', [
        ('https://example.com', 'https://example.com/api/mpesa/callback'),
        ('https://example.com/', 'https://example.com/api/mpesa/callback'),
        ('https://example.com/api/mpesa/callback', 'https://example.com/api/mpesa/callback'),
        ('https://example.com/api/mpesa/callback/', 'https://example.com/api/mpesa/callback'),
        ('https://example.com:8443/hooks', 'https://example.com:8443/hooks/api/mpesa/callback'),
        ('https://example.com/hooks?env=live', 'https://example.com/hooks/api/mpesa/callback?env=live'),
    ])
    def test_normalises(self, raw, expected):
        assert normalize_callback_url(raw) == (expected, None)

    @pytest.mark.parametrize('raw', [
        'https://example.com',
        'https://example.com/base/',
        'https://example.com/hooks?env=live',
    ])
    def test_idempotent(self, raw):
        once, _ = normalize_callback_url(raw)
        assert normalize_callback_url(once) == (once, None)

    def test_requires_https(self):
        url, error = normalize_callback_url('http://example.com/api/mpesa/callback')
        assert url is None
        assert 'https://' in error

    @pytest.mark.parametrize('raw', ['https://', 'https:///api/mpesa/callback', 'https://exa mple.com'])
    def test_malformed(self, raw):
        url, error = normalize_callback_url(raw)
        assert url is None
        assert error == 'Callback URL is malformed'

    @pytest.mark.parametrize('raw', ['', None])
    def test_missing(self, raw):
        assert normalize_callback_url(raw) == (None, 'Callback URL is required')
