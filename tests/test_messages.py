import pytest

from matching.exceptions import ValidationError
from matching.messages import render_email, render_sms, truncate_message


def test_donor_request_email():
    subject, body = render_email({
        'template': 'donor_request',
        'donor_name': 'Ravi',
        'kind': 'Blood',
        'blood_type': 'O-',
        'quantity_ml': 450,
        'urgency': 'CRITICAL',
        'distance_km': 3.456,
    })
    assert 'Blood' in subject
    assert body.startswith('Dear Ravi,')
    assert '3.5 km' in body


def test_sms_is_cut_to_length():
    message = render_sms({'template': 'donor_request', 'kind': 'Plasma', 'blood_type': 'AB+',
                          'location': 'x' * 200}, max_length=160)
    assert len(message) == 160
    assert message.endswith('...')


def test_short_message_is_untouched():
    assert truncate_message('hello', 160) == 'hello'


def test_unknown_template():
    with pytest.raises(ValidationError):
        render_sms({'template': 'birthday'})
