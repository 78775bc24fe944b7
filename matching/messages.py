# matching/messages.py
"""
Plain-text templates for outbound email and SMS.

Notifier callers pass template_args with a 'template' key naming one of the
builders below; the remaining keys fill the template.
"""
from matching.exceptions import ValidationError


def donor_request_email(args):
    subject = f"🩸 Urgent {args['kind'].title()} Donation Request"
    body = f"""
Dear {args['donor_name']},

A patient in your area urgently needs {args['blood_type']} {args['kind'].lower()}.
Quantity: {args['quantity_ml']} ml
Urgency Level: {args['urgency']}
Distance: {args['distance_km']:.1f} km from you

Your donation can save a life!
Please log in to VitalAid to ACCEPT or DECLINE.

Thank you for being a lifesaver!

Best regards,
VitalAid Team
    """.strip()
    return subject, body


def request_approved_email(args):
    subject = "✅ Your Request Has Been Approved"
    body = f"""
Dear {args['patient_name']},

Good news! Your {args['kind'].lower()} request #{args['request_id']} has been approved by {args['hospital_name']}.

Please contact the hospital at your earliest convenience.
Hospital Phone: {args.get('hospital_phone') or 'N/A'}

Best regards,
VitalAid Team
    """.strip()
    return subject, body


def donor_request_sms(args):
    return (
        f"URGENT: {args['blood_type']} {args['kind'].lower()} needed in {args['location']}. "
        f"Login to VitalAid to respond. Lives depend on you! -VitalAid"
    )


def request_approved_sms(args):
    return f"Your request approved by {args['hospital_name']}. Contact them immediately. -VitalAid"


EMAIL_TEMPLATES = {
    'donor_request': donor_request_email,
    'request_approved': request_approved_email,
}

SMS_TEMPLATES = {
    'donor_request': donor_request_sms,
    'request_approved': request_approved_sms,
}


def render_email(template_args):
    """Returns (subject, body)"""
    return _builder(EMAIL_TEMPLATES, template_args)(template_args)


def render_sms(template_args, max_length=160):
    message = _builder(SMS_TEMPLATES, template_args)(template_args)
    return truncate_message(message, max_length)


def truncate_message(message, max_length):
    if len(message) <= max_length:
        return message
    return message[:max_length - 3] + "..."


def _builder(templates, template_args):
    name = template_args.get('template')
    try:
        return templates[name]
    except KeyError:
        raise ValidationError(f"Unknown message template: {name!r}") from None
