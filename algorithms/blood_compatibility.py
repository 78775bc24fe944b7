"""
Blood Type Compatibility Helper
Determines which donor blood groups may supply a recipient, for whole blood and for plasma
"""
from matching.choices import BloodGroup, RequestKind
from matching.exceptions import ValidationError

G = BloodGroup

# Red cells: recipient group -> donor groups that are compatible *to* it
RED_CELL_DONORS = {
    G.O_NEGATIVE:  (G.O_NEGATIVE,),
    G.O_POSITIVE:  (G.O_NEGATIVE, G.O_POSITIVE),
    G.A_NEGATIVE:  (G.A_NEGATIVE, G.O_NEGATIVE),
    G.A_POSITIVE:  (G.A_POSITIVE, G.A_NEGATIVE, G.O_POSITIVE, G.O_NEGATIVE),
    G.B_NEGATIVE:  (G.B_NEGATIVE, G.O_NEGATIVE),
    G.B_POSITIVE:  (G.B_POSITIVE, G.B_NEGATIVE, G.O_POSITIVE, G.O_NEGATIVE),
    G.AB_NEGATIVE: (G.AB_NEGATIVE, G.A_NEGATIVE, G.B_NEGATIVE, G.O_NEGATIVE),
    G.AB_POSITIVE: tuple(BloodGroup),  # Universal recipient
}

# Plasma runs the other way: AB is the universal plasma donor, O the universal recipient
_AB = (G.AB_POSITIVE, G.AB_NEGATIVE)
PLASMA_DONORS_BY_ABO = {
    'AB': _AB,
    'A':  (G.A_POSITIVE, G.A_NEGATIVE) + _AB,
    'B':  (G.B_POSITIVE, G.B_NEGATIVE) + _AB,
    'O':  tuple(BloodGroup),
}


def compatible_donor_groups(recipient_blood_type, kind):
    """
    Get the donor blood groups that can supply a recipient

    Args:
        recipient_blood_type: Requested blood group (BloodGroup or any spelling BloodGroup.parse accepts)
        kind: RequestKind.BLOOD or RequestKind.PLASMA

    Returns:
        Tuple of BloodGroup, never empty, always containing the requested group
    """
    recipient = BloodGroup.parse(recipient_blood_type)
    kind = RequestKind(kind)

    if kind == RequestKind.BLOOD:
        donors = RED_CELL_DONORS[recipient]
    elif kind == RequestKind.PLASMA:
        donors = PLASMA_DONORS_BY_ABO[recipient.abo]
    else:
        raise ValidationError(f'{kind.label} requests are not sourced from donors')

    if recipient not in donors:
        donors = donors + (recipient,)
    return donors


def is_compatible(donor_blood_type, recipient_blood_type, kind=RequestKind.BLOOD):
    """
    Check if donor blood type is compatible with recipient

    Returns:
        Boolean: True if compatible, False otherwise
    """
    return BloodGroup.parse(donor_blood_type) in compatible_donor_groups(recipient_blood_type, kind)
