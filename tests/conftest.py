from datetime import date

import pytest

from matching import notifiers
from tests.fakes import (
    FakeMatchRepository, FakeProfileRepository, FakeRequestRepository, RecordingNotifier, make_user_profile,
)

TODAY = date(2024, 6, 1)
HOSPITAL_COORDS = (12.97, 77.59)


@pytest.fixture(autouse=True)
def sms_outbox():
    notifiers.outbox.clear()
    yield notifiers.outbox
    notifiers.outbox.clear()


# ---------------------------
# In-memory collaborators
# ---------------------------
@pytest.fixture
def patient():
    return make_user_profile(1, user_id=501, full_name='Asha Rao', phone='+919800000001', city='Bengaluru')


@pytest.fixture
def hospital():
    return make_user_profile(
        1, user_id=701, hospital_name='City General', phone='+918000000001',
        latitude=HOSPITAL_COORDS[0], longitude=HOSPITAL_COORDS[1],
    )


@pytest.fixture
def patients(patient):
    return FakeProfileRepository([patient])


@pytest.fixture
def hospitals(hospital):
    return FakeProfileRepository([hospital])


@pytest.fixture
def requests_repo():
    return FakeRequestRepository()


@pytest.fixture
def matches():
    return FakeMatchRepository()


@pytest.fixture
def notifier():
    return RecordingNotifier()


# ---------------------------
# Database rows
# ---------------------------
@pytest.fixture
def make_account(django_user_model):
    counter = {'n': 0}

    def _make(user_type, **fields):
        counter['n'] += 1
        n = counter['n']
        return django_user_model.objects.create_user(
            username=fields.pop('username', f"{user_type}{n}"),
            email=fields.pop('email', f"{user_type}{n}@example.com"),
            password='pass1234',
            user_type=user_type,
            **fields,
        )
    return _make


@pytest.fixture
def db_patient(make_account):
    from patients.models import PatientProfile

    return PatientProfile.objects.create(
        user=make_account('patient'),
        full_name='Asha Rao',
        phone='+919800000001',
        blood_type='A+',
        city='Bengaluru',
    )


@pytest.fixture
def db_hospital(make_account):
    from hospitals.models import HospitalProfile

    return HospitalProfile.objects.create(
        user=make_account('hospital'),
        hospital_name='City General',
        phone='+918000000001',
        city='Bengaluru',
        latitude=HOSPITAL_COORDS[0],
        longitude=HOSPITAL_COORDS[1],
    )


@pytest.fixture
def make_db_donor(make_account):
    from donors.models import DonorProfile

    def _make(blood_type='A+', latitude=HOSPITAL_COORDS[0], longitude=HOSPITAL_COORDS[1], **fields):
        user = make_account('donor')
        return DonorProfile.objects.create(
            user=user,
            full_name=fields.pop('full_name', f"Donor {user.pk}"),
            phone=fields.pop('phone', f"+9190000{user.pk:05d}"),
            blood_type=blood_type,
            latitude=latitude,
            longitude=longitude,
            weight=fields.pop('weight', 70),
            **fields,
        )
    return _make
