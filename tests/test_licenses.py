from datetime import datetime, timedelta

import pytest

from careerhub.core.errors import ConflictError, ValidationError
from careerhub.models.license import (
    LICENSE_ACTIVE,
    LICENSE_EXPIRED,
    LICENSE_PENDING,
    LICENSE_REVOKED,
)
from careerhub.models.order import ORDER_CANCELLED, ORDER_CONFIRMED
from careerhub.services import licenses as license_service
from careerhub.utils.pagination import Paging

NOW = datetime(2025, 3, 15, 12, 0, 0)


def test_create_licenses_for_order(db, factory):
    school = factory.school()
    careers = [factory.career("Doctor"), factory.career("Architect")]
    order = factory.order(school, careers)

    licenses = license_service.create_licenses_for_order(db, order.id, 6, now=NOW)

    assert len(licenses) == 2
    assert {lic.career_id for lic in licenses} == {c.id for c in careers}
    assert all(lic.status == LICENSE_ACTIVE for lic in licenses)
    assert all(lic.start_date == NOW for lic in licenses)
    assert all(lic.expiry_date == datetime(2025, 9, 15, 12, 0, 0) for lic in licenses)
    db.refresh(order)
    assert order.status == ORDER_CONFIRMED

    with pytest.raises(ConflictError):
        license_service.create_licenses_for_order(db, order.id, 6, now=NOW)


def test_create_licenses_rejects_cancelled_order(db, factory):
    order = factory.order(factory.school(), [factory.career()])
    order.status = ORDER_CANCELLED
    db.commit()

    with pytest.raises(ConflictError):
        license_service.create_licenses_for_order(db, order.id, 3, now=NOW)


def test_month_rental_clamps_to_month_end(db, factory):
    order = factory.order(factory.school(), [factory.career()])
    licenses = license_service.create_licenses_for_order(db, order.id, 1, now=datetime(2025, 1, 31))
    assert licenses[0].expiry_date == datetime(2025, 2, 28)

    leap = factory.order(factory.school(), [factory.career()])
    licenses = license_service.create_licenses_for_order(db, leap.id, 13, now=datetime(2023, 1, 31))
    assert licenses[0].expiry_date == datetime(2024, 2, 29)


def test_activate_inside_window(db, factory):
    lic = factory.license(
        factory.school(), factory.career(),
        status=LICENSE_PENDING,
        start=NOW - timedelta(days=1),
        expiry=NOW + timedelta(days=30),
    )

    activated = license_service.activate_license(db, lic.id, now=NOW)
    assert activated.status == LICENSE_ACTIVE

    with pytest.raises(ConflictError):
        license_service.activate_license(db, lic.id, now=NOW)


@pytest.mark.parametrize("offset, message", [
    (timedelta(days=-2), "before start_date"),
    (timedelta(days=40), "after expiry_date"),
])
def test_activate_outside_window_fails(db, factory, offset, message):
    lic = factory.license(
        factory.school(), factory.career(),
        status=LICENSE_PENDING,
        start=NOW - timedelta(days=1),
        expiry=NOW + timedelta(days=30),
    )

    with pytest.raises(ValidationError) as excinfo:
        license_service.activate_license(db, lic.id, now=NOW + offset)
    assert message in excinfo.value.message
    db.refresh(lic)
    assert lic.status == LICENSE_PENDING


def test_renew_expired_license_reactivates(db, factory):
    lic = factory.license(
        factory.school(), factory.career(),
        status=LICENSE_EXPIRED,
        start=NOW - timedelta(days=60),
        expiry=NOW - timedelta(days=1),
    )

    renewed = license_service.renew_license(db, lic.id, NOW + timedelta(days=90), now=NOW)

    assert renewed.status == LICENSE_ACTIVE
    assert renewed.expiry_date == NOW + timedelta(days=90)


def test_renew_rejects_expiry_before_start(db, factory):
    lic = factory.license(factory.school(), factory.career(), start=NOW, expiry=NOW + timedelta(days=10))
    with pytest.raises(ValidationError):
        license_service.renew_license(db, lic.id, NOW, now=NOW)


def test_revoked_license_is_terminal(db, factory):
    lic = factory.license(factory.school(), factory.career())

    assert license_service.revoke_license(db, lic.id).status == LICENSE_REVOKED

    with pytest.raises(ConflictError):
        license_service.revoke_license(db, lic.id)
    with pytest.raises(ConflictError):
        license_service.renew_license(db, lic.id, NOW + timedelta(days=365), now=NOW)
    with pytest.raises(ConflictError):
        license_service.activate_license(db, lic.id, now=NOW)


def test_expire_overdue_licenses(db, factory):
    school, career = factory.school(), factory.career()
    overdue = factory.license(school, career, start=NOW - timedelta(days=30), expiry=NOW - timedelta(days=1))
    current = factory.license(school, career, start=NOW - timedelta(days=30), expiry=NOW + timedelta(days=1))

    assert license_service.expire_overdue_licenses(db, now=NOW) == 1
    db.refresh(overdue)
    db.refresh(current)
    assert overdue.status == LICENSE_EXPIRED
    assert current.status == LICENSE_ACTIVE


def test_list_expiring_licenses(db, factory):
    school = factory.school()
    soon = factory.license(school, factory.career(), start=NOW - timedelta(days=30), expiry=NOW + timedelta(days=5))
    factory.license(school, factory.career(), start=NOW - timedelta(days=30), expiry=NOW + timedelta(days=90))

    expiring = license_service.list_expiring_licenses(db, days=30, now=NOW)
    assert [lic.id for lic in expiring] == [soon.id]


def test_active_careers_keep_latest_expiring_license(db, factory):
    school = factory.school()
    career = factory.career("Pilot")
    retired = factory.career("Telegraphist", is_active=False)
    other = factory.career("Nurse")

    factory.license(school, career, start=NOW, expiry=NOW + timedelta(days=30))
    later = factory.license(school, career, start=NOW, expiry=NOW + timedelta(days=300))
    factory.license(school, retired)
    factory.license(school, other, status=LICENSE_REVOKED)

    pairs, total = license_service.get_active_careers_for_school(db, school.id, Paging())

    assert total == 1
    assert len(pairs) == 1
    found_career, found_license = pairs[0]
    assert found_career.id == career.id
    assert found_license.id == later.id
