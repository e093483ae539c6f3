from datetime import date, timedelta

import pytest

from itmanager import db
from itmanager.custody import (create_asset, assign_asset, assign_from_form, return_asset, close_assignment,
                               update_asset, delete_asset, current_assignment, INITIAL_ASSIGNMENT_NOTE)
from itmanager.errors import ValidationError, InvalidTransition, DuplicateSerial
from itmanager.models import Asset, Assignment
from itmanager.time_helpers import today_local


def _open_rows(asset):
    return Assignment.query.filter_by(asset_id=asset.id, return_date=None).count()


def _fields(serial="SN123", **extra):
    data = {"device_type": "portatil", "brand": "Dell", "model": "Latitude 5520", "serial_number": serial}
    data.update(extra)
    return data


def test_assign_and_return_example(ctx):
    asset = create_asset(_fields())
    assert asset.status == "stock"

    assign_asset(asset, "Ana García", "ana@x.com", date(2024, 1, 10))
    assert asset.status == "asignado"
    assert asset.assigned_to == "ana@x.com"
    assert asset.assignment_date == date(2024, 1, 10)
    assert _open_rows(asset) == 1

    return_asset(asset, return_date=date(2024, 2, 1))
    assert asset.status == "stock"
    assert asset.assigned_to is None
    assert asset.assignment_date is None
    assert _open_rows(asset) == 0
    row = Assignment.query.filter_by(asset_id=asset.id).one()
    assert row.return_date == date(2024, 2, 1)


def test_incomplete_assignment_writes_nothing(ctx):
    asset = create_asset(_fields())
    form = {"assign_first_name": "Ana", "assign_last_name": "", "assign_email": "ana@x.com",
            "assign_date": "2024-01-10"}
    with pytest.raises(ValidationError, match="Completa todos los campos obligatorios"):
        assign_from_form(asset, form)
    db.session.refresh(asset)
    assert asset.status == "stock"
    assert Assignment.query.count() == 0


def test_assign_from_form_joins_names(ctx):
    asset = create_asset(_fields())
    a = assign_from_form(asset, {"assign_first_name": "Ana", "assign_last_name": "García",
                                 "assign_email": "ana@x.com", "assign_date": "2024-01-10",
                                 "assign_client": "Acme"})
    assert a.employee_name == "Ana García"
    assert a.client_name == "Acme"
    assert a.profile_id is None


def test_assign_links_existing_profile(app, user_client):
    with app.app_context():
        asset = create_asset(_fields())
        a = assign_asset(asset, "Ana García", "ANA@x.com", date(2024, 1, 10))
        assert a.profile is not None
        assert a.profile.email == "ana@x.com"


def test_cannot_assign_twice(ctx):
    asset = create_asset(_fields())
    assign_asset(asset, "Ana", "ana@x.com", date(2024, 1, 10))
    with pytest.raises(InvalidTransition):
        assign_asset(asset, "Luis", "luis@x.com", date(2024, 1, 11))
    assert _open_rows(asset) == 1
    assert current_assignment(asset).employee_email == "ana@x.com"


def test_cannot_assign_retired_asset(ctx):
    asset = create_asset(_fields())
    update_asset(asset, _fields(status="baja"))
    with pytest.raises(InvalidTransition):
        assign_asset(asset, "Ana", "ana@x.com", date(2024, 1, 10))
    assert Assignment.query.count() == 0


def test_invalid_email_rejected(ctx):
    asset = create_asset(_fields())
    with pytest.raises(ValidationError):
        assign_asset(asset, "Ana", "no-es-un-email", date(2024, 1, 10))
    assert asset.status == "stock"


def test_return_before_assignment_rejected(ctx):
    asset = create_asset(_fields())
    assign_asset(asset, "Ana", "ana@x.com", date(2024, 1, 10))
    with pytest.raises(ValidationError):
        return_asset(asset, return_date=date(2024, 1, 1))
    assert asset.status == "asignado"


def test_return_without_custody_rejected(ctx):
    asset = create_asset(_fields())
    with pytest.raises(InvalidTransition):
        return_asset(asset)


def test_close_assignment_twice_rejected(ctx):
    asset = create_asset(_fields())
    a = assign_asset(asset, "Ana", "ana@x.com", date(2024, 1, 10))
    close_assignment(a, return_date=date(2024, 1, 20), notes="Pantalla rayada")
    assert a.notes == "Pantalla rayada"
    with pytest.raises(InvalidTransition):
        close_assignment(a)


def test_create_with_initial_assignment(ctx):
    asset = create_asset(_fields(), initial={"email": "ana@x.com", "name": "Ana García",
                                             "date": date(2024, 3, 1), "client": "Acme"})
    assert asset.status == "asignado"
    row = current_assignment(asset)
    assert row.notes == INITIAL_ASSIGNMENT_NOTE
    assert row.assigned_date == date(2024, 3, 1)
    assert asset.assigned_to == "ana@x.com"


def test_create_requires_brand_model_serial(ctx):
    with pytest.raises(ValidationError):
        create_asset(_fields(serial="  "))
    assert Asset.query.count() == 0


def test_duplicate_serial_rejected(ctx):
    create_asset(_fields())
    with pytest.raises(DuplicateSerial, match="Ya existe un equipo con ese número de serie"):
        create_asset(_fields(brand="HP"))
    other = create_asset(_fields(serial="SN999"))
    with pytest.raises(DuplicateSerial):
        update_asset(other, _fields(serial="SN123"))
    assert Asset.query.count() == 2


def test_edit_cannot_set_assigned(ctx):
    asset = create_asset(_fields())
    with pytest.raises(InvalidTransition):
        update_asset(asset, _fields(status="asignado"))
    db.session.refresh(asset)
    assert asset.status == "stock"


def test_retiring_assigned_asset_closes_custody(ctx):
    asset = create_asset(_fields())
    assign_asset(asset, "Ana", "ana@x.com", date(2024, 1, 10))
    update_asset(asset, _fields(status="baja", needs_renewal=True))
    assert asset.status == "baja"
    assert asset.needs_renewal is True
    assert asset.assigned_to is None
    assert _open_rows(asset) == 0


def test_delete_asset_removes_ledger(ctx):
    asset = create_asset(_fields())
    assign_asset(asset, "Ana", "ana@x.com", date(2024, 1, 10))
    delete_asset(asset)
    assert Asset.query.count() == 0
    assert Assignment.query.count() == 0


def test_reassign_after_return_keeps_history(ctx):
    asset = create_asset(_fields())
    assign_asset(asset, "Ana", "ana@x.com", date(2024, 1, 10))
    return_asset(asset, return_date=date(2024, 2, 1))
    assign_asset(asset, "Luis", "luis@x.com", date(2024, 2, 2))
    assert Assignment.query.filter_by(asset_id=asset.id).count() == 2
    assert _open_rows(asset) == 1
    assert current_assignment(asset).employee_email == "luis@x.com"


def _assert_back_in(asset, status):
    assert asset.status == status
    assert asset.assigned_to is None
    assert asset.assignment_date is None
    assert _open_rows(asset) == 0


def test_edit_assigned_back_to_stock_closes_custody(ctx):
    asset = create_asset(_fields())
    assign_asset(asset, "Ana", "ana@x.com", date(2024, 1, 10))
    update_asset(asset, _fields(status="stock"))
    _assert_back_in(asset, "stock")
    row = Assignment.query.filter_by(asset_id=asset.id).one()
    assert row.return_date == today_local()


def test_retire_future_dated_assignment(ctx):
    asset = create_asset(_fields())
    start = today_local() + timedelta(days=3)
    assign_asset(asset, "Ana", "ana@x.com", start)
    update_asset(asset, _fields(status="baja"))
    _assert_back_in(asset, "baja")
    assert Assignment.query.filter_by(asset_id=asset.id).one().return_date == start


def test_default_return_of_future_dated_assignment(ctx):
    asset = create_asset(_fields())
    start = today_local() + timedelta(days=3)
    assign_asset(asset, "Ana", "ana@x.com", start)
    return_asset(asset)
    _assert_back_in(asset, "stock")
    assert Assignment.query.filter_by(asset_id=asset.id).one().return_date == start


def test_initial_assignment_without_name_keeps_it_empty(ctx):
    asset = create_asset(_fields(), initial={"email": "ana@x.com", "name": " ", "date": date(2024, 3, 1)})
    row = current_assignment(asset)
    assert row.employee_name is None
    assert row.holder_name == "ana@x.com"
