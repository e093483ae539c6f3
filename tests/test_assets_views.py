from datetime import date

from itmanager import db
from itmanager.models import Asset, Assignment


def _form(**extra):
    data = {"device_type": "portatil", "brand": "Dell", "model": "Latitude 5520", "serial_number": "SN123",
            "purchase_price": "1299,00", "purchase_date": "2024-01-05"}
    data.update(extra)
    return data


def test_create_asset_in_stock(app, admin_client):
    resp = admin_client.post("/assets/new", data=_form())
    assert resp.status_code == 302
    assert "status=stock" in resp.headers["Location"]
    with app.app_context():
        asset = Asset.query.filter_by(serial_number="SN123").one()
        assert asset.status == "stock"
        assert str(asset.purchase_price) == "1299.00"


def test_create_asset_with_initial_assignment(app, admin_client):
    resp = admin_client.post("/assets/new", data=_form(assign_first_name="Ana", assign_last_name="García",
                                                       assigned_to="ana@x.com", assignment_date="2024-01-10"))
    assert resp.status_code == 302
    with app.app_context():
        asset = Asset.query.filter_by(serial_number="SN123").one()
        assert asset.status == "asignado"
        row = Assignment.query.filter_by(asset_id=asset.id).one()
        assert row.employee_name == "Ana García"
        assert row.return_date is None


def test_create_duplicate_serial_shows_message(admin_client):
    admin_client.post("/assets/new", data=_form())
    resp = admin_client.post("/assets/new", data=_form(brand="HP"))
    assert resp.status_code == 400
    assert "Ya existe un equipo con ese número de serie" in resp.get_data(as_text=True)


def test_list_defaults_to_assigned(admin_client, make_asset):
    make_asset(serial="SN-STOCK")
    resp = admin_client.get("/assets")
    assert resp.status_code == 200
    assert "SN-STOCK" not in resp.get_data(as_text=True)
    resp = admin_client.get("/assets?status=all")
    assert "SN-STOCK" in resp.get_data(as_text=True)


def test_list_search_by_holder(admin_client, make_asset):
    asset_id = make_asset(serial="SN1")
    make_asset(serial="SN2", brand="HP", model="EliteBook")
    admin_client.post(f"/assets/{asset_id}/assign", data={
        "assign_first_name": "Ana", "assign_last_name": "García", "assign_email": "ana@x.com",
        "assign_date": "2024-01-10"})
    body = admin_client.get("/assets?status=all&q=ana@x").get_data(as_text=True)
    assert "SN1" in body
    assert "SN2" not in body


def test_list_paginates(admin_client, make_asset):
    for i in range(17):
        make_asset(serial=f"SN{i:03d}")
    body = admin_client.get("/assets?status=stock").get_data(as_text=True)
    assert "Página 1 de 2" in body
    body = admin_client.get("/assets?status=stock&page=2").get_data(as_text=True)
    assert "SN000" in body


def test_missing_asset_redirects(admin_client):
    resp = admin_client.get("/assets/999", follow_redirects=True)
    assert resp.status_code == 200
    assert "Equipo no encontrado" in resp.get_data(as_text=True)


def test_detail_tabs(admin_client, make_asset):
    asset_id = make_asset()
    for tab in ("general", "asignacion", "historial", "documentos"):
        resp = admin_client.get(f"/assets/{asset_id}?tab={tab}")
        assert resp.status_code == 200


def test_assign_and_return_through_views(app, admin_client, make_asset):
    asset_id = make_asset()
    resp = admin_client.post(f"/assets/{asset_id}/assign", data={
        "assign_first_name": "Ana", "assign_last_name": "García", "assign_email": "ana@x.com",
        "assign_date": "2024-01-10"})
    assert resp.status_code == 302
    with app.app_context():
        assert db.session.get(Asset, asset_id).status == "asignado"

    admin_client.post(f"/assets/{asset_id}/return", data={"return_date": "2024-02-01"})
    with app.app_context():
        asset = db.session.get(Asset, asset_id)
        assert asset.status == "stock"
        assert asset.assigned_to is None
        row = Assignment.query.filter_by(asset_id=asset_id).one()
        assert row.return_date == date(2024, 2, 1)


def test_incomplete_assign_via_view(app, admin_client, make_asset):
    asset_id = make_asset()
    resp = admin_client.post(f"/assets/{asset_id}/assign", data={"assign_first_name": "Ana"},
                             follow_redirects=True)
    assert "Completa todos los campos obligatorios" in resp.get_data(as_text=True)
    with app.app_context():
        assert Assignment.query.count() == 0


def test_edit_asset(app, admin_client, make_asset):
    asset_id = make_asset()
    admin_client.post(f"/assets/{asset_id}/edit", data=_form(model="Latitude 7420", status="baja",
                                                             needs_renewal="on"))
    with app.app_context():
        asset = db.session.get(Asset, asset_id)
        assert asset.model == "Latitude 7420"
        assert asset.status == "baja"
        assert asset.needs_renewal


def test_delete_asset(app, admin_client, make_asset):
    asset_id = make_asset(serial="SN-DEL")
    resp = admin_client.post(f"/assets/{asset_id}/delete")
    assert resp.status_code == 302
    assert "SN-DEL" not in admin_client.get("/assets?status=all").get_data(as_text=True)
    with app.app_context():
        assert db.session.get(Asset, asset_id) is None


def test_exports(admin_client, make_asset):
    make_asset()
    csv_resp = admin_client.get("/assets/export.csv?status=all")
    assert csv_resp.mimetype == "text/csv"
    assert "SN123" in csv_resp.get_data().decode("utf-8-sig")
    xlsx_resp = admin_client.get("/assets/export.xlsx?status=all")
    assert xlsx_resp.get_data()[:2] == b"PK"
    pdf_resp = admin_client.get("/assets/export.pdf?status=all")
    assert pdf_resp.get_data().startswith(b"%PDF-")


def _assign(admin_client, asset_id):
    admin_client.post(f"/assets/{asset_id}/assign", data={
        "assign_first_name": "Ana", "assign_last_name": "García", "assign_email": "ana@x.com",
        "assign_date": "2024-01-10"})


def test_return_from_assignments_list(app, admin_client, make_asset):
    asset_id = make_asset()
    _assign(admin_client, asset_id)
    with app.app_context():
        assignment_id = Assignment.query.filter_by(asset_id=asset_id).one().id
    resp = admin_client.post(f"/assignments/{assignment_id}/return", data={"return_date": "2024-02-01"},
                             follow_redirects=True)
    assert "Dispositivo devuelto" in resp.get_data(as_text=True)
    with app.app_context():
        asset = db.session.get(Asset, asset_id)
        assert asset.status == "stock"
        assert asset.assigned_to is None
        assert asset.assignment_date is None
        assert Assignment.query.filter_by(asset_id=asset_id, return_date=None).count() == 0
        assert db.session.get(Assignment, assignment_id).return_date == date(2024, 2, 1)


def test_return_from_assignments_list_rejects_bad_date(app, admin_client, make_asset):
    asset_id = make_asset()
    _assign(admin_client, asset_id)
    with app.app_context():
        assignment_id = Assignment.query.filter_by(asset_id=asset_id).one().id
    resp = admin_client.post(f"/assignments/{assignment_id}/return", data={"return_date": "not-a-date"},
                             follow_redirects=True)
    assert "La fecha de devolución no es válida." in resp.get_data(as_text=True)
    with app.app_context():
        assert db.session.get(Asset, asset_id).status == "asignado"
        assert db.session.get(Assignment, assignment_id).return_date is None


def test_edit_assigned_to_stock_via_view(app, admin_client, make_asset):
    asset_id = make_asset()
    _assign(admin_client, asset_id)
    admin_client.post(f"/assets/{asset_id}/edit", data=_form(status="stock"))
    with app.app_context():
        asset = db.session.get(Asset, asset_id)
        assert asset.status == "stock"
        assert asset.assigned_to is None
        assert asset.assignment_date is None
        assert Assignment.query.filter_by(asset_id=asset_id, return_date=None).count() == 0


def test_delete_asset_db_error_is_flashed(app, admin_client, make_asset, monkeypatch):
    from sqlalchemy.exc import SQLAlchemyError
    from itmanager import assets

    def failing_delete(asset, store=None):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(assets, "delete_asset", failing_delete)
    asset_id = make_asset()
    resp = admin_client.post(f"/assets/{asset_id}/delete", follow_redirects=True)
    assert resp.status_code == 200
    assert "Error al eliminar el equipo" in resp.get_data(as_text=True)
    with app.app_context():
        assert db.session.get(Asset, asset_id) is not None


def test_unknown_assignment_returns_404(admin_client):
    assert admin_client.post("/assignments/999/return").status_code == 404
