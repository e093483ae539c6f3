from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app
from sqlalchemy.exc import SQLAlchemyError
from . import db
from .auth import admin_required
from .custody import (create_asset, update_asset, delete_asset, assign_from_form, return_asset,
                      current_assignment)
from .errors import CustodyError, ValidationError
from .models import Asset, Assignment, ASSET_TYPES, ASSET_STATUSES
from .storage import DocumentStore
from .time_helpers import today_local
from .utils import parse_date, parse_price, form_text
from .utils_export import stream_csv, stream_xlsx, stream_pdf

bp = Blueprint("assets", __name__, template_folder="templates")

PER_PAGE = 15
TABS = ("general", "asignacion", "historial", "documentos")
EXPORT_HEADERS = ["id", "tipo", "marca", "modelo", "serie", "imei", "estado", "asignado_a", "fecha_asignacion",
                  "fecha_compra", "precio", "renovar", "notas"]


def _asset_fields(form):
    return {
        "device_type": form.get("device_type") or "portatil",
        "brand": form.get("brand"),
        "model": form.get("model"),
        "serial_number": form.get("serial_number"),
        "imei": form_text(form, "imei"),
        "purchase_date": parse_date(form.get("purchase_date")),
        "purchase_price": parse_price(form.get("purchase_price")),
        "specifications": form_text(form, "specifications"),
        "notes": form_text(form, "notes"),
        "needs_renewal": form.get("needs_renewal") == "on",
        "status": form.get("status"),
    }


def _get_asset(asset_id):
    asset = db.session.get(Asset, asset_id)
    if asset is None:
        flash("Equipo no encontrado", "error")
    return asset


def _filtered_query(args):
    q = Asset.query
    text = (args.get("q") or "").strip()
    kind = args.get("type") or "all"
    status = args.get("status") or "asignado"
    if text:
        like = f"%{text}%"
        holder = Asset.assignments.any(db.and_(
            Assignment.return_date.is_(None),
            db.or_(Assignment.employee_name.ilike(like), Assignment.employee_email.ilike(like))))
        q = q.filter(db.or_(Asset.brand.ilike(like), Asset.model.ilike(like), Asset.serial_number.ilike(like),
                            Asset.imei.ilike(like), Asset.assigned_to.ilike(like), holder))
    if kind in ASSET_TYPES:
        q = q.filter(Asset.device_type == kind)
    if status in ASSET_STATUSES:
        q = q.filter(Asset.status == status)
    return q.order_by(Asset.created_at.desc(), Asset.id.desc()), text, kind, status


# --------- LISTADO / FILTRO ---------
@bp.route("/", strict_slashes=False)
@bp.route("", strict_slashes=False)
@admin_required
def list_assets():
    q, text, kind, status = _filtered_query(request.args)
    page = request.args.get("page", 1, type=int)
    pagination = q.paginate(page=page, per_page=PER_PAGE, error_out=False)
    holders = {a.id: current_assignment(a) for a in pagination.items}
    return render_template("assets_list.html", pagination=pagination, assets=pagination.items, holders=holders,
                           text=text, kind=kind, status=status, ASSET_TYPES=ASSET_TYPES,
                           ASSET_STATUSES=ASSET_STATUSES)


# --------- CREAR ---------
@bp.route("/new", methods=["GET", "POST"])
@admin_required
def new_asset():
    if request.method == "POST":
        f = request.form
        try:
            initial = {
                "email": f.get("assigned_to"),
                "name": f"{(f.get('assign_first_name') or '').strip()} {(f.get('assign_last_name') or '').strip()}",
                "date": parse_date(f.get("assignment_date")),
                "client": f.get("client_name"),
            }
            asset = create_asset(_asset_fields(f), initial=initial)
        except CustodyError as e:
            current_app.logger.warning("Alta de equipo rechazada: %s", e)
            flash(str(e), "error")
            return render_template("asset_new.html", form=f, ASSET_TYPES=ASSET_TYPES), 400
        flash("Equipo creado correctamente.", "success")
        return redirect(url_for("assets.list_assets", status=asset.status))
    return render_template("asset_new.html", form={}, ASSET_TYPES=ASSET_TYPES)


# --------- VER DETALLE ---------
@bp.route("/<int:asset_id>")
@admin_required
def view_asset(asset_id):
    asset = _get_asset(asset_id)
    if asset is None:
        return redirect(url_for("assets.list_assets"))
    tab = request.args.get("tab") if request.args.get("tab") in TABS else "general"
    store = DocumentStore.from_app()
    history = (Assignment.query.filter_by(asset_id=asset.id)
               .order_by(Assignment.assigned_date.desc(), Assignment.id.desc()).all())
    return render_template("asset_detail.html", asset=asset, tab=tab, current=current_assignment(asset),
                           history=history, documents=store.list(asset.id), today=today_local(),
                           ASSET_TYPES=ASSET_TYPES, ASSET_STATUSES=ASSET_STATUSES)


# --------- EDITAR (pestaña General) ---------
@bp.route("/<int:asset_id>/edit", methods=["POST"])
@admin_required
def edit_asset(asset_id):
    asset = _get_asset(asset_id)
    if asset is None:
        return redirect(url_for("assets.list_assets"))
    try:
        update_asset(asset, _asset_fields(request.form))
        flash("Equipo actualizado correctamente", "success")
    except CustodyError as e:
        db.session.rollback()
        current_app.logger.warning("Edición del equipo %s rechazada: %s", asset_id, e)
        flash(str(e), "error")
    return redirect(url_for("assets.view_asset", asset_id=asset_id))


# --------- BORRAR ---------
@bp.route("/<int:asset_id>/delete", methods=["POST"])
@admin_required
def remove_asset(asset_id):
    asset = _get_asset(asset_id)
    if asset is None:
        return redirect(url_for("assets.list_assets"))
    try:
        delete_asset(asset, store=DocumentStore.from_app())
    except SQLAlchemyError:
        current_app.logger.exception("Error al eliminar el equipo %s", asset_id)
        flash("Error al eliminar el equipo", "error")
        return redirect(url_for("assets.view_asset", asset_id=asset_id))
    flash("Equipo eliminado correctamente", "success")
    return redirect(url_for("assets.list_assets"))


# --------- ASIGNAR / DEVOLVER ---------
@bp.route("/<int:asset_id>/assign", methods=["POST"])
@admin_required
def assign(asset_id):
    asset = _get_asset(asset_id)
    if asset is None:
        return redirect(url_for("assets.list_assets"))
    try:
        a = assign_from_form(asset, request.form)
        flash(f"Dispositivo asignado a {a.employee_name}", "success")
    except CustodyError as e:
        current_app.logger.warning("Asignación del equipo %s rechazada: %s", asset_id, e)
        flash(str(e), "error")
    return redirect(url_for("assets.view_asset", asset_id=asset_id, tab="asignacion"))


@bp.route("/<int:asset_id>/return", methods=["POST"])
@admin_required
def return_device(asset_id):
    asset = _get_asset(asset_id)
    if asset is None:
        return redirect(url_for("assets.list_assets"))
    raw_date = request.form.get("return_date")
    return_date = parse_date(raw_date)
    try:
        if raw_date and return_date is None:
            raise ValidationError("La fecha de devolución no es válida.")
        return_asset(asset, return_date=return_date, notes=form_text(request.form, "return_notes"))
        flash("Dispositivo devuelto. Estado: En Stock", "success")
    except CustodyError as e:
        current_app.logger.warning("Devolución del equipo %s rechazada: %s", asset_id, e)
        flash(str(e), "error")
    return redirect(url_for("assets.view_asset", asset_id=asset_id, tab="asignacion"))


# --------- EXPORTAR ---------
def _export_rows():
    q, *_ = _filtered_query(request.args)
    return [[a.id, a.device_type, a.brand, a.model, a.serial_number, a.imei, a.status, a.assigned_to,
             a.assignment_date, a.purchase_date, a.purchase_price, a.needs_renewal, a.notes] for a in q.all()]


@bp.route("/export.csv")
@admin_required
def export_csv():
    return stream_csv("inventario.csv", EXPORT_HEADERS, _export_rows())


@bp.route("/export.xlsx")
@admin_required
def export_xlsx():
    return stream_xlsx("inventario.xlsx", EXPORT_HEADERS, _export_rows(), title="Inventario")


@bp.route("/export.pdf")
@admin_required
def export_pdf():
    headers = ["ID", "Tipo", "Marca", "Modelo", "Serie", "Estado", "Asignado", "Fecha", "Precio"]
    rows = [[r[0], r[1], r[2], r[3], r[4], r[6], r[7], r[8], r[10]] for r in _export_rows()]
    return stream_pdf("inventario.pdf", "Inventario de equipos", headers, rows)
