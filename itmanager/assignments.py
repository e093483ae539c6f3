import time
from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app, send_file
from . import db
from .acta import handover_pdf, acta_filename
from .auth import admin_required
from .custody import assign_asset, close_assignment
from .documents import attach_signed_document
from .errors import CustodyError, ValidationError
from .models import Asset, Assignment, Profile, Accessory
from .storage import DocumentStore
from .time_helpers import today_local
from .utils import parse_date, form_text

bp = Blueprint("assignments", __name__, template_folder="templates")


def _matches(a, term):
    asset = a.asset
    values = [a.holder_name, a.employee_email]
    if asset is not None:
        values += [asset.brand, asset.model, asset.serial_number]
    return any(term in (v or "").lower() for v in values)


# --------- LISTADO ---------
@bp.route("/assignments")
@admin_required
def list_assignments():
    text = request.args.get("q", "").strip()
    rows = Assignment.query.order_by(Assignment.created_at.desc(), Assignment.id.desc()).all()
    if text:
        rows = [a for a in rows if _matches(a, text.lower())]
    active = [a for a in rows if a.return_date is None]
    historic = [a for a in rows if a.return_date is not None]
    return render_template("assignments.html", active=active, historic=historic, text=text)


# --------- NUEVA ENTREGA (con acta PDF) ---------
@bp.route("/assignments/new", methods=["GET", "POST"])
@admin_required
def new_assignment():
    available = Asset.query.filter_by(status="stock").order_by(Asset.brand.asc(), Asset.model.asc()).all()
    profiles = Profile.query.order_by(Profile.full_name.asc()).all()
    accessories = Accessory.query.order_by(Accessory.name.asc()).all()

    if request.method == "POST":
        f = request.form
        asset = db.session.get(Asset, f.get("asset_id", type=int) or 0)
        profile = db.session.get(Profile, f.get("profile_id", type=int) or 0)
        try:
            if asset is None or profile is None:
                raise ValidationError("Selecciona un equipo y un empleado")
            known = {acc.name for acc in accessories}
            chosen = [name for name in f.getlist("accessories") if name in known]
            assigned_date = parse_date(f.get("assigned_date")) or today_local()
            assignment = assign_asset(asset, profile.full_name, profile.email, assigned_date,
                                      notes=f.get("notes"), accessories=chosen, profile=profile)
        except CustodyError as e:
            current_app.logger.warning("Nueva entrega rechazada: %s", e)
            flash(str(e), "error")
            return render_template("assignment_form.html", assets=available, profiles=profiles,
                                   accessories=accessories, today=today_local()), 400
        flash("Entrega creada y PDF generado", "success")
        pdf = handover_pdf(assignment, org_name=current_app.config["ORG_NAME"])
        return send_file(pdf, as_attachment=True, mimetype="application/pdf",
                         download_name=acta_filename(assignment, int(time.time() * 1000)))

    return render_template("assignment_form.html", assets=available, profiles=profiles,
                           accessories=accessories, today=today_local())


@bp.route("/assignments/<int:assignment_id>/acta.pdf")
@admin_required
def acta(assignment_id):
    assignment = db.get_or_404(Assignment, assignment_id)
    if assignment.asset is None:
        flash("La entrega no tiene equipo asociado.", "error")
        return redirect(url_for("assignments.list_assignments"))
    pdf = handover_pdf(assignment, org_name=current_app.config["ORG_NAME"])
    return send_file(pdf, as_attachment=True, mimetype="application/pdf",
                     download_name=acta_filename(assignment, assignment.assigned_date.strftime("%Y%m%d")))


# --------- DEVOLUCIÓN desde el listado ---------
@bp.route("/assignments/<int:assignment_id>/return", methods=["POST"])
@admin_required
def return_assignment(assignment_id):
    assignment = db.get_or_404(Assignment, assignment_id)
    raw_date = request.form.get("return_date")
    return_date = parse_date(raw_date)
    try:
        if raw_date and return_date is None:
            raise ValidationError("La fecha de devolución no es válida.")
        close_assignment(assignment, return_date=return_date, notes=form_text(request.form, "return_notes"))
        flash("Dispositivo devuelto. Estado: En Stock", "success")
    except CustodyError as e:
        current_app.logger.warning("Devolución de la entrega %s rechazada: %s", assignment_id, e)
        flash(str(e), "error")
    return redirect(url_for("assignments.list_assignments"))


# --------- DOCUMENTOS PENDIENTES ---------
@bp.route("/pending-docs")
@admin_required
def pending_docs():
    rows = (Assignment.query
            .filter(Assignment.return_date.is_(None))
            .filter(db.or_(Assignment.signed.is_(False), Assignment.pdf_document_url.is_(None)))
            .order_by(Assignment.assigned_date.desc(), Assignment.id.desc())
            .all())
    return render_template("pending_docs.html", assignments=rows)


@bp.route("/pending-docs/<int:assignment_id>/upload", methods=["POST"])
@admin_required
def upload_signed(assignment_id):
    assignment = db.get_or_404(Assignment, assignment_id)
    try:
        name = attach_signed_document(assignment, request.files.get("file"), DocumentStore.from_app())
        flash("Documento subido correctamente", "success")
        current_app.logger.info("Acta firmada %s subida para la entrega %s", name, assignment.id)
    except CustodyError as e:
        current_app.logger.warning("Subida de acta rechazada (entrega %s): %s", assignment_id, e)
        flash(str(e), "error")
    return redirect(url_for("assignments.pending_docs"))
