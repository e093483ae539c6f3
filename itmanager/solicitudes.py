from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app
from flask_login import login_required, current_user
from . import db
from .auth import admin_required
from .errors import RequestTransitionError, ValidationError, CustodyError
from .models import MaterialRequest
from .utils import log

bp = Blueprint("requests", __name__, template_folder="templates")

ACTIONS = {"aprobar": "aprobado", "rechazar": "rechazado"}


def submit_request(profile, material_type, justification):
    material_type = (material_type or "").strip()
    justification = (justification or "").strip()
    if profile is None:
        raise ValidationError("Tu usuario no tiene perfil asociado.")
    if not material_type or not justification:
        raise ValidationError("Indica el tipo de material y la justificación.")
    req = MaterialRequest(profile_id=profile.id, material_type=material_type, justification=justification)
    db.session.add(req)
    db.session.commit()
    log("create", "Request", req.id, details=f"{material_type} solicitado por {profile.email}")
    return req


def respond(req, action, response=None):
    """pendiente -> aprobado | rechazado. Ambos son finales; rechazar exige respuesta."""
    new_status = ACTIONS.get(action)
    if new_status is None:
        raise RequestTransitionError("Acción no válida.")
    if not req.is_pending:
        raise RequestTransitionError("La solicitud ya fue respondida.")
    response = (response or "").strip() or None
    if new_status == "rechazado" and not response:
        raise RequestTransitionError("Indica el motivo del rechazo.")
    req.status = new_status
    req.admin_response = response
    db.session.commit()
    log("respond", "Request", req.id, details=f"{new_status}: {response or ''}")
    return req


# --------- ADMIN ---------
@bp.route("/requests")
@admin_required
def list_requests():
    rows = MaterialRequest.query.order_by(MaterialRequest.request_date.desc(), MaterialRequest.id.desc()).all()
    pending = [r for r in rows if r.is_pending]
    processed = [r for r in rows if not r.is_pending]
    return render_template("requests.html", pending=pending, processed=processed)


@bp.route("/requests/<int:request_id>/respond", methods=["POST"])
@admin_required
def respond_request(request_id):
    req = db.get_or_404(MaterialRequest, request_id)
    action = request.form.get("action", "")
    try:
        respond(req, action, request.form.get("response"))
        flash("Solicitud aprobada" if req.status == "aprobado" else "Solicitud rechazada", "success")
    except RequestTransitionError as e:
        current_app.logger.warning("Respuesta a la solicitud %s rechazada: %s", request_id, e)
        flash(str(e), "error")
    return redirect(url_for("requests.list_requests"))


# --------- EMPLEADO ---------
@bp.route("/my-requests", methods=["GET", "POST"])
@login_required
def my_requests():
    profile = current_user.profile
    if request.method == "POST":
        try:
            submit_request(profile, request.form.get("material_type"), request.form.get("justification"))
            flash("Solicitud enviada correctamente", "success")
        except CustodyError as e:
            current_app.logger.warning("Solicitud de %s rechazada: %s", current_user.email, e)
            flash(str(e), "error")
        return redirect(url_for("requests.my_requests"))
    rows = []
    if profile is not None:
        rows = (MaterialRequest.query.filter_by(profile_id=profile.id)
                .order_by(MaterialRequest.request_date.desc(), MaterialRequest.id.desc()).all())
    return render_template("my_requests.html", requests=rows)
