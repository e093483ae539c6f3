import os
import time
from sqlalchemy.exc import SQLAlchemyError
from flask import Blueprint, request, redirect, url_for, flash, current_app, send_file, abort
from . import db
from .auth import admin_required
from .errors import DocumentError
from .models import Asset
from .storage import DocumentStore
from .utils import log

bp = Blueprint("documents", __name__)

PDF_MIMETYPES = {"application/pdf", "application/x-pdf"}


def validate_pdf(file_storage, max_size):
    """Solo PDF y como máximo ``max_size`` bytes. Devuelve el tamaño."""
    if file_storage is None or not getattr(file_storage, "filename", ""):
        raise DocumentError("Selecciona un archivo PDF.")
    if not file_storage.filename.lower().endswith(".pdf") or file_storage.mimetype not in PDF_MIMETYPES:
        raise DocumentError("Solo se permiten archivos PDF")
    stream = file_storage.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    if size > max_size:
        raise DocumentError(f"El archivo no puede superar {max_size // (1024 * 1024)}MB")
    if stream.read(5) != b"%PDF-":
        raise DocumentError("El archivo no es un PDF válido.")
    stream.seek(0)
    return size


def attach_signed_document(assignment, file_storage, store):
    """Guarda el acta firmada en ``<asset_id>/`` y la enlaza en la asignación."""
    if assignment.asset_id is None:
        raise DocumentError("La entrega no tiene equipo asociado.")
    validate_pdf(file_storage, current_app.config.get("MAX_DOCUMENT_SIZE", 10 * 1024 * 1024))
    filename = f"{assignment.id}_{int(time.time() * 1000)}.pdf"
    name = store.save(assignment.asset_id, filename, file_storage.stream)
    assignment.pdf_document_url = name
    assignment.signed = True
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        store.delete(assignment.asset_id, name)
        raise
    log("upload_document", "Assignment", assignment.id, details=f"Acta firmada {name}")
    return name


def _back(asset_id):
    return redirect(url_for("assets.view_asset", asset_id=asset_id, tab="documentos"))


@bp.route("/<int:asset_id>/<path:filename>/view")
@admin_required
def view(asset_id, filename):
    store = DocumentStore.from_app()
    try:
        token = store.sign(asset_id, filename)
    except DocumentError as e:
        flash(str(e), "error")
        return _back(asset_id)
    return redirect(url_for("documents.signed", token=token))


@bp.route("/signed/<token>")
def signed(token):
    """URL firmada con caducidad; no requiere sesión."""
    store = DocumentStore.from_app()
    try:
        asset_id, filename = store.verify(token)
        path = store.path(asset_id, filename)
    except DocumentError as e:
        current_app.logger.warning("URL firmada rechazada: %s", e)
        abort(404)
    return send_file(path, mimetype="application/pdf", as_attachment=False, download_name=filename)


@bp.route("/<int:asset_id>/<path:filename>/download")
@admin_required
def download(asset_id, filename):
    store = DocumentStore.from_app()
    try:
        path = store.path(asset_id, filename)
    except DocumentError as e:
        current_app.logger.warning("Descarga de documento fallida %s/%s: %s", asset_id, filename, e)
        flash("Error al descargar el documento", "error")
        return _back(asset_id)
    return send_file(path, as_attachment=True, download_name=filename)


@bp.route("/<int:asset_id>/<path:filename>/delete", methods=["POST"])
@admin_required
def delete(asset_id, filename):
    db.get_or_404(Asset, asset_id)
    store = DocumentStore.from_app()
    try:
        store.delete(asset_id, filename)
    except (DocumentError, OSError) as e:
        current_app.logger.warning("Borrado de documento fallido %s/%s: %s", asset_id, filename, e)
        flash("Error al eliminar el documento", "error")
        return _back(asset_id)
    log("delete_document", "Asset", asset_id, details=f"Documento {filename} eliminado")
    flash("Documento eliminado", "success")
    return _back(asset_id)
