"""Máquina de estados del equipo y ledger de asignaciones.

Estados del equipo: ``stock`` -> ``asignado`` (asignar), ``asignado`` -> ``stock``
(devolver) y cualquier estado -> ``baja`` (edición manual). Cada transición escribe
la fila de ``assignments`` y la copia en ``assets`` dentro del mismo commit; si el
commit falla se hace rollback y no queda ninguna de las dos escrituras.

Invariante: ``status == "asignado"`` si y solo si el equipo tiene exactamente una
asignación con ``return_date`` a None.
"""
from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import db
from .errors import ValidationError, InvalidTransition, DuplicateSerial
from .models import Asset, Assignment, Profile, ASSET_TYPES, ASSET_STATUSES
from .time_helpers import today_local
from .utils import is_email, parse_date, log

INITIAL_ASSIGNMENT_NOTE = "Asignación inicial al crear el equipo"


def _is_duplicate_serial(exc):
    msg = str(getattr(exc, "orig", exc)).lower()
    return "serial_number" in msg and ("unique" in msg or "duplicate key" in msg)


def _commit():
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        if _is_duplicate_serial(e):
            raise DuplicateSerial() from e
        raise
    except SQLAlchemyError:
        db.session.rollback()
        raise


def current_assignment(asset):
    """Custodia actual: la asignación abierta más reciente del equipo (o None)."""
    if asset is None or asset.id is None:
        return None
    return asset.current_assignment()


def find_profile(email):
    if not email:
        return None
    return Profile.query.filter(func.lower(Profile.email) == email.strip().lower()).first()


def _serial_taken(serial, exclude_id=None):
    q = Asset.query.filter(Asset.serial_number == serial)
    if exclude_id is not None:
        q = q.filter(Asset.id != exclude_id)
    return db.session.query(q.exists()).scalar()


def _clean_asset_fields(fields):
    data = dict(fields)
    for key in ("brand", "model", "serial_number"):
        data[key] = (data.get(key) or "").strip()
    if not (data["brand"] and data["model"] and data["serial_number"]):
        raise ValidationError("Marca, modelo y número de serie son obligatorios.")
    if data.get("device_type") not in ASSET_TYPES:
        raise ValidationError("Tipo de equipo no válido.")
    return data


# --------- ASIGNAR ---------
def assign_asset(asset, employee_name, employee_email, assigned_date, client_name=None, notes=None,
                 accessories=None, profile=None, commit=True, require_name=True):
    employee_name = (employee_name or "").strip()
    employee_email = (employee_email or "").strip()
    if (require_name and not employee_name) or not employee_email or not assigned_date:
        raise ValidationError("Completa todos los campos obligatorios")
    if not is_email(employee_email):
        raise ValidationError("El email del empleado no es válido.")
    if asset.status == "baja":
        raise InvalidTransition("No se puede asignar un equipo dado de baja.")
    if asset.status == "asignado" or current_assignment(asset) is not None:
        raise InvalidTransition("Primero debes registrar la devolución del custodio actual.")

    if profile is None:
        profile = find_profile(employee_email)
    assignment = Assignment(
        asset=asset,
        profile_id=profile.id if profile else None,
        assigned_date=assigned_date,
        employee_name=employee_name or None,
        employee_email=employee_email,
        client_name=(client_name or "").strip() or None,
        included_accessories=list(accessories or []),
        notes=(notes or "").strip() or None,
    )
    db.session.add(assignment)
    asset.status = "asignado"
    asset.assigned_to = employee_email
    asset.assignment_date = assigned_date
    if commit:
        _commit()
        log("assign", "Asset", asset.id, details=f"Asignado a {employee_email} desde {assigned_date}")
        current_app.logger.info("Equipo %s asignado a %s", asset.serial_number, employee_email)
    return assignment


def assign_from_form(asset, form):
    """Pestaña Asignación: nombre, apellido, email y fecha son obligatorios."""
    first = (form.get("assign_first_name") or "").strip()
    last = (form.get("assign_last_name") or "").strip()
    email = (form.get("assign_email") or "").strip()
    raw_date = (form.get("assign_date") or "").strip()
    if not (first and last and email and raw_date):
        raise ValidationError("Completa todos los campos obligatorios")
    assigned_date = parse_date(raw_date)
    if assigned_date is None:
        raise ValidationError("La fecha de asignación no es válida.")
    return assign_asset(asset, f"{first} {last}", email, assigned_date,
                        client_name=form.get("assign_client"), notes=form.get("assign_notes"))


# --------- DEVOLVER ---------
def close_assignment(assignment, return_date=None, notes=None, commit=True):
    """Cierra la custodia. Si la fila tiene equipo, éste vuelve a stock."""
    if assignment.return_date is not None:
        raise InvalidTransition("La asignación ya estaba cerrada.")
    if return_date is None:
        # sin fecha: hoy, o la de asignación si ésta es futura
        return_date = max(today_local(), assignment.assigned_date)
    if return_date < assignment.assigned_date:
        raise ValidationError("La fecha de devolución no puede ser anterior a la de asignación.")

    asset = assignment.asset
    rows = asset.open_assignments() if asset is not None else [assignment]
    if assignment not in rows:
        rows.append(assignment)
    for row in rows:
        row.return_date = return_date
    if notes:
        assignment.notes = notes.strip()
    if asset is not None:
        asset.status = "stock"
        asset.assigned_to = None
        asset.assignment_date = None
    if commit:
        _commit()
        log("return", "Assignment", assignment.id, details=f"Devuelto el {return_date}")
        current_app.logger.info("Asignación %s cerrada el %s", assignment.id, return_date)
    return assignment


def return_asset(asset, return_date=None, notes=None, commit=True):
    open_assignment = current_assignment(asset)
    if open_assignment is None:
        raise InvalidTransition("El equipo no tiene ninguna asignación activa.")
    return close_assignment(open_assignment, return_date=return_date, notes=notes, commit=commit)


# --------- ALTA / EDICIÓN / BAJA ---------
def create_asset(fields, initial=None):
    """Alta de equipo. ``initial`` (opcional) trae la asignación inicial: email, nombre, fecha, cliente."""
    data = _clean_asset_fields(fields)
    if _serial_taken(data["serial_number"]):
        raise DuplicateSerial()
    initial = initial or {}
    email = (initial.get("email") or "").strip()
    if email and not is_email(email):
        raise ValidationError("El email del empleado no es válido.")

    asset = Asset(
        device_type=data["device_type"],
        brand=data["brand"],
        model=data["model"],
        serial_number=data["serial_number"],
        imei=data.get("imei"),
        purchase_date=data.get("purchase_date"),
        purchase_price=data.get("purchase_price"),
        specifications=data.get("specifications"),
        notes=data.get("notes"),
        needs_renewal=bool(data.get("needs_renewal")),
        status="stock",
    )
    db.session.add(asset)
    if email:
        assign_asset(asset, initial.get("name"), email, initial.get("date") or today_local(),
                     client_name=initial.get("client"), notes=INITIAL_ASSIGNMENT_NOTE, commit=False,
                     require_name=False)
    _commit()
    log("create", "Asset", asset.id, details=f"Alta {asset.title} S/N {asset.serial_number} ({asset.status})")
    current_app.logger.info("Equipo creado %s (%s)", asset.serial_number, asset.status)
    return asset


def update_asset(asset, fields):
    data = _clean_asset_fields(fields)
    if _serial_taken(data["serial_number"], exclude_id=asset.id):
        raise DuplicateSerial()
    new_status = data.get("status") or asset.status
    if new_status not in ASSET_STATUSES:
        raise ValidationError("Estado no válido.")
    if new_status == "asignado" and asset.status != "asignado":
        raise InvalidTransition("Para asignar el equipo usa la pestaña Asignación.")

    old = (asset.device_type, asset.brand, asset.model, asset.serial_number, asset.status)
    if asset.status == "asignado" and new_status != "asignado" and current_assignment(asset) is not None:
        return_asset(asset, commit=False)

    for key in ("device_type", "brand", "model", "serial_number", "imei", "purchase_date",
                "purchase_price", "specifications", "notes"):
        setattr(asset, key, data.get(key))
    asset.needs_renewal = bool(data.get("needs_renewal"))
    asset.status = new_status
    _commit()
    log("update", "Asset", asset.id,
        details=f"Antes {old} / Después {(asset.device_type, asset.brand, asset.model, asset.serial_number, asset.status)}")
    return asset


def delete_asset(asset, store=None):
    asset_id, label = asset.id, f"{asset.title} S/N {asset.serial_number}"
    db.session.delete(asset)
    _commit()
    if store is not None:
        store.delete_folder(asset_id)
    log("delete", "Asset", asset_id, details=f"Eliminado {label}")
    current_app.logger.info("Equipo eliminado %s", label)
