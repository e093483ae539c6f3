## utils.py: helpers de formularios y auditoría

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from flask_login import current_user
from . import db
from .errors import ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def parse_date(s):
    try:
        return datetime.strptime(s, "%Y-%m-%d").date() if s else None
    except (TypeError, ValueError):
        return None


def parse_price(s):
    s = (s or "").strip().replace(",", ".")
    if not s:
        return None
    try:
        value = Decimal(s)
    except InvalidOperation:
        raise ValidationError("El precio de compra no es un número válido.")
    if value < 0:
        raise ValidationError("El precio de compra no puede ser negativo.")
    return value.quantize(Decimal("0.01"))


def is_email(value):
    return bool(EMAIL_RE.match(value or ""))


def form_text(form, key):
    """Texto recortado del form o None si viene vacío."""
    return (form.get(key) or "").strip() or None


def log(action, entity, entity_id, details="", commit=True):
    from .models import ChangeLog
    username = getattr(current_user, "email", None) or "system"
    db.session.add(ChangeLog(username=username, action=action, entity=entity, entity_id=entity_id, details=details))
    if commit:
        db.session.commit()
