# itmanager/time_helpers.py
from datetime import datetime
from zoneinfo import ZoneInfo
from flask import current_app

UTC = ZoneInfo("UTC")


def app_tz():
    return current_app.config.get("APP_TZ", ZoneInfo("Europe/Madrid"))


def today_local():
    """Fecha de hoy en la zona de la app (por defecto en asignaciones y devoluciones)."""
    return datetime.now(app_tz()).date()


def to_local(dt):
    if dt is None:
        return None
    if dt.tzinfo is None:
        # created_at/request_date se guardan ingenuos; NAIVE_AS dice en qué zona
        naive_as = (current_app.config.get("NAIVE_AS") or "UTC").upper()
        dt = dt.replace(tzinfo=UTC if naive_as == "UTC" else app_tz())
    return dt.astimezone(app_tz())


def fmt_local(dt, fmt="%d/%m/%Y %H:%M"):
    return to_local(dt).strftime(fmt) if dt else ""
