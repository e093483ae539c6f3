from flask import Blueprint, render_template, redirect, url_for
from flask_login import current_user
from .models import Asset, MaterialRequest
from .auth import admin_required, home_url
from .dashboard import compute_kpis
from .time_helpers import today_local

bp = Blueprint("main", __name__)


@bp.app_template_filter("yn")
def yn(value):
    return "Sí" if value else "No"


@bp.route("/")
def index():
    if not current_user.is_authenticated:
        return redirect(url_for("auth.login"))
    return redirect(home_url())


@bp.route("/dashboard")
@admin_required
def dashboard():
    assets = Asset.query.all()
    pending = MaterialRequest.query.filter_by(status="pendiente").count()
    kpis = compute_kpis(assets, pending_requests=pending, today=today_local())
    return render_template("dashboard.html", kpis=kpis, year=today_local().year)
