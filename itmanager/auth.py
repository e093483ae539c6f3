from functools import wraps
from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app
from flask_login import login_user, logout_user, login_required, current_user
from .models import User
from .utils import is_email

bp = Blueprint("auth", __name__, template_folder="templates")


def require_admin():
    return current_user.is_authenticated and getattr(current_user, "is_admin", False)


def admin_required(view):
    """Vistas de administración: el resto de usuarios va a Mis Dispositivos."""
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if not require_admin():
            flash("Solo un administrador puede acceder a esta sección.", "error")
            return redirect(url_for("devices.my_devices"))
        return view(*args, **kwargs)
    return wrapped


def home_url():
    return url_for("main.dashboard") if require_admin() else url_for("devices.my_devices")


@bp.route("", methods=["GET", "POST"], strict_slashes=False)
@bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(home_url())
    if request.method == "POST":
        email = request.form.get("email", "").strip().lower()
        password = request.form.get("password", "")
        user = User.query.filter_by(email=email).first()
        if user and user.check_password(password):
            login_user(user)
            current_app.logger.info("Login correcto: %s", email)
            return redirect(home_url())
        current_app.logger.warning("Login fallido: %s", email)
        flash("Credenciales inválidas.", "error")
    return render_template("auth.html", mode="login")


@bp.route("/signup", methods=["POST"])
def signup():
    f = request.form
    full_name = f.get("full_name", "").strip()
    email = f.get("email", "").strip().lower()
    password = f.get("password", "")
    department = f.get("department", "").strip() or None
    if not full_name or not email or not password:
        flash("Nombre, email y contraseña son obligatorios.", "error")
        return render_template("auth.html", mode="signup"), 400
    if not is_email(email):
        flash("El email no es válido.", "error")
        return render_template("auth.html", mode="signup"), 400
    if len(password) < 6:
        flash("La contraseña debe tener al menos 6 caracteres.", "error")
        return render_template("auth.html", mode="signup"), 400
    if User.query.filter_by(email=email).first():
        flash("Ya existe una cuenta con ese email.", "error")
        return render_template("auth.html", mode="signup"), 400
    user = User.create_user(email, password, full_name, department=department)
    login_user(user)
    current_app.logger.info("Alta de usuario: %s", email)
    flash("Cuenta creada correctamente.", "success")
    return redirect(home_url())


@bp.route("/logout")
@login_required
def logout():
    logout_user()
    return redirect(url_for("auth.login"))
