import os
from zoneinfo import ZoneInfo
from flask import Flask, render_template
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager

# Extensiones globales
db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()

DEFAULT_ACCESSORIES = ("Cargador", "Ratón", "Maletín", "Auriculares", "Funda", "Docking station")


def create_app(test_config=None):
    app = Flask(__name__)

    # --- Config básica ---
    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "devkey-change-me")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///it_manager.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["ORG_NAME"] = os.environ.get("ORG_NAME", "IT Manager")
    app.config["ADMIN_EMAIL"] = os.environ.get("ADMIN_EMAIL", "admin@example.com")
    app.config["ADMIN_PASSWORD"] = os.environ.get("ADMIN_PASSWORD", "admin")
    app.config["LOG_DIR"] = os.environ.get("LOG_DIR", os.path.join(app.root_path, "logs"))
    app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO")

    # --- TZ / UTF-8 ---
    app.config["TZ_NAME"] = os.environ.get("TZ_NAME", "Europe/Madrid")
    app.config["NAIVE_AS"] = os.environ.get("NAIVE_AS", "UTC")
    app.config["JSON_AS_ASCII"] = False

    # --- Carpeta de subidas (bucket "documents") ---
    app.config["UPLOAD_FOLDER"] = os.environ.get("UPLOAD_FOLDER", os.path.join(app.root_path, "uploads"))
    app.config.setdefault("MAX_CONTENT_LENGTH", 25 * 1024 * 1024)  # 25MB
    app.config["MAX_DOCUMENT_SIZE"] = 10 * 1024 * 1024
    app.config["SIGNED_URL_EXPIRES"] = 3600

    if test_config:
        app.config.update(test_config)
    app.config["APP_TZ"] = ZoneInfo(app.config["TZ_NAME"])
    os.makedirs(os.path.join(app.config["UPLOAD_FOLDER"], "documents"), exist_ok=True)

    from .logging_cfg import setup_logging
    setup_logging(app)

    # --- Inicializar extensiones ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    login_manager.login_view = "auth.login"
    login_manager.login_message = "Inicia sesión para continuar."
    login_manager.login_message_category = "error"

    from .models import User, Accessory  # noqa

    from .routes import bp as main_bp
    from .auth import bp as auth_bp
    from .assets import bp as assets_bp
    from .assignments import bp as assignments_bp
    from .documents import bp as documents_bp
    from .solicitudes import bp as requests_bp
    from .devices import bp as devices_bp
    from .admin import bp as admin_bp

    # --- Registrar blueprints ---
    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(assets_bp, url_prefix="/assets")
    app.register_blueprint(assignments_bp)
    app.register_blueprint(documents_bp, url_prefix="/documents")
    app.register_blueprint(requests_bp)
    app.register_blueprint(devices_bp, url_prefix="/my-devices")
    app.register_blueprint(admin_bp, url_prefix="/admin")

    # --- DB mínima: admin y catálogo de accesorios ---
    with app.app_context():
        db.create_all()
        admin_email = app.config["ADMIN_EMAIL"].strip().lower()
        if not User.query.filter_by(email=admin_email).first():
            User.create_user(admin_email, app.config["ADMIN_PASSWORD"], "Administrador",
                             department="IT", role="admin")
            app.logger.info("Usuario admin inicial creado: %s", admin_email)
        if Accessory.query.count() == 0:
            for name in DEFAULT_ACCESSORIES:
                db.session.add(Accessory(name=name))
            db.session.commit()

    # --- Filtros Jinja ---
    from .time_helpers import fmt_local
    from .models import TYPE_LABELS, STATUS_LABELS, REQUEST_STATUS_LABELS

    def _fmt_date(d):
        return d.strftime("%d/%m/%Y") if d else "-"

    def _fmt_eur(value):
        if value is None or value == "":
            return "-"
        s = f"{float(value):,.2f}"
        # 1,234.56 -> 1.234,56
        return "€" + s.replace(",", "X").replace(".", ",").replace("X", ".")

    app.jinja_env.filters["localtime"] = fmt_local
    app.jinja_env.filters["fecha"] = _fmt_date
    app.jinja_env.filters["eur"] = _fmt_eur
    app.jinja_env.filters["type_label"] = lambda v: TYPE_LABELS.get(v, v)
    app.jinja_env.filters["status_label"] = lambda v: STATUS_LABELS.get(v, v)
    app.jinja_env.filters["request_label"] = lambda v: REQUEST_STATUS_LABELS.get(v, v)

    # --- Forzar header UTF-8 en HTML ---
    @app.after_request
    def _force_utf8(resp):
        if resp.mimetype in ("text/html", "application/xhtml+xml"):
            resp.headers["Content-Type"] = "text/html; charset=utf-8"
        return resp

    @app.errorhandler(403)
    def _forbidden(e):
        return render_template("error.html", code=403, message="No tienes permiso para ver esta página."), 403

    @app.errorhandler(404)
    def _not_found(e):
        return render_template("error.html", code=404, message="Página no encontrada."), 404

    return app
