from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from . import db, login_manager


ASSET_TYPES = ("portatil", "movil", "raton", "maletin", "auriculares", "tablet", "memoria", "teclado", "monitor")
ASSET_STATUSES = ("stock", "asignado", "baja")
APP_ROLES = ("admin", "user")

TYPE_LABELS = {
    "portatil": "Portátil",
    "movil": "Móvil",
    "raton": "Ratón",
    "maletin": "Maletín",
    "auriculares": "Auriculares",
    "tablet": "Tablet",
    "memoria": "Memoria",
    "teclado": "Teclado",
    "monitor": "Monitor",
}
STATUS_LABELS = {"stock": "En Stock", "asignado": "Asignado", "baja": "De Baja"}
REQUEST_STATUS_LABELS = {"pendiente": "Pendiente", "aprobado": "Aprobado", "rechazado": "Rechazado"}


class User(UserMixin, db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    profile = db.relationship("Profile", backref="user", uselist=False, cascade="all, delete-orphan")
    roles = db.relationship("UserRole", backref="user", cascade="all, delete-orphan", lazy=True)

    @classmethod
    def create_user(cls, email, password, full_name, department=None, role="user"):
        """Alta de usuario + perfil + rol en un único commit."""
        email = email.strip().lower()
        u = cls(email=email, password_hash=generate_password_hash(password))
        u.profile = Profile(full_name=full_name.strip(), email=email, department=department or None)
        u.roles.append(UserRole(role=role if role in APP_ROLES else "user"))
        db.session.add(u); db.session.commit(); return u

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return any(r.role == "admin" for r in self.roles)

    @property
    def display_name(self):
        return self.profile.full_name if self.profile else self.email

    def __repr__(self):
        return f"<User {self.email}>"


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


class UserRole(db.Model):
    __tablename__ = "user_roles"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False, default="user")  # admin | user


class Profile(db.Model):
    __tablename__ = "profiles"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), unique=True, nullable=False)
    full_name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), nullable=False, index=True)
    department = db.Column(db.String(120))
    role = db.Column(db.String(120))  # puesto, texto libre
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Profile {self.full_name!r}>"


class Accessory(db.Model):
    __tablename__ = "accessories"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    description = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class Asset(db.Model):
    __tablename__ = "assets"
    id = db.Column(db.Integer, primary_key=True)
    device_type = db.Column(db.String(20), nullable=False, default="portatil", index=True)
    brand = db.Column(db.String(120), nullable=False)
    model = db.Column(db.String(120), nullable=False)
    serial_number = db.Column(db.String(120), unique=True, nullable=False)
    imei = db.Column(db.String(40))
    purchase_date = db.Column(db.Date)
    purchase_price = db.Column(db.Numeric(10, 2))
    status = db.Column(db.String(20), nullable=False, default="stock", index=True)
    needs_renewal = db.Column(db.Boolean, nullable=False, default=False)
    specifications = db.Column(db.Text)
    notes = db.Column(db.Text)
    # copia del custodio actual (email) y fecha; la fuente de verdad es el ledger
    assigned_to = db.Column(db.String(200))
    assignment_date = db.Column(db.Date)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    assignments = db.relationship("Assignment", backref="asset", cascade="all, delete-orphan",
                                  lazy=True, order_by="Assignment.assigned_date.desc()")

    def open_assignments(self):
        return [a for a in self.assignments if a.return_date is None]

    def current_assignment(self):
        return (Assignment.query
                .filter(Assignment.asset_id == self.id, Assignment.return_date.is_(None))
                .order_by(Assignment.assigned_date.desc(), Assignment.id.desc())
                .first())

    @property
    def title(self):
        return f"{self.brand} {self.model}"

    def __repr__(self):
        return f"<Asset {self.serial_number}>"


class Assignment(db.Model):
    __tablename__ = "assignments"
    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(db.Integer, db.ForeignKey("assets.id"), nullable=True, index=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=True, index=True)
    assigned_date = db.Column(db.Date, nullable=False)
    return_date = db.Column(db.Date, nullable=True)  # None = custodia abierta
    employee_name = db.Column(db.String(200))
    employee_email = db.Column(db.String(200))
    client_name = db.Column(db.String(200))
    included_accessories = db.Column(db.JSON, default=list)
    notes = db.Column(db.Text)
    signed = db.Column(db.Boolean, nullable=False, default=False)
    pdf_document_url = db.Column(db.String(255))  # nombre del archivo en documents/<asset_id>/
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    profile = db.relationship("Profile", backref=db.backref("assignments", lazy="dynamic"))

    @property
    def is_open(self):
        return self.return_date is None

    @property
    def holder_name(self):
        if self.employee_name:
            return self.employee_name
        if self.profile:
            return self.profile.full_name
        return self.employee_email or "Usuario desconocido"

    @property
    def accessories(self):
        return list(self.included_accessories or [])

    def __repr__(self):
        return f"<Assignment {self.id} asset={self.asset_id} open={self.is_open}>"


class MaterialRequest(db.Model):
    __tablename__ = "requests"
    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False, index=True)
    material_type = db.Column(db.String(120), nullable=False)
    justification = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pendiente", index=True)
    admin_response = db.Column(db.Text)
    request_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    profile = db.relationship("Profile", backref=db.backref("requests", lazy="dynamic"))

    @property
    def is_pending(self):
        return self.status == "pendiente"

    def __repr__(self):
        return f"<MaterialRequest {self.id} {self.status}>"


class ChangeLog(db.Model):
    __tablename__ = "changelog"
    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, default=datetime.now, nullable=False)
    username = db.Column(db.String(200))
    action = db.Column(db.String(50))
    entity = db.Column(db.String(50))
    entity_id = db.Column(db.Integer)
    details = db.Column(db.Text)
