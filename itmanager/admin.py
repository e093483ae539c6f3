from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app
from . import db
from .auth import admin_required
from .models import User, UserRole, Accessory, ChangeLog
from .utils import log

bp = Blueprint("admin", __name__, template_folder="templates")


@bp.route("/users")
@admin_required
def users_list():
    users = User.query.order_by(User.email.asc()).all()
    return render_template("users.html", users=users, bootstrap_email=current_app.config["ADMIN_EMAIL"].lower())


@bp.route("/users/<int:uid>/role", methods=["POST"])
@admin_required
def users_role(uid):
    u = db.get_or_404(User, uid)
    role = request.form.get("role", "user")
    if role not in ("admin", "user"):
        flash("Rol no válido.", "error"); return redirect(url_for("admin.users_list"))
    if u.email == current_app.config["ADMIN_EMAIL"].lower() and role != "admin":
        flash("No se puede quitar el rol admin al administrador por defecto.", "error")
        return redirect(url_for("admin.users_list"))
    UserRole.query.filter_by(user_id=u.id).delete()
    db.session.add(UserRole(user_id=u.id, role=role))
    db.session.commit()
    log("set_role", "User", u.id, details=f"{u.email} -> {role}")
    flash("Rol actualizado.", "success")
    return redirect(url_for("admin.users_list"))


# --------- CATÁLOGO DE ACCESORIOS ---------
@bp.route("/accessories", methods=["GET", "POST"])
@admin_required
def accessories():
    if request.method == "POST":
        name = request.form.get("name", "").strip()
        if not name:
            flash("El nombre es obligatorio.", "error"); return redirect(url_for("admin.accessories"))
        if Accessory.query.filter_by(name=name).first():
            flash("Ya existe un accesorio con ese nombre.", "error"); return redirect(url_for("admin.accessories"))
        acc = Accessory(name=name, description=request.form.get("description", "").strip() or None)
        db.session.add(acc); db.session.commit()
        log("create", "Accessory", acc.id, details=name)
        flash("Accesorio creado.", "success")
        return redirect(url_for("admin.accessories"))
    items = Accessory.query.order_by(Accessory.name.asc()).all()
    return render_template("accessories.html", items=items)


@bp.route("/accessories/<int:acc_id>/delete", methods=["POST"])
@admin_required
def accessories_delete(acc_id):
    acc = db.get_or_404(Accessory, acc_id)
    name = acc.name
    db.session.delete(acc); db.session.commit()
    log("delete", "Accessory", acc_id, details=name)
    flash("Accesorio eliminado.", "success")
    return redirect(url_for("admin.accessories"))


@bp.route("/changelog")
@admin_required
def changelog():
    logs = ChangeLog.query.order_by(ChangeLog.created_at.desc(), ChangeLog.id.desc()).limit(200).all()
    return render_template("changelog.html", logs=logs)
