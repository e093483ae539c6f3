from flask import Blueprint, render_template, abort
from flask_login import login_required, current_user
from sqlalchemy import false
from .models import Assignment

bp = Blueprint("devices", __name__, template_folder="templates")


def _my_open_assignments():
    profile = current_user.profile
    if profile is None:
        return Assignment.query.filter(false())
    return (Assignment.query
            .filter(Assignment.profile_id == profile.id, Assignment.return_date.is_(None))
            .order_by(Assignment.assigned_date.desc(), Assignment.id.desc()))


@bp.route("/", strict_slashes=False)
@bp.route("", strict_slashes=False)
@login_required
def my_devices():
    return render_template("my_devices.html", assignments=_my_open_assignments().all())


@bp.route("/<int:assignment_id>")
@login_required
def device_detail(assignment_id):
    assignment = _my_open_assignments().filter(Assignment.id == assignment_id).first()
    if assignment is None or assignment.asset is None:
        abort(404)
    return render_template("device_detail.html", assignment=assignment, asset=assignment.asset)
