from flask import Blueprint

bp = Blueprint('issues', __name__)

from labtrack.issues import routes  # noqa: E402,F401
