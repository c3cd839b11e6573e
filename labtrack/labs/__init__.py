from flask import Blueprint

bp = Blueprint('labs', __name__)

from labtrack.labs import routes  # noqa: E402,F401
