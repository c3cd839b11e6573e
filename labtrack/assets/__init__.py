from flask import Blueprint

bp = Blueprint('assets', __name__)

from labtrack.assets import routes  # noqa: E402,F401
