from flask import Blueprint

bp = Blueprint('transfers', __name__)

from labtrack.transfers import routes  # noqa: E402,F401
