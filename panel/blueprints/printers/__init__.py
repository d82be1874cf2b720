from flask import Blueprint

printers_bp = Blueprint("printers", __name__, url_prefix="/api/printers")

from panel.blueprints.printers import routes  # noqa: E402,F401
