from flask import Blueprint
bp = Blueprint("estimates", __name__)
# Import API modules so their @bp.route decorators run
from . import routes          # /estimates, sections, items
from . import api_views       # /estimates/<id>/views/...
from . import api_versions    # /estimates/<id>/versions/...
