from flask import Blueprint
from storeadmin.utils import api_response
from datetime import datetime

bp = Blueprint('health', __name__)


@bp.route('/health', methods=['GET'])
def health():
    return api_response(
        message='Store admin API is running',
        timestamp=datetime.utcnow().isoformat())
