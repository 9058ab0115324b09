from flask import Blueprint, request
from flask_jwt_extended import jwt_required, get_jwt_identity

from learnledger.dashboards import company_metrics, freelancer_metrics
from learnledger.errors import NotFound
from learnledger.profiles import get_profile
from learnledger.utils import success

dashboard_bp = Blueprint('dashboard', __name__)


def _identity_with_role(role):
    wallet = get_jwt_identity()
    if get_profile(wallet).role != role:
        raise NotFound(f"No {role} found for {wallet}")
    return wallet


@dashboard_bp.route('/company', methods=['GET'])
@jwt_required()
def company_dashboard():
    wallet = _identity_with_role('company')
    return success(company_metrics(wallet, request.args.get('timeframe', '24h')))


@dashboard_bp.route('/freelancer', methods=['GET'])
@jwt_required()
def freelancer_dashboard():
    wallet = _identity_with_role('freelancer')
    return success(freelancer_metrics(wallet))
