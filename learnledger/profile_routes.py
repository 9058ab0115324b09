from flask import Blueprint, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from learnledger.balances import get_balance, list_credits
from learnledger.profiles import get_profile, profile_to_dict, update_profile
from learnledger.skills import get_or_create_skill, add_skill_to_user, fetch_user_skills, list_skills
from learnledger.utils import atomic, success, validate_wallet, require_fields, as_decimal, json_body

profile_bp = Blueprint('profile', __name__)


@profile_bp.route('/view', methods=['GET'])
@jwt_required()
def view_profile():
    wallet = get_jwt_identity()
    return success(profile_to_dict(get_profile(wallet), with_skills=True))


@profile_bp.route('/update', methods=['PUT'])
@jwt_required()
def update_my_profile():
    wallet = get_jwt_identity()
    current_app.logger.debug(f"Received request to update profile for {wallet}")
    data = json_body()

    with atomic():
        profile = update_profile(wallet, data)
    return success(profile, 'Profile updated successfully')


@profile_bp.route('/<wallet_address>', methods=['GET'])
@jwt_required()
def view_other_profile(wallet_address):
    wallet = validate_wallet(wallet_address)
    return success(profile_to_dict(get_profile(wallet), with_skills=True))


@profile_bp.route('/skills', methods=['GET'])
@jwt_required()
def my_skills():
    return success(fetch_user_skills(get_jwt_identity()))


@profile_bp.route('/skills', methods=['POST'])
@jwt_required()
def add_my_skill():
    wallet = get_jwt_identity()
    data = json_body()
    require_fields(data, 'skillName')

    with atomic():
        skill = get_or_create_skill(data['skillName'], data.get('skillDescription'))
        user_skill = add_skill_to_user(wallet, skill['id'])

    current_app.logger.debug(f"{wallet} added skill {skill['name']}")
    return success({'skill': skill, 'userSkill': user_skill}, 'Skill assigned to user successfully', 201)


@profile_bp.route('/skills/all', methods=['GET'])
@jwt_required()
def all_skills():
    return success(list_skills())


@profile_bp.route('/balance', methods=['GET'])
@jwt_required()
def my_balance():
    wallet = get_jwt_identity()
    return success({'identifier': wallet, 'balance': str(get_balance(wallet))})


@profile_bp.route('/earnings', methods=['GET'])
@jwt_required()
def my_earnings():
    wallet = get_jwt_identity()
    history = list_credits(wallet)
    return success({
        'totalEarnings': str(sum((as_decimal(item['amount']) for item in history), as_decimal('0'))),
        'balance': str(get_balance(wallet)),
        'earningsHistory': history,
    })
