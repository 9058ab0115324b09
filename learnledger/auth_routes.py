from flask import Blueprint, jsonify, current_app
from flask_jwt_extended import create_access_token

from learnledger.profiles import register_profile, authenticate
from learnledger.utils import atomic, require_fields, json_body

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/register', methods=['POST'])
def register():
    data = json_body()
    require_fields(data, 'role', 'walletAddress', 'password')
    current_app.logger.debug(f"Registering {data.get('role')} profile for {data.get('walletAddress')}")

    with atomic():
        profile = register_profile(
            wallet_address=data.get('walletAddress'),
            role=data.get('role'),
            password=data.get('password'),
            display_name=data.get('displayName'),
            skills=data.get('skills'),
            short_description=data.get('shortDescription'),
            github_profile_username=data.get('githubProfileUsername'),
        )

    return jsonify({'isSuccess': True, 'message': 'User registered successfully', 'data': profile}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = json_body()
    profile = authenticate(data.get('walletAddress', ''), data.get('password'))

    # The wallet is the identity every other route authorizes against
    access_token = create_access_token(identity=profile.wallet_address)
    return jsonify({'isSuccess': True, 'access_token': access_token, 'role': profile.role}), 200
