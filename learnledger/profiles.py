from flask import current_app
from sqlalchemy import text

from learnledger import db, bcrypt
from learnledger.errors import ValidationFailed, NotFound, Unauthorized, ConflictState
from learnledger.skills import sync_user_skills, fetch_user_skills, parse_skill_list
from learnledger.utils import validate_wallet, normalize_identifier, isoformat, optional_text

ROLES = ('company', 'freelancer')

PROFILE_COLUMNS = """
id, wallet_address, role, display_name, password_hash, skills, short_description,
github_profile_username, created_at, updated_at
"""

UPDATABLE_FIELDS = {
    'displayName': 'display_name',
    'skills': 'skills',
    'shortDescription': 'short_description',
    'githubProfileUsername': 'github_profile_username',
}


def profile_to_dict(row, with_skills=False):
    profile = {
        'id': row.id,
        'walletAddress': row.wallet_address,
        'role': row.role,
        'displayName': row.display_name or '',
        'shortDescription': row.short_description or '',
        'githubProfileUsername': row.github_profile_username or '',
        'createdAt': isoformat(row.created_at),
        'updatedAt': isoformat(row.updated_at),
    }
    if with_skills:
        profile['skills'] = [skill['skillName'] for skill in fetch_user_skills(row.wallet_address)]
    return profile


def find_profile(identifier):
    query = f"SELECT {PROFILE_COLUMNS} FROM users WHERE wallet_address = :wallet;"
    return db.session.execute(text(query), {'wallet': normalize_identifier(identifier)}).fetchone()


def get_profile(identifier):
    row = find_profile(identifier)
    if not row:
        raise NotFound('Profile not found')
    return row


def register_profile(wallet_address, role, password, display_name=None, skills=None,
                     short_description=None, github_profile_username=None):
    wallet = validate_wallet(wallet_address)
    if role not in ROLES:
        raise ValidationFailed('Missing or invalid role (must be freelancer|company)')
    if not isinstance(password, str) or not password:
        raise ValidationFailed('Missing required field: password')
    for field, value in (('displayName', display_name), ('shortDescription', short_description),
                         ('githubProfileUsername', github_profile_username)):
        optional_text(value, field)
    parse_skill_list(skills)
    if find_profile(wallet):
        raise ConflictState(f"{role.capitalize()} profile with this wallet address already exists")

    password_hash = bcrypt.generate_password_hash(password).decode('utf-8')
    insert_query = f"""
    INSERT INTO users (wallet_address, role, display_name, password_hash, skills,
                       short_description, github_profile_username)
    VALUES (:wallet, :role, :display_name, :password_hash, :skills,
            :short_description, :github_profile_username)
    RETURNING {PROFILE_COLUMNS};
    """
    row = db.session.execute(text(insert_query), {
        'wallet': wallet,
        'role': role,
        'display_name': display_name or '',
        'password_hash': password_hash,
        'skills': skills or '',
        'short_description': short_description or '',
        'github_profile_username': github_profile_username or '',
    }).fetchone()

    if role == 'freelancer':
        sync_user_skills(wallet, skills)

    current_app.logger.info(f"Registered {role} profile for {wallet}")
    return profile_to_dict(row, with_skills=True)


def authenticate(wallet_address, password):
    row = find_profile(wallet_address) if wallet_address else None
    if row and isinstance(password, str) and password and bcrypt.check_password_hash(row.password_hash, password):
        return row
    raise Unauthorized('Invalid wallet address or password')


def update_profile(identifier, fields):
    row = get_profile(identifier)

    update_fields = []
    update_values = {'wallet': row.wallet_address}
    for field, column in UPDATABLE_FIELDS.items():
        if field in fields:
            update_fields.append(f"{column} = :{column}")
            update_values[column] = optional_text(fields[field], field) or ''

    if not update_fields:
        raise ValidationFailed('No updatable fields provided')

    update_fields.append("updated_at = CURRENT_TIMESTAMP")
    update_query = f"""
    UPDATE users
    SET {", ".join(update_fields)}
    WHERE wallet_address = :wallet
    RETURNING {PROFILE_COLUMNS};
    """
    updated = db.session.execute(text(update_query), update_values).fetchone()

    if 'skills' in update_values:
        sync_user_skills(row.wallet_address, update_values['skills'])

    return profile_to_dict(updated, with_skills=True)


def backfill_user_skills():
    """Create bridge rows for the free-text skills of every existing profile."""
    rows = db.session.execute(text("SELECT wallet_address, skills FROM users WHERE skills IS NOT NULL;")).fetchall()
    granted = 0
    for row in rows:
        granted += len(sync_user_skills(row.wallet_address, row.skills))
    return granted
