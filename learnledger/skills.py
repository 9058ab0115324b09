"""
Skill definitions and the user -> skill bridge table.

The bridge table is the only source of a user's skills. Free-text skill
strings (registration form, legacy `users.skills`) are turned into bridge
rows by `sync_user_skills` when they are written, never parsed at read time.
"""
from flask import current_app
from sqlalchemy import text

from learnledger import db
from learnledger.errors import ValidationFailed, ConflictState, NotFound
from learnledger.utils import normalize_identifier, isoformat, optional_text


def parse_skill_list(skills_text):
    """Split a comma-separated skill string, dropping blanks and case-insensitive repeats."""
    if skills_text is not None and not isinstance(skills_text, str):
        raise ValidationFailed('Skills must be a comma-separated string')
    names = []
    seen = set()
    for raw in (skills_text or '').split(','):
        name = raw.strip()
        if name and name.lower() not in seen:
            seen.add(name.lower())
            names.append(name)
    return names


def _skill_to_dict(row):
    return {'id': row.id, 'name': row.name, 'description': row.description}


def get_skill_by_name(name):
    query = "SELECT id, name, description FROM skills WHERE lower(name) = lower(:name);"
    row = db.session.execute(text(query), {'name': name.strip()}).fetchone()
    return _skill_to_dict(row) if row else None


def get_or_create_skill(name, description=None):
    if not optional_text(name, 'skillName') or not name.strip():
        raise ValidationFailed('Skill name cannot be empty')
    optional_text(description, 'skillDescription')
    name = name.strip()

    # The unique index on lower(name) turns a concurrent duplicate into a no-op
    insert_query = """
    INSERT INTO skills (name, description)
    VALUES (:name, :description)
    ON CONFLICT DO NOTHING;
    """
    db.session.execute(text(insert_query), {'name': name, 'description': description or ''})
    return get_skill_by_name(name)


def list_skills():
    rows = db.session.execute(text("SELECT id, name, description FROM skills ORDER BY lower(name);")).fetchall()
    return [_skill_to_dict(row) for row in rows]


def _user_has_skill(identifier, skill_id):
    query = "SELECT 1 FROM user_skills WHERE user_identifier = :identifier AND skill_id = :skill_id;"
    return db.session.execute(text(query), {'identifier': identifier, 'skill_id': skill_id}).fetchone() is not None


def add_skill_to_user(identifier, skill_id):
    identifier = normalize_identifier(identifier)
    if not skill_id:
        raise ValidationFailed('Missing skillId.')

    skill = db.session.execute(text("SELECT id FROM skills WHERE id = :skill_id;"), {'skill_id': skill_id}).fetchone()
    if not skill:
        raise NotFound(f"Skill {skill_id} not found")

    if _user_has_skill(identifier, skill_id):
        raise ConflictState('User already has this skill')

    insert_query = """
    INSERT INTO user_skills (user_identifier, skill_id)
    VALUES (:identifier, :skill_id)
    RETURNING id, user_identifier, skill_id, added_at;
    """
    row = db.session.execute(text(insert_query), {'identifier': identifier, 'skill_id': skill_id}).fetchone()
    current_app.logger.debug(f"Skill {skill_id} added to {identifier}")
    return {
        'id': row.id,
        'userIdentifier': row.user_identifier,
        'skillId': row.skill_id,
        'addedAt': isoformat(row.added_at),
    }


def fetch_user_skills(identifier):
    query = """
    SELECT us.id AS user_skill_id, us.skill_id, us.added_at, s.name, s.description
    FROM user_skills us
    JOIN skills s ON s.id = us.skill_id
    WHERE us.user_identifier = :identifier
    ORDER BY us.added_at, us.id;
    """
    rows = db.session.execute(text(query), {'identifier': normalize_identifier(identifier)}).fetchall()
    return [
        {
            'userSkillId': row.user_skill_id,
            'skillId': row.skill_id,
            'skillName': row.name,
            'skillDescription': row.description,
            'addedAt': isoformat(row.added_at),
        }
        for row in rows
    ]


def sync_user_skills(identifier, skills_text):
    """Grant every skill named in `skills_text` that the user does not hold yet."""
    identifier = normalize_identifier(identifier)
    granted = []
    for name in parse_skill_list(skills_text):
        skill = get_or_create_skill(name)
        if not _user_has_skill(identifier, skill['id']):
            add_skill_to_user(identifier, skill['id'])
            granted.append(skill['name'])
    if granted:
        current_app.logger.info(f"Granted skills {granted} to {identifier}")
    return granted
