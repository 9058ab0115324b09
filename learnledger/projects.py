from flask import current_app
from sqlalchemy import text

from learnledger import db
from learnledger.errors import ValidationFailed, NotFound, Unauthorized, ConflictState, ProjectClosed
from learnledger.skills import parse_skill_list, fetch_user_skills
from learnledger.utils import normalize_identifier, to_decimal, as_decimal, isoformat, numeric_text, optional_text

PROJECT_STATUSES = ('open', 'closed')

PROJECT_COLUMNS = """
id, name, description, prize_amount, status, owner, required_skills,
completion_skills, assigned_freelancer, repo, created_at, updated_at
"""

SORT_COLUMNS = {
    'created': 'created_at',
    'prize': 'prize_amount',
    'name': 'name',
}


def project_to_dict(row):
    return {
        'id': row.id,
        'name': row.name,
        'description': row.description,
        'prizeAmount': str(as_decimal(row.prize_amount)),
        'status': row.status,
        'owner': row.owner,
        'requiredSkills': row.required_skills or '',
        'completionSkills': row.completion_skills or '',
        'assignedFreelancer': row.assigned_freelancer,
        'repo': row.repo or '',
        'createdAt': isoformat(row.created_at),
        'updatedAt': isoformat(row.updated_at),
    }


def _skills_text(value):
    return ','.join(parse_skill_list(value))


def _prize(value):
    prize = to_decimal(value, field='prizeAmount')
    if prize < 0:
        raise ValidationFailed('Prize amount cannot be negative.')
    return prize


def find_project(project_id):
    query = f"SELECT {PROJECT_COLUMNS} FROM projects WHERE id = :project_id;"
    return db.session.execute(text(query), {'project_id': project_id}).fetchone()


def get_project(project_id):
    row = find_project(project_id)
    if not row:
        raise NotFound('Project not found')
    return row


def _owned_project(project_id, requester):
    """Load a project and check that `requester` owns it."""
    row = get_project(project_id)
    if row.owner.lower() != normalize_identifier(requester):
        raise Unauthorized('Only the project owner can modify this project')
    return row


def _has_approved_submission(project_id):
    query = "SELECT 1 FROM submissions WHERE project_id = :project_id AND status = 'approved';"
    return db.session.execute(text(query), {'project_id': project_id}).fetchone() is not None


def create_project(owner, name, description=None, prize_amount=None, required_skills=None,
                   completion_skills=None, repo=None):
    if not owner or not optional_text(name, 'projectName') or not name.strip():
        raise ValidationFailed('Missing required fields: walletAddress or projectName')

    query = f"""
    INSERT INTO projects (name, description, prize_amount, status, owner, required_skills,
                          completion_skills, repo)
    VALUES (:name, :description, :prize_amount, 'open', :owner, :required_skills,
            :completion_skills, :repo)
    RETURNING {PROJECT_COLUMNS};
    """
    row = db.session.execute(numeric_text(query, 'prize_amount'), {
        'name': name.strip(),
        'description': optional_text(description, 'projectDescription') or '',
        'prize_amount': _prize(prize_amount),
        'owner': normalize_identifier(owner),
        'required_skills': _skills_text(required_skills),
        'completion_skills': _skills_text(completion_skills),
        'repo': optional_text(repo, 'projectRepo') or '',
    }).fetchone()
    current_app.logger.info(f"Project {row.id} created by {row.owner}")
    return project_to_dict(row)


def list_projects(status=None, skill=None, min_prize=None, max_prize=None, owner=None, search=None,
                  sort='created', order='desc', limit=None, offset=None):
    conditions = []
    params = {}

    if status:
        conditions.append("status = :status")
        params['status'] = status
    if skill:
        conditions.append("lower(required_skills) LIKE :skill")
        params['skill'] = f"%{skill.strip().lower()}%"
    if min_prize not in (None, ''):
        conditions.append("prize_amount >= :min_prize")
        params['min_prize'] = to_decimal(min_prize, field='minPrize')
    if max_prize not in (None, ''):
        conditions.append("prize_amount <= :max_prize")
        params['max_prize'] = to_decimal(max_prize, field='maxPrize')
    if owner:
        conditions.append("owner = :owner")
        params['owner'] = normalize_identifier(owner)
    if search:
        conditions.append("(lower(name) LIKE :search OR lower(description) LIKE :search)")
        params['search'] = f"%{search.strip().lower()}%"

    sort_column = SORT_COLUMNS.get(sort, 'created_at')
    direction = 'ASC' if str(order).lower() == 'asc' else 'DESC'

    page_size = current_app.config['PROJECTS_PAGE_SIZE']
    max_page_size = current_app.config['PROJECTS_MAX_PAGE_SIZE']
    try:
        limit = min(int(limit), max_page_size) if limit not in (None, '') else page_size
        offset = int(offset) if offset not in (None, '') else 0
    except (TypeError, ValueError):
        raise ValidationFailed('limit and offset must be integers')
    if limit < 1 or offset < 0:
        raise ValidationFailed('limit must be positive and offset non-negative')
    params.update({'limit': limit, 'offset': offset})

    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    query = f"""
    SELECT {PROJECT_COLUMNS}
    FROM projects
    {where}
    ORDER BY {sort_column} {direction}, id {direction}
    LIMIT :limit OFFSET :offset;
    """
    rows = db.session.execute(numeric_text(query, *[p for p in ('min_prize', 'max_prize') if p in params]),
                              params).fetchall()
    return [project_to_dict(row) for row in rows]


def update_project(project_id, requester, fields):
    _owned_project(project_id, requester)
    if _has_approved_submission(project_id):
        raise ConflictState('Cannot modify a project whose prize has been awarded')

    # Prepare the fields to update
    update_fields = []
    update_values = {'project_id': project_id}

    if 'name' in fields:
        if not optional_text(fields['name'], 'name') or not fields['name'].strip():
            raise ValidationFailed('Project name cannot be empty')
        update_fields.append("name = :name")
        update_values['name'] = fields['name'].strip()
    if 'description' in fields:
        update_fields.append("description = :description")
        update_values['description'] = optional_text(fields['description'], 'description') or ''
    if 'prizeAmount' in fields:
        update_fields.append("prize_amount = :prize_amount")
        update_values['prize_amount'] = _prize(fields['prizeAmount'])
    if 'requiredSkills' in fields:
        update_fields.append("required_skills = :required_skills")
        update_values['required_skills'] = _skills_text(fields['requiredSkills'])
    if 'completionSkills' in fields:
        update_fields.append("completion_skills = :completion_skills")
        update_values['completion_skills'] = _skills_text(fields['completionSkills'])
    if 'repo' in fields:
        update_fields.append("repo = :repo")
        update_values['repo'] = optional_text(fields['repo'], 'repo') or ''

    if not update_fields:
        raise ValidationFailed('No updatable fields provided')

    update_fields.append("updated_at = CURRENT_TIMESTAMP")
    query = f"""
    UPDATE projects
    SET {", ".join(update_fields)}
    WHERE id = :project_id
    RETURNING {PROJECT_COLUMNS};
    """
    names = ['prize_amount'] if 'prize_amount' in update_values else []
    row = db.session.execute(numeric_text(query, *names), update_values).fetchone()
    current_app.logger.info(f"Project {project_id} updated: {sorted(k for k in update_values if k != 'project_id')}")
    return project_to_dict(row)


def delete_project(project_id, requester):
    _owned_project(project_id, requester)
    if _has_approved_submission(project_id):
        raise ConflictState('Cannot delete a project whose prize has been awarded')
    db.session.execute(text("DELETE FROM projects WHERE id = :project_id;"), {'project_id': project_id})
    current_app.logger.info(f"Project {project_id} deleted")

def set_status(project_id, status, requester):
    if status not in PROJECT_STATUSES:
        raise ValidationFailed(f"Invalid status value. Valid values are: {', '.join(PROJECT_STATUSES)}")
    project = _owned_project(project_id, requester)

    if project.status == status:
        return project_to_dict(project), False
    if status == 'open' and _has_approved_submission(project_id):
        raise ConflictState('Cannot reopen a project whose prize has been awarded')

    query = f"""
    UPDATE projects
    SET status = :status, updated_at = CURRENT_TIMESTAMP
    WHERE id = :project_id
    RETURNING {PROJECT_COLUMNS};
    """
    row = db.session.execute(text(query), {'status': status, 'project_id': project_id}).fetchone()
    current_app.logger.info(f"Project {project_id} status changed to {status}")
    return project_to_dict(row), True


def assign_freelancer(project_id, freelancer, requester):
    """Record the freelancer expected to deliver; the project stays open until an award."""
    freelancer = normalize_identifier(freelancer)
    project = _owned_project(project_id, requester)

    if project.status != 'open':
        raise ProjectClosed('Cannot assign freelancer to a closed project')
    if project.assigned_freelancer:
        raise ConflictState('Project already has an assigned freelancer')
    if freelancer == project.owner.lower():
        raise ValidationFailed('Project owner cannot be assigned to their own project')

    # Compare-and-set so two concurrent assignments cannot both win
    query = f"""
    UPDATE projects
    SET assigned_freelancer = :freelancer, updated_at = CURRENT_TIMESTAMP
    WHERE id = :project_id AND status = 'open' AND assigned_freelancer IS NULL
    RETURNING {PROJECT_COLUMNS};
    """
    row = db.session.execute(text(query), {'freelancer': freelancer, 'project_id': project_id}).fetchone()
    if not row:
        raise ConflictState('Project already has an assigned freelancer')
    current_app.logger.info(f"Project {project_id} assigned to {freelancer}")
    return project_to_dict(row)


def unassign_freelancer(project_id, requester):
    project = _owned_project(project_id, requester)

    if project.status != 'open':
        raise ProjectClosed('Cannot modify a closed project')
    if not project.assigned_freelancer:
        raise ConflictState('Project does not have an assigned freelancer')

    query = f"""
    UPDATE projects
    SET assigned_freelancer = NULL, updated_at = CURRENT_TIMESTAMP
    WHERE id = :project_id AND status = 'open'
    RETURNING {PROJECT_COLUMNS};
    """
    row = db.session.execute(text(query), {'project_id': project_id}).fetchone()
    if not row:
        raise ProjectClosed('Cannot modify a closed project')
    current_app.logger.info(f"Project {project_id} unassigned")
    return project_to_dict(row)


def project_stats(owner=None):
    params = {}
    where = ""
    if owner:
        where = "WHERE owner = :owner"
        params['owner'] = normalize_identifier(owner)

    summary_query = f"""
    SELECT COUNT(*) AS total_projects,
           COALESCE(SUM(CASE WHEN status = 'open' THEN 1 ELSE 0 END), 0) AS open_projects,
           COALESCE(SUM(CASE WHEN status = 'closed' THEN 1 ELSE 0 END), 0) AS closed_projects,
           COALESCE(SUM(prize_amount), 0) AS total_prize_amount
    FROM projects
    {where};
    """
    summary = db.session.execute(text(summary_query), params).fetchone()

    skills_query = f"SELECT required_skills FROM projects {where};"
    counts = {}
    for row in db.session.execute(text(skills_query), params).fetchall():
        for name in parse_skill_list(row.required_skills):
            counts[name.lower()] = counts.get(name.lower(), 0) + 1
    distribution = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:10]

    return {
        'summary': {
            'totalProjects': int(summary.total_projects or 0),
            'openProjects': int(summary.open_projects or 0),
            'closedProjects': int(summary.closed_projects or 0),
            'totalPrizeAmount': str(as_decimal(summary.total_prize_amount)),
        },
        'skillDistribution': [{'skillName': name, 'count': count} for name, count in distribution],
    }


def suggest_projects(identifier, limit=None):
    """
    Open projects a freelancer could submit to right now.

    Projects whose required skills the freelancer already holds come first,
    newest first. The remaining slots are filled with other open projects in
    random order. The freelancer's own projects are never suggested.
    """
    identifier = normalize_identifier(identifier)
    limit = limit or current_app.config['SUGGESTED_PROJECTS_LIMIT']
    held = {skill['skillName'].lower() for skill in fetch_user_skills(identifier)}

    query = f"""
    SELECT {PROJECT_COLUMNS}
    FROM projects
    WHERE status = 'open' AND owner != :identifier
    ORDER BY created_at DESC, id DESC;
    """
    rows = db.session.execute(text(query), {'identifier': identifier}).fetchall()
    matched = [
        row for row in rows
        if all(name.lower() in held for name in parse_skill_list(row.required_skills))
    ][:limit]

    suggestions = [dict(project_to_dict(row), matchesSkills=True) for row in matched]
    if len(suggestions) < limit:
        random_query = f"""
        SELECT {PROJECT_COLUMNS}
        FROM projects
        WHERE status = 'open' AND owner != :identifier
        ORDER BY random()
        LIMIT :limit;
        """
        seen = {row.id for row in matched}
        for row in db.session.execute(text(random_query), {'identifier': identifier, 'limit': limit}).fetchall():
            if len(suggestions) >= limit:
                break
            if row.id not in seen:
                suggestions.append(dict(project_to_dict(row), matchesSkills=False))

    current_app.logger.debug(f"Suggested {len(suggestions)} projects to {identifier} ({len(matched)} by skill)")
    return suggestions
