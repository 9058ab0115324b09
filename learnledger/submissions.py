from urllib.parse import urlparse

from flask import current_app
from sqlalchemy import text

from learnledger import db
from learnledger.errors import (
    ValidationFailed, NotFound, Unauthorized, ConflictState, ProjectClosed,
    SelfSubmissionForbidden, MissingRequiredSkill,
)
from learnledger.projects import find_project
from learnledger.skills import parse_skill_list, fetch_user_skills
from learnledger.utils import normalize_identifier, isoformat, optional_text

SUBMISSION_COLUMNS = """
id, project_id, freelancer, pr_link, submission_text, status, is_merged, rejection_reason,
repo_owner, repo_name, pr_number, created_at, updated_at
"""


def parse_pr_link(pr_link):
    """
    Pull (repo owner, repo name, PR number) out of a GitHub PR url such as
    https://github.com/owner/repo/pull/12. Anything unparseable gives placeholders.
    """
    try:
        segments = urlparse(pr_link).path.split('/')
        if len(segments) >= 5 and segments[3] == 'pull' and segments[1] and segments[2]:
            return segments[1], segments[2], str(int(segments[4]))
    except (AttributeError, TypeError, ValueError):
        pass
    return 'unknown', 'unknown', '0'


def submission_to_dict(row):
    return {
        'id': row.id,
        'projectId': row.project_id,
        'freelancer': row.freelancer,
        'prLink': row.pr_link,
        'submissionText': row.submission_text or '',
        'status': row.status,
        'isMerged': bool(row.is_merged),
        'rejectionReason': row.rejection_reason,
        'repoOwner': row.repo_owner,
        'repoName': row.repo_name,
        'prNumber': row.pr_number,
        'createdAt': isoformat(row.created_at),
        'updatedAt': isoformat(row.updated_at),
    }


def find_submission(submission_id):
    query = f"SELECT {SUBMISSION_COLUMNS} FROM submissions WHERE id = :submission_id;"
    return db.session.execute(text(query), {'submission_id': submission_id}).fetchone()


def get_submission(submission_id):
    row = find_submission(submission_id)
    if not row:
        raise NotFound('Submission not found')
    return row


def check_required_skills(project, freelancer):
    required = parse_skill_list(project.required_skills)
    if not required:
        return
    held = {skill['skillName'].lower() for skill in fetch_user_skills(freelancer)}
    for name in required:
        if name.lower() not in held:
            raise MissingRequiredSkill(name)


def create_submission(project_id, freelancer, pr_link=None, submission_text=None):
    freelancer = normalize_identifier(freelancer)

    project = find_project(project_id)
    if not project:
        raise NotFound('Project not found or invalid project ID.')
    if project.status != 'open':
        raise ProjectClosed('Project is not open. Submissions are closed.')
    if freelancer == project.owner.lower():
        raise SelfSubmissionForbidden('Owner cannot submit a PR to their own project.')

    check_required_skills(project, freelancer)

    pr_link = (optional_text(pr_link, 'prLink') or '').strip()
    repo_owner, repo_name, pr_number = parse_pr_link(pr_link)
    query = f"""
    INSERT INTO submissions (project_id, freelancer, pr_link, submission_text, status, is_merged,
                             repo_owner, repo_name, pr_number)
    VALUES (:project_id, :freelancer, :pr_link, :submission_text, 'pending', :is_merged,
            :repo_owner, :repo_name, :pr_number)
    RETURNING {SUBMISSION_COLUMNS};
    """
    row = db.session.execute(text(query), {
        'project_id': project_id,
        'freelancer': freelancer,
        'pr_link': pr_link,
        'submission_text': optional_text(submission_text, 'submissionText') or '',
        'is_merged': False,
        'repo_owner': repo_owner,
        'repo_name': repo_name,
        'pr_number': pr_number,
    }).fetchone()
    current_app.logger.info(f"Submission {row.id} created for project {project_id} by {freelancer}")
    return submission_to_dict(row)


def update_submission(submission_id, requester, pr_link):
    requester = normalize_identifier(requester)
    if not optional_text(pr_link, 'prLink') or not pr_link.strip():
        raise ValidationFailed('Missing required field: prLink')

    submission = get_submission(submission_id)
    if submission.freelancer != requester:
        raise Unauthorized('Only the submitting freelancer can update this submission')
    if submission.status != 'pending':
        raise ConflictState(f"Submission is already {submission.status}")

    pr_link = pr_link.strip()
    repo_owner, repo_name, pr_number = parse_pr_link(pr_link)
    query = f"""
    UPDATE submissions
    SET pr_link = :pr_link, repo_owner = :repo_owner, repo_name = :repo_name,
        pr_number = :pr_number, updated_at = CURRENT_TIMESTAMP
    WHERE id = :submission_id AND status = 'pending'
    RETURNING {SUBMISSION_COLUMNS};
    """
    row = db.session.execute(text(query), {
        'pr_link': pr_link,
        'repo_owner': repo_owner,
        'repo_name': repo_name,
        'pr_number': pr_number,
        'submission_id': submission_id,
    }).fetchone()
    if not row:
        raise ConflictState('Submission is no longer pending')
    return submission_to_dict(row)


def delete_submission(submission_id, requester):
    requester = normalize_identifier(requester)
    submission = get_submission(submission_id)
    project = find_project(submission.project_id)
    owner = project.owner.lower() if project else None

    if requester not in (owner, submission.freelancer):
        raise Unauthorized('Not authorized to delete this submission')
    if submission.status == 'approved':
        raise ConflictState('An approved submission cannot be deleted')

    db.session.execute(text("DELETE FROM submissions WHERE id = :submission_id;"),
                       {'submission_id': submission_id})
    current_app.logger.info(f"Submission {submission_id} deleted by {requester}")


def reject_submission(submission_id, requester, reason=None):
    requester = normalize_identifier(requester)
    submission = get_submission(submission_id)
    project = find_project(submission.project_id)
    if not project:
        raise NotFound('Project not found')
    if project.owner.lower() != requester:
        raise Unauthorized('Only the project owner can reject submissions')
    if submission.status != 'pending':
        raise ConflictState(f"Submission is already {submission.status}")

    query = f"""
    UPDATE submissions
    SET status = 'rejected', is_merged = :is_merged, rejection_reason = :reason,
        updated_at = CURRENT_TIMESTAMP
    WHERE id = :submission_id AND status = 'pending'
    RETURNING {SUBMISSION_COLUMNS};
    """
    row = db.session.execute(text(query), {
        'is_merged': False,
        'reason': optional_text(reason, 'reason'),
        'submission_id': submission_id,
    }).fetchone()
    if not row:
        raise ConflictState('Submission is no longer pending')
    current_app.logger.info(f"Submission {submission_id} rejected")
    return submission_to_dict(row)


def list_submissions(project_id=None, freelancer=None, owner=None):
    conditions = []
    params = {}
    if project_id is not None:
        conditions.append("s.project_id = :project_id")
        params['project_id'] = project_id
    if freelancer:
        conditions.append("s.freelancer = :freelancer")
        params['freelancer'] = normalize_identifier(freelancer)
    if owner:
        conditions.append("p.owner = :owner")
        params['owner'] = normalize_identifier(owner)

    columns = ', '.join(f"s.{column.strip()}" for column in SUBMISSION_COLUMNS.split(','))
    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    query = f"""
    SELECT {columns}
    FROM submissions s
    LEFT JOIN projects p ON p.id = s.project_id
    {where}
    ORDER BY s.created_at, s.id;
    """
    rows = db.session.execute(text(query), params).fetchall()
    return [submission_to_dict(row) for row in rows]


def latest_pending_submission(project_id, freelancer):
    query = f"""
    SELECT {SUBMISSION_COLUMNS}
    FROM submissions
    WHERE project_id = :project_id AND freelancer = :freelancer AND status = 'pending'
    ORDER BY created_at DESC, id DESC
    LIMIT 1;
    """
    return db.session.execute(text(query), {
        'project_id': project_id,
        'freelancer': normalize_identifier(freelancer),
    }).fetchone()
