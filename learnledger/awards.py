"""
Submission approval: the one place where projects, submissions and balances
change together.

`approve_submission` moves a submission from `pending` to `approved` and, in
the same transaction, closes its project, assigns the freelancer, credits the
prize and grants the project's completion skills. Each state change is a
compare-and-set on the current status, and the prize credit is keyed by the
submission id, so a concurrent or retried approval can never pay twice.
"""
from flask import current_app
from sqlalchemy import text

from learnledger import db
from learnledger.balances import credit_once
from learnledger.errors import ConflictState, NotFound, Unauthorized, ProjectClosed, NegativeBalanceRejected, AwardRolledBack
from learnledger.projects import find_project, project_to_dict, PROJECT_COLUMNS
from learnledger.skills import sync_user_skills
from learnledger.submissions import find_submission, submission_to_dict, latest_pending_submission, SUBMISSION_COLUMNS
from learnledger.utils import atomic, normalize_identifier, as_decimal


def credit_key_for(submission_id):
    return f"submission:{submission_id}"


def _close_project(project_id, freelancer):
    query = f"""
    UPDATE projects
    SET status = 'closed', assigned_freelancer = :freelancer, updated_at = CURRENT_TIMESTAMP
    WHERE id = :project_id AND status = 'open'
      AND (assigned_freelancer IS NULL OR assigned_freelancer = :freelancer)
    RETURNING {PROJECT_COLUMNS};
    """
    return db.session.execute(text(query), {'freelancer': freelancer, 'project_id': project_id}).fetchone()


def _mark_approved(submission_id):
    query = f"""
    UPDATE submissions
    SET status = 'approved', is_merged = :is_merged, updated_at = CURRENT_TIMESTAMP
    WHERE id = :submission_id AND status = 'pending'
    RETURNING {SUBMISSION_COLUMNS};
    """
    return db.session.execute(text(query), {'is_merged': True, 'submission_id': submission_id}).fetchone()


def approve_submission(submission_id, approver):
    """
    Approve a pending submission on behalf of the project owner.

    Returns a dict with the submission, the closed project, the freelancer's
    resulting balance, the skills granted and `alreadyApproved`, which is True
    when the submission had been approved before and nothing was changed.
    """
    approver = normalize_identifier(approver)

    with atomic():
        submission = find_submission(submission_id)
        if not submission:
            raise NotFound('Submission not found')
        project = find_project(submission.project_id)
        if not project:
            raise NotFound('Project not found')
        if project.owner.lower() != approver:
            raise Unauthorized('Not authorized')

        freelancer = submission.freelancer
        if submission.status == 'approved':
            return {
                'submission': submission_to_dict(submission),
                'project': project_to_dict(project),
                'balance': None,
                'skillsGranted': [],
                'alreadyApproved': True,
            }
        if submission.status != 'pending':
            raise ConflictState(f"Submission is already {submission.status}")
        if project.status != 'open':
            raise ProjectClosed('Project is already closed. No award applied.')
        if project.assigned_freelancer and project.assigned_freelancer.lower() != freelancer:
            raise ConflictState('Project is assigned to a different freelancer')

        approved = _mark_approved(submission_id)
        if not approved:
            raise ConflictState('Submission is no longer pending')
        closed = _close_project(project.id, freelancer)
        if not closed:
            raise ConflictState('Project was closed or reassigned by a concurrent request')

        balance = None
        prize = as_decimal(project.prize_amount)
        if prize > 0:
            try:
                balance = credit_once(freelancer, prize, credit_key_for(submission_id), project_id=project.id)
            except NegativeBalanceRejected as e:
                raise AwardRolledBack(f"Award failed and was rolled back: {e.message}")

        granted = sync_user_skills(freelancer, project.completion_skills)

    current_app.logger.info(
        f"Submission {submission_id} approved: project {project.id} closed, {prize} credited to {freelancer}"
    )
    return {
        'submission': submission_to_dict(approved),
        'project': project_to_dict(closed),
        'balance': balance,
        'skillsGranted': granted,
        'alreadyApproved': False,
    }


def approve_for_project(project_id, freelancer, approver):
    """Approve the freelancer's most recent pending submission to `project_id`."""
    submission = latest_pending_submission(project_id, freelancer)
    if not submission:
        if not find_project(project_id):
            raise NotFound('Project not found')
        raise NotFound('No pending submission from this freelancer for the project')
    return approve_submission(submission.id, approver)
