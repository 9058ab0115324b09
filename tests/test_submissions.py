import pytest

from learnledger.errors import (
    NotFound, Unauthorized, ConflictState, ProjectClosed, SelfSubmissionForbidden, MissingRequiredSkill,
    ValidationFailed,
)
from learnledger.projects import set_status
from learnledger.skills import sync_user_skills
from learnledger.submissions import (
    parse_pr_link, create_submission, update_submission, delete_submission, reject_submission,
    list_submissions, get_submission,
)
from learnledger.utils import atomic

from conftest import COMPANY, FREELANCER, OTHER, seed_project, seed_freelancer

PR_LINK = 'https://github.com/acme/widgets/pull/12'


def test_parse_pr_link():
    assert parse_pr_link(PR_LINK) == ('acme', 'widgets', '12')
    assert parse_pr_link('https://github.com/acme/widgets/issues/12') == ('unknown', 'unknown', '0')
    assert parse_pr_link('not a url') == ('unknown', 'unknown', '0')
    assert parse_pr_link(None) == ('unknown', 'unknown', '0')


def test_create_submission_records_parsed_link(ctx):
    project = seed_project()
    seed_freelancer()

    with atomic():
        submission = create_submission(project['id'], FREELANCER, PR_LINK, 'first try')

    assert submission['status'] == 'pending'
    assert submission['isMerged'] is False
    assert submission['freelancer'] == FREELANCER
    assert (submission['repoOwner'], submission['repoName'], submission['prNumber']) == ('acme', 'widgets', '12')


def test_missing_required_skill_blocks_until_granted(ctx):
    project = seed_project(required_skills='react, solidity')
    seed_freelancer(skills='react')

    with pytest.raises(MissingRequiredSkill) as excinfo:
        create_submission(project['id'], FREELANCER, PR_LINK)
    assert excinfo.value.message == 'Missing required skill: solidity'
    assert list_submissions(project_id=project['id']) == []

    with atomic():
        sync_user_skills(FREELANCER, 'Solidity')
        submission = create_submission(project['id'], FREELANCER, PR_LINK)
    assert submission['projectId'] == project['id']


def test_owner_cannot_submit_to_own_project(ctx):
    project = seed_project(required_skills='')

    with pytest.raises(SelfSubmissionForbidden):
        create_submission(project['id'], COMPANY.upper().replace('0X', '0x'), PR_LINK)


def test_closed_project_refuses_submissions(ctx):
    project = seed_project()
    seed_freelancer()
    with atomic():
        set_status(project['id'], 'closed', COMPANY)

    with pytest.raises(ProjectClosed):
        create_submission(project['id'], FREELANCER, PR_LINK)


def test_unknown_project(ctx):
    seed_freelancer()
    with pytest.raises(NotFound):
        create_submission(999, FREELANCER, PR_LINK)


def _pending_submission():
    project = seed_project()
    seed_freelancer()
    with atomic():
        return project, create_submission(project['id'], FREELANCER, PR_LINK)


def test_only_the_freelancer_updates_a_pending_submission(ctx):
    project, submission = _pending_submission()

    with pytest.raises(Unauthorized):
        update_submission(submission['id'], COMPANY, 'https://github.com/acme/widgets/pull/13')
    unchanged = get_submission(submission['id'])
    assert (unchanged.pr_link, unchanged.pr_number) == (PR_LINK, '12')

    with pytest.raises(ValidationFailed):
        update_submission(submission['id'], FREELANCER, '  ')

    with atomic():
        updated = update_submission(submission['id'], FREELANCER, 'https://github.com/acme/widgets/pull/13')
    assert updated['prNumber'] == '13'
    assert updated['prLink'].endswith('/13')


def test_rejected_submission_is_frozen(ctx):
    project, submission = _pending_submission()

    with pytest.raises(Unauthorized):
        reject_submission(submission['id'], FREELANCER, 'no')

    with atomic():
        rejected = reject_submission(submission['id'], COMPANY, 'Tests are failing')
    assert rejected['status'] == 'rejected'
    assert rejected['rejectionReason'] == 'Tests are failing'

    with pytest.raises(ConflictState):
        update_submission(submission['id'], FREELANCER, PR_LINK)
    with pytest.raises(ConflictState):
        reject_submission(submission['id'], COMPANY)


def test_delete_submission_requires_owner_or_freelancer(ctx):
    project, submission = _pending_submission()

    with pytest.raises(Unauthorized):
        delete_submission(submission['id'], OTHER)

    with atomic():
        delete_submission(submission['id'], COMPANY)
    assert list_submissions(project_id=project['id']) == []

    with pytest.raises(NotFound):
        delete_submission(submission['id'], FREELANCER)


def test_list_submissions_filters(ctx):
    project, submission = _pending_submission()
    other_project = seed_project(owner=OTHER, required_skills='')

    assert [s['id'] for s in list_submissions(freelancer=FREELANCER)] == [submission['id']]
    assert [s['id'] for s in list_submissions(owner=COMPANY)] == [submission['id']]
    assert list_submissions(project_id=other_project['id']) == []


def test_non_text_fields_are_rejected(ctx):
    project = seed_project()
    seed_freelancer()

    with pytest.raises(ValidationFailed):
        create_submission(project['id'], FREELANCER, ['https://github.com/acme/widgets/pull/1'])
    with atomic():
        submission = create_submission(project['id'], FREELANCER, PR_LINK)
    with pytest.raises(ValidationFailed):
        update_submission(submission['id'], FREELANCER, {'url': PR_LINK})
    with pytest.raises(ValidationFailed):
        reject_submission(submission['id'], COMPANY, ['too', 'many'])
