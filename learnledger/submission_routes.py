from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from learnledger.awards import approve_submission, approve_for_project
from learnledger.errors import ValidationFailed
from learnledger.submissions import (
    create_submission, update_submission, delete_submission, reject_submission,
    get_submission, submission_to_dict, list_submissions,
)
from learnledger.utils import atomic, success, current_identity, validate_wallet, require_fields, json_body

submission_bp = Blueprint('submissions', __name__)


def _int_field(data, field):
    try:
        return int(data[field])
    except (TypeError, ValueError):
        raise ValidationFailed(f"Invalid {field}: {data[field]}")


@submission_bp.route('/create', methods=['POST'])
@jwt_required()
def create():
    data = json_body()
    require_fields(data, 'projectId')
    if data.get('freelancerWallet'):
        validate_wallet(data['freelancerWallet'], field='freelancerWallet')
    freelancer = current_identity(data.get('freelancerWallet'), data.get('walletAddress'))
    current_app.logger.debug(f"Submission for project {data.get('projectId')} from {freelancer}")

    with atomic():
        submission = create_submission(
            project_id=_int_field(data, 'projectId'),
            freelancer=freelancer,
            pr_link=data.get('prLink') or data.get('githubLink'),
            submission_text=data.get('submissionText'),
        )
    return success(submission, 'Submission created successfully', 201)


# Approve either a submission by id, or a freelancer's latest pending submission to a project
@submission_bp.route('/approve', methods=['POST'])
@jwt_required()
def approve():
    data = json_body()
    approver = current_identity(data.get('companyWallet'), data.get('walletAddress'))

    if data.get('submissionId'):
        result = approve_submission(_int_field(data, 'submissionId'), approver)
    elif data.get('projectId') and data.get('freelancerWallet'):
        freelancer = validate_wallet(data['freelancerWallet'], field='freelancerWallet')
        result = approve_for_project(_int_field(data, 'projectId'), freelancer, approver)
    else:
        raise ValidationFailed('Provide submissionId, or projectId with freelancerWallet')

    if result['alreadyApproved']:
        return success(result, 'Submission was already approved')
    return success(result, 'Submission approved, tokens and skills awarded.')


@submission_bp.route('/reject', methods=['POST'])
@jwt_required()
def reject():
    data = json_body()
    require_fields(data, 'submissionId')
    requester = current_identity(data.get('companyWallet'), data.get('walletAddress'))

    with atomic():
        submission = reject_submission(_int_field(data, 'submissionId'), requester, data.get('reason'))
    return success(submission, 'Submission rejected')


# Signature and nonce fields from older clients are accepted but not needed: the token authorizes
@submission_bp.route('/delete', methods=['POST'])
@jwt_required()
def delete():
    data = json_body()
    require_fields(data, 'submissionId')
    requester = current_identity(data.get('walletAddress'))

    with atomic():
        delete_submission(_int_field(data, 'submissionId'), requester)
    return success(message='Submission deleted successfully')


@submission_bp.route('/<int:submission_id>', methods=['PUT'])
@jwt_required()
def update(submission_id):
    data = json_body()
    requester = current_identity(data.get('walletAddress'))

    with atomic():
        submission = update_submission(submission_id, requester, data.get('prLink') or data.get('githubLink'))
    return success(submission, 'Submission updated successfully')


@submission_bp.route('/read', methods=['GET'])
@jwt_required()
def read():
    args = request.args
    if args.get('submissionId'):
        return success(submission_to_dict(get_submission(_int_field(args, 'submissionId'))))

    project_id = _int_field(args, 'projectId') if args.get('projectId') else None
    freelancer = args.get('freelancerAddress')
    if project_id is None and not freelancer:
        # Without filters, show the caller's own submissions
        freelancer = get_jwt_identity()
    return success(list_submissions(project_id=project_id, freelancer=freelancer))
