from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from learnledger.projects import (
    create_project, list_projects, get_project, project_to_dict, update_project, delete_project,
    set_status, assign_freelancer, unassign_freelancer, project_stats, suggest_projects,
)
from learnledger.profiles import get_profile
from learnledger.submissions import list_submissions
from learnledger.utils import atomic, success, current_identity, validate_wallet, require_fields, json_body

project_bp = Blueprint('projects', __name__)

UPDATABLE_FIELDS = ('name', 'description', 'prizeAmount', 'requiredSkills', 'completionSkills', 'repo')


# Create a project owned by the authenticated wallet
@project_bp.route('/create', methods=['POST'])
@jwt_required()
def create():
    data = json_body()
    owner = current_identity(data.get('walletAddress'))
    require_fields(data, 'projectName')

    with atomic():
        project = create_project(
            owner=owner,
            name=data.get('projectName'),
            description=data.get('projectDescription'),
            prize_amount=data.get('prizeAmount'),
            required_skills=data.get('requiredSkills'),
            completion_skills=data.get('completionSkills'),
            repo=data.get('projectRepo'),
        )
    return success(project, 'Project created successfully.', 201)


@project_bp.route('/view', methods=['GET'])
@jwt_required()
def view_projects():
    args = request.args
    projects = list_projects(
        status=args.get('status'),
        skill=args.get('skill'),
        min_prize=args.get('minPrize'),
        max_prize=args.get('maxPrize'),
        owner=args.get('owner'),
        search=args.get('search'),
        sort=args.get('sort', 'created'),
        order=args.get('order', 'desc'),
        limit=args.get('limit'),
        offset=args.get('offset'),
    )
    current_app.logger.debug(f"Retrieved {len(projects)} projects.")
    return success(projects)


@project_bp.route('/stats', methods=['GET'])
@jwt_required()
def stats():
    return success(project_stats(owner=request.args.get('owner')))


# Open projects the caller could submit to, skill matches first
@project_bp.route('/suggested', methods=['GET'])
@jwt_required()
def suggested():
    wallet = get_jwt_identity()
    get_profile(wallet)
    return success(suggest_projects(wallet))


@project_bp.route('/<int:project_id>', methods=['GET'])
@jwt_required()
def view_project(project_id):
    return success(project_to_dict(get_project(project_id)))


@project_bp.route('/<int:project_id>', methods=['PUT'])
@jwt_required()
def edit_project(project_id):
    data = json_body()
    requester = current_identity(data.get('walletAddress'))
    current_app.logger.debug(f"Received edit request for project {project_id} by {requester}")

    fields = {field: data[field] for field in UPDATABLE_FIELDS if field in data}
    # Accept the create-form field names as well
    for alias, field in (('projectName', 'name'), ('projectDescription', 'description'), ('projectRepo', 'repo')):
        if alias in data:
            fields[field] = data[alias]

    with atomic():
        project = update_project(project_id, requester, fields)
    return success(project, 'Project updated successfully.')


@project_bp.route('/<int:project_id>', methods=['DELETE'])
@jwt_required()
def remove_project(project_id):
    requester = current_identity(request.args.get('walletAddress'))
    with atomic():
        delete_project(project_id, requester)
    return success(message='Project deleted successfully.')


@project_bp.route('/<int:project_id>/status', methods=['PUT'])
@jwt_required()
def change_status(project_id):
    data = json_body()
    requester = current_identity(data.get('walletAddress'))
    require_fields(data, 'status')

    with atomic():
        project, changed = set_status(project_id, data['status'], requester)

    if not changed:
        return success(project, f"Project is already {data['status']}")
    return success(project, f"Project status changed to {data['status']} successfully")


@project_bp.route('/<int:project_id>/assign', methods=['POST'])
@jwt_required()
def assign(project_id):
    data = json_body()
    requester = current_identity(data.get('walletAddress'))
    freelancer = validate_wallet(data.get('freelancerAddress'), field='freelancerAddress')

    with atomic():
        project = assign_freelancer(project_id, freelancer, requester)
    return success(project, 'Freelancer assigned successfully')


@project_bp.route('/<int:project_id>/assign', methods=['DELETE'])
@jwt_required()
def unassign(project_id):
    requester = current_identity(request.args.get('walletAddress'))
    with atomic():
        project = unassign_freelancer(project_id, requester)
    return success(project, 'Freelancer assignment removed successfully')


@project_bp.route('/<int:project_id>/submissions', methods=['GET'])
@jwt_required()
def project_submissions(project_id):
    get_project(project_id)
    return success(list_submissions(project_id=project_id))
