from flask import Blueprint
from flask_jwt_extended import jwt_required, get_jwt_identity

from learnledger.bookmarks import add_bookmark, remove_bookmark, list_bookmarks
from learnledger.errors import NotFound, ValidationFailed
from learnledger.profiles import get_profile
from learnledger.utils import atomic, success, require_fields, json_body

bookmark_bp = Blueprint('bookmarks', __name__)


def _freelancer_identity():
    wallet = get_jwt_identity()
    if get_profile(wallet).role != 'freelancer':
        raise NotFound(f"Freelancer not found for {wallet}")
    return wallet


@bookmark_bp.route('', methods=['GET'])
@jwt_required()
def view_bookmarks():
    return success(list_bookmarks(_freelancer_identity()))


@bookmark_bp.route('', methods=['POST'])
@jwt_required()
def bookmark_project():
    wallet = _freelancer_identity()
    data = json_body()
    require_fields(data, 'projectId')
    try:
        project_id = int(data['projectId'])
    except (TypeError, ValueError):
        raise ValidationFailed(f"Invalid projectId: {data['projectId']}")

    with atomic():
        bookmark, created = add_bookmark(wallet, project_id)
    if not created:
        return success(bookmark, 'Bookmark already exists')
    return success(bookmark, 'Bookmark added successfully', 201)


@bookmark_bp.route('/<int:project_id>', methods=['DELETE'])
@jwt_required()
def unbookmark_project(project_id):
    wallet = _freelancer_identity()
    with atomic():
        remove_bookmark(wallet, project_id)
    return success(message='Bookmark removed successfully')
