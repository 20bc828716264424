import logging

from flask import Blueprint, jsonify, request, current_app, g as g_context
from flask_expects_json import expects_json
from flask_jwt_extended import jwt_required
from flask_marshmallow.fields import fields as ma_fields

from taskhub import ma, api_spec
from taskhub.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from taskhub.models import User, Project, MemberRole, Task
from taskhub.schemas import schema_project_post, schema_project_patch, schema_member_post
from taskhub.utils.helpers import pagination_args

bp = Blueprint('project', 'project')
logger = logging.getLogger(__name__)


class ProjectMemberSchema(ma.Schema):
    userId = ma_fields.String(required=True, attribute='user')
    role = ma_fields.Enum(MemberRole, required=True)
    joinedAt = ma_fields.DateTime(attribute='joined_at')


class ProjectSchema(ma.Schema):
    id = ma_fields.String(required=True, attribute='_id')
    name = ma_fields.String(required=True)
    description = ma_fields.String(allow_none=True)
    ownerId = ma_fields.String(required=True, attribute='owner')
    members = ma_fields.List(ma_fields.Nested(ProjectMemberSchema()))
    createdAt = ma_fields.DateTime(attribute='created_at')
    updatedAt = ma_fields.DateTime(attribute='updated_at')


project_schema = ProjectSchema()
projects_schema = ProjectSchema(many=True, exclude=('members',))

# add Marshmallow schemas to APISpec
api_spec.components.schema('Project', schema=ProjectSchema)


def get_project_for_user(project_id: str, user_id: str, owner_only: bool = False) -> Project:
    project = Project.active_objects(_id=project_id).first()
    if project is None:
        raise NotFoundError('Project not found')
    if owner_only and not project.is_owner(user_id):
        raise ForbiddenError('Only the project owner can perform this action')
    if not project.has_access(user_id):
        raise ForbiddenError('You do not have access to this project')
    return project


@bp.route('', methods=['POST'])
@jwt_required()
@expects_json(schema_project_post)
def create_project():
    user: User = g_context.current_user

    project = Project(
        name=request.json['name'],
        description=request.json.get('description'),
        owner=user._id,
    )
    # the owner is also listed as a member
    project.add_member(user._id, MemberRole.OWNER)
    logger.info(f'created project {project._id}')

    return jsonify(project_schema.dump(project)), 201


@bp.route('', methods=['GET'])
@jwt_required()
def list_projects():
    """ Projects the current user owns or is a member of, most recently updated first """
    user: User = g_context.current_user
    skip, take = pagination_args(request.args, current_app.config['PAGE_SIZE'], current_app.config['MAX_PAGE_SIZE'])

    projects = list(Project.visible_to(user._id).order_by('-updated_at').skip(skip).limit(take))
    task_counts = {
        project._id: Task.objects(project=project._id).count() for project in projects
    }

    response = projects_schema.dump(projects)
    for item in response:
        item['taskCount'] = task_counts[item['id']]

    return jsonify({'projects': response}), 200


@bp.route('/<project_id>', methods=['GET'])
@jwt_required()
def get_project(project_id):
    project = get_project_for_user(project_id, g_context.current_user._id)
    return jsonify(project_schema.dump(project)), 200


@bp.route('/<project_id>', methods=['PATCH'])
@jwt_required()
@expects_json(schema_project_patch)
def update_project(project_id):
    project = get_project_for_user(project_id, g_context.current_user._id, owner_only=True)

    for field in ('name', 'description'):
        if field in request.json:
            project[field] = request.json[field]
    project.save()

    return jsonify(project_schema.dump(project)), 200


@bp.route('/<project_id>', methods=['DELETE'])
@jwt_required()
def delete_project(project_id):
    project = get_project_for_user(project_id, g_context.current_user._id, owner_only=True)
    project.soft_delete()
    logger.info(f'deleted project {project_id}')
    return '', 204


@bp.route('/<project_id>/members', methods=['POST'])
@jwt_required()
@expects_json(schema_member_post, fill_defaults=True)
def add_member(project_id):
    project = get_project_for_user(project_id, g_context.current_user._id, owner_only=True)
    member_id = request.json['userId']

    if User.get_or_none(_id=member_id) is None:
        raise NotFoundError('User not found')
    if project.is_member(member_id):
        raise ConflictError('User is already a member of this project')

    member = project.add_member(member_id, MemberRole(request.json['role']))
    return jsonify(ProjectMemberSchema().dump(member)), 201


@bp.route('/<project_id>/members/<member_id>', methods=['DELETE'])
@jwt_required()
def remove_member(project_id, member_id):
    project = get_project_for_user(project_id, g_context.current_user._id, owner_only=True)

    if project.is_owner(member_id):
        raise ValidationError('The project owner cannot be removed')
    if not project.remove_member(member_id):
        raise NotFoundError('Member not found')

    return '', 204
