import logging
from datetime import datetime, timezone
from typing import Optional

from flask import Blueprint, jsonify, request, current_app, g as g_context
from flask_expects_json import expects_json
from flask_jwt_extended import jwt_required
from flask_marshmallow.fields import fields as ma_fields
from mongoengine import Q

from taskhub import ma, api_spec
from taskhub.errors import NotFoundError, ValidationError
from taskhub.models import Task, TaskStatus, TaskPriority, Attachment
from taskhub.reports.service import require_project_access
from taskhub.schemas import schema_task_post, schema_task_patch, schema_attachment_post
from taskhub.utils.helpers import pagination_args

bp = Blueprint('task', 'task')
logger = logging.getLogger(__name__)


class AttachmentSchema(ma.Schema):
    id = ma_fields.String(required=True)
    fileName = ma_fields.String(required=True, attribute='file_name')
    fileUrl = ma_fields.String(required=True, attribute='file_url')
    fileSize = ma_fields.Integer(attribute='file_size', allow_none=True)
    mimeType = ma_fields.String(attribute='mime_type', allow_none=True)
    createdAt = ma_fields.DateTime(attribute='created_at')


class TaskSchema(ma.Schema):
    id = ma_fields.String(required=True, attribute='_id')
    projectId = ma_fields.String(required=True, attribute='project')
    title = ma_fields.String(required=True)
    description = ma_fields.String(allow_none=True)
    status = ma_fields.Enum(TaskStatus, required=True)
    priority = ma_fields.Enum(TaskPriority, allow_none=True)
    dueDate = ma_fields.DateTime(attribute='due_date', allow_none=True)
    assigneeId = ma_fields.String(attribute='assignee', allow_none=True)
    tags = ma_fields.List(ma_fields.String())
    attachments = ma_fields.List(ma_fields.Nested(AttachmentSchema()))
    createdAt = ma_fields.DateTime(attribute='created_at')
    updatedAt = ma_fields.DateTime(attribute='updated_at')


task_schema = TaskSchema()
tasks_schema = TaskSchema(many=True)
attachment_schema = AttachmentSchema()

# add Marshmallow schemas to APISpec
# NOTE: nested schemas must be registered before the schemas nesting them
api_spec.components.schema('Attachment', schema=AttachmentSchema)
api_spec.components.schema('Task', schema=TaskSchema)


def parse_due_date(value: Optional[str]) -> Optional[datetime]:
    # due dates are stored as naive UTC, like every other timestamp
    if value is None:
        return None
    try:
        due_date = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError(f'Invalid dueDate: {value}')
    if due_date.tzinfo is not None:
        due_date = due_date.astimezone(timezone.utc).replace(tzinfo=None)
    return due_date


def attachment_fields(data: dict) -> dict:
    return {
        'file_name': data['fileName'],
        'file_url': data['fileUrl'],
        'file_size': data.get('fileSize'),
        'mime_type': data.get('mimeType'),
    }


def get_task_for_user(task_id: str, user_id: str) -> Task:
    task = Task.get_or_none(_id=task_id)
    if task is None:
        raise NotFoundError('Task not found')
    require_project_access(task.project, user_id, msg='You do not have access to this task')
    return task


@bp.route('/projects/<project_id>/tasks', methods=['POST'])
@jwt_required()
@expects_json(schema_task_post, fill_defaults=True)
def create_task(project_id):
    require_project_access(project_id, g_context.current_user._id)
    task_data = request.json

    task = Task(
        project=project_id,
        title=task_data['title'],
        description=task_data.get('description'),
        status=TaskStatus(task_data.get('status', TaskStatus.TODO.value)),
        priority=TaskPriority(task_data['priority']) if task_data.get('priority') else None,
        due_date=parse_due_date(task_data.get('dueDate')),
        assignee=task_data.get('assigneeId'),
        tags=task_data.get('tags', []),
    )
    for attachment in task_data.get('attachments', []):
        task.attachments.append(Attachment(**attachment_fields(attachment)))
    task.save()
    logger.info(f'created task {task._id} in project {project_id}')

    return jsonify(task_schema.dump(task)), 201


@bp.route('/projects/<project_id>/tasks', methods=['GET'])
@jwt_required()
def list_tasks(project_id):
    """
    Lists the tasks of a project, newest first.
    Optional filters: status, assigneeId, search (case-insensitive match on title or description)
    """
    require_project_access(project_id, g_context.current_user._id)
    skip, take = pagination_args(request.args, current_app.config['PAGE_SIZE'], current_app.config['MAX_PAGE_SIZE'])

    query = Task.objects(project=project_id)

    status = request.args.get('status')
    if status:
        try:
            query = query.filter(status=TaskStatus(status))
        except ValueError:
            raise ValidationError(f'Invalid status: {status}')

    assignee_id = request.args.get('assigneeId')
    if assignee_id:
        query = query.filter(assignee=assignee_id)

    search = request.args.get('search')
    if search:
        query = query.filter(Q(title__icontains=search) | Q(description__icontains=search))

    total = query.count()
    tasks = query.skip(skip).limit(take)

    return jsonify({
        'tasks': tasks_schema.dump(tasks),
        'total': total,
        'skip': skip,
        'take': take,
    }), 200


@bp.route('/<task_id>', methods=['GET'])
@jwt_required()
def get_task(task_id):
    task = get_task_for_user(task_id, g_context.current_user._id)
    return jsonify(task_schema.dump(task)), 200


@bp.route('/<task_id>', methods=['PATCH'])
@jwt_required()
@expects_json(schema_task_patch)
def update_task(task_id):
    task = get_task_for_user(task_id, g_context.current_user._id)
    update_data = request.json

    if 'title' in update_data:
        task.title = update_data['title']
    if 'description' in update_data:
        task.description = update_data['description']
    if 'status' in update_data:
        task.status = TaskStatus(update_data['status'])
    if 'priority' in update_data:
        task.priority = TaskPriority(update_data['priority']) if update_data['priority'] else None
    if 'dueDate' in update_data:
        task.due_date = parse_due_date(update_data['dueDate'])
    if 'assigneeId' in update_data:
        task.assignee = update_data['assigneeId']
    if 'tags' in update_data:
        task.tags = update_data['tags']
    task.save()

    return jsonify(task_schema.dump(task)), 200


@bp.route('/<task_id>', methods=['DELETE'])
@jwt_required()
def delete_task(task_id):
    task = get_task_for_user(task_id, g_context.current_user._id)
    task.delete()
    logger.info(f'deleted task {task_id}')
    return '', 204


@bp.route('/<task_id>/attachments', methods=['POST'])
@jwt_required()
@expects_json(schema_attachment_post)
def add_attachment(task_id):
    task = get_task_for_user(task_id, g_context.current_user._id)
    attachment = task.add_attachment(**attachment_fields(request.json))
    return jsonify(attachment_schema.dump(attachment)), 201


@bp.route('/<task_id>/attachments/<attachment_id>', methods=['DELETE'])
@jwt_required()
def remove_attachment(task_id, attachment_id):
    task = get_task_for_user(task_id, g_context.current_user._id)
    if not task.remove_attachment(attachment_id):
        raise NotFoundError('Attachment not found')
    return '', 204
