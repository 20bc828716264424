import logging

from flask import request, jsonify, current_app, g as g_context
from flask import Blueprint
from flask_expects_json import expects_json
from flask_jwt_extended import jwt_required
from flask_marshmallow.fields import fields as ma_fields

from taskhub import ma, api_spec
from taskhub.models import User
from taskhub.schemas import schema_user_patch
from taskhub.utils.helpers import pagination_args


bp = Blueprint('user', 'user')
logger = logging.getLogger(__name__)


class UserSchema(ma.Schema):
    id = ma_fields.String(required=True, attribute='_id')
    email = ma_fields.String(required=True)
    name = ma_fields.String(required=True)
    avatarUrl = ma_fields.String(attribute='avatar_url', allow_none=True)
    createdAt = ma_fields.DateTime(attribute='created_at')


class UserSummarySchema(ma.Schema):
    id = ma_fields.String(required=True, attribute='_id')
    name = ma_fields.String(required=True)
    email = ma_fields.String(required=True)


user_schema = UserSchema()
users_summary_schema = UserSummarySchema(many=True)

# add Marshmallow schemas to APISpec
api_spec.components.schema('User', schema=UserSchema)


@bp.route('/me', methods=['GET'])
@jwt_required()
def get_profile():
    user: User = g_context.current_user
    return jsonify(user_schema.dump(user)), 200


@bp.route('/me', methods=['PATCH'])
@jwt_required()
@expects_json(schema_user_patch)
def update_profile():
    """ Updates profile fields (name and/or avatarUrl) """
    user: User = g_context.current_user
    update_data = request.json

    if 'name' in update_data:
        user.name = update_data['name']
    if 'avatarUrl' in update_data:
        user.avatar_url = update_data['avatarUrl']
    user.save()

    return jsonify(user_schema.dump(user)), 200


@bp.route('', methods=['GET'])
@jwt_required()
def list_users():
    """ Lists users, used by clients to pick project members and task assignees """
    skip, take = pagination_args(request.args, current_app.config['PAGE_SIZE'], current_app.config['MAX_PAGE_SIZE'])
    users = User.objects.order_by('name').skip(skip).limit(take)
    return jsonify({'users': users_summary_schema.dump(users)}), 200
