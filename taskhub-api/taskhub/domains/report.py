import logging

from flask import Blueprint, jsonify, request, current_app, g as g_context
from flask_expects_json import expects_json
from flask_jwt_extended import jwt_required
from flask_marshmallow.fields import fields as ma_fields

from taskhub import ma, api_spec, get_report_service
from taskhub.models import User, ReportStatus, ReportType
from taskhub.schemas import schema_report_post
from taskhub.utils.helpers import pagination_args

bp = Blueprint('report', 'report')
logger = logging.getLogger(__name__)


class ReportResponseSchema(ma.Schema):
    id = ma_fields.String(required=True, attribute='_id')
    projectId = ma_fields.String(required=True, attribute='project')
    userId = ma_fields.String(required=True, attribute='user')
    reportType = ma_fields.Enum(ReportType, required=True, attribute='report_type')
    status = ma_fields.Enum(ReportStatus, required=True)
    summary = ma_fields.Dict(allow_none=True)
    errorMessage = ma_fields.String(attribute='error_message', allow_none=True)
    requestedAt = ma_fields.DateTime(required=True, attribute='requested_at')
    completedAt = ma_fields.DateTime(attribute='completed_at', allow_none=True)


class ReportListItemSchema(ma.Schema):
    id = ma_fields.String(required=True, attribute='_id')
    reportType = ma_fields.Enum(ReportType, required=True, attribute='report_type')
    status = ma_fields.Enum(ReportStatus, required=True)
    requestedAt = ma_fields.DateTime(required=True, attribute='requested_at')
    completedAt = ma_fields.DateTime(attribute='completed_at', allow_none=True)


class ReportsListResponseSchema(ma.Schema):
    reports = ma_fields.List(ma_fields.Nested(ReportListItemSchema()), required=True)
    total = ma_fields.Integer(required=True)
    skip = ma_fields.Integer(required=True)
    take = ma_fields.Integer(required=True)


class ProjectSummarySchema(ma.Schema):
    total = ma_fields.Integer(required=True)
    completed = ma_fields.Integer(required=True)
    inProgress = ma_fields.Integer(required=True)
    todo = ma_fields.Integer(required=True)
    overdue = ma_fields.Integer(required=True)


report_response_schema = ReportResponseSchema()
reports_list_response_schema = ReportsListResponseSchema()
project_summary_schema = ProjectSummarySchema()

# add Marshmallow schemas to APISpec
api_spec.components.schema('ReportResponse', schema=ReportResponseSchema)
api_spec.components.schema('ReportsListResponse', schema=ReportsListResponseSchema)
api_spec.components.schema('ProjectSummary', schema=ProjectSummarySchema)


@bp.route('/projects/<project_id>/reports', methods=['POST'])
@jwt_required()
@expects_json(schema_report_post, fill_defaults=True)
def report_post(project_id):
    """ Requests a report, it is generated asynchronously by the report worker """
    user: User = g_context.current_user
    report_type = ReportType(request.json.get('reportType', ReportType.WEEKLY.value))

    report = get_report_service().create(project_id, user._id, report_type)

    return jsonify(report_response_schema.dump(report)), 201


@bp.route('/projects/<project_id>/reports', methods=['GET'])
@jwt_required()
def reports_list(project_id):
    """ Reports of a project, most recently requested first """
    user: User = g_context.current_user
    skip, take = pagination_args(request.args, current_app.config['PAGE_SIZE'], current_app.config['MAX_PAGE_SIZE'])

    report_service = get_report_service()
    reports = report_service.find_by_project(project_id, user._id, skip=skip, take=take)

    return jsonify(reports_list_response_schema.dump({
        'reports': reports,
        'total': report_service.count_by_project(project_id, user._id),
        'skip': skip,
        'take': take,
    })), 200


@bp.route('/<report_id>', methods=['GET'])
@jwt_required()
def report_get(report_id):
    user: User = g_context.current_user
    report = get_report_service().find_by_id(report_id, user._id)
    return jsonify(report_response_schema.dump(report)), 200


@bp.route('/projects/<project_id>/summary', methods=['GET'])
@jwt_required()
def project_summary(project_id):
    """ Task counts of a project, served from cache for up to SUMMARY_CACHE_TTL seconds """
    user: User = g_context.current_user
    summary = get_report_service().get_project_summary(project_id, user._id)
    return jsonify(project_summary_schema.dump(summary)), 200
