import logging
from pathlib import Path

from flask import Blueprint
from flask import jsonify
from flask import send_from_directory

from taskhub import api_spec


bp = Blueprint('devtools', 'devtools')
logger = logging.getLogger(__name__)

SCHEMAS_DIR = Path(__file__).parent / 'schemas'


@bp.route('/schemas', methods=['GET'])
def list_json_schemas():
    return jsonify(sorted(path.name for path in SCHEMAS_DIR.glob('*.json')))


@bp.route('/schemas/<filename>', methods=['GET'])
def get_json_schema(filename):
    """ Exposes request JSON schemas for development """
    return send_from_directory(SCHEMAS_DIR, filename, mimetype='application/json')


@bp.route('/response-schemas', methods=['GET'])
def list_response_schemas():
    return jsonify(sorted(api_spec.components.schemas))


@bp.route('/response-schemas/<model>', methods=['GET'])
def get_response_schema(model):
    """ Exposes response schemas for development """

    schema = api_spec.components.schemas.get(model)

    if not schema:
        return jsonify({'msg': f'Schema for model {model} not found'}), 404

    return jsonify(schema)


@bp.route('/openapi.json', methods=['GET'])
def get_openapi_spec():
    return jsonify(api_spec.to_dict())
