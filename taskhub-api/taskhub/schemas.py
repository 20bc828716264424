import json
from pathlib import Path


def load_schema(filename):
    # Get the directory containing this file, then navigate to schemas directory
    current_file = Path(__file__)
    schemas_dir = current_file.parent / 'schemas'
    file_path = schemas_dir / filename

    with open(file_path, 'rt') as file:
        schema = json.load(file)
    # replace $id prop with absolute path to the file
    # this allows jsonschema to locate  $ref URIs
    if '$id' in schema:
        schema['$id'] = 'file://' + str(schemas_dir.resolve() / schema['$id'])
    return schema


# auth schemas
schema_register = load_schema('register.json')
schema_login = load_schema('login.json')

# user schemas
schema_user_patch = load_schema('user_patch.json')

# project schemas
schema_project_post = load_schema('project_post.json')
schema_project_patch = load_schema('project_patch.json')
schema_member_post = load_schema('member_post.json')

# task schemas
schema_task_post = load_schema('task_post.json')
schema_task_patch = load_schema('task_patch.json')
schema_attachment_post = load_schema('attachment_post.json')

# report schemas
schema_report_post = load_schema('report_post.json')
