from unittest.mock import patch

import orjson

from taskhub import redis_client
from taskhub.models import Report, ReportStatus, ReportType
from taskhub.reports.cache import project_summary_key
from fakes import FailingRedis
from test_data.load import PROJECT_ID, MEMBER_ID

REPORTS_URL = f'/reports/projects/{PROJECT_ID}/reports'
SUMMARY_URL = f'/reports/projects/{PROJECT_ID}/summary'


def test_report_post(init_database, test_client, member_headers, fake_redis):
    response = test_client.post(REPORTS_URL, headers=member_headers, json={'reportType': 'MONTHLY'})
    assert response.status_code == 201
    assert response.json['status'] == 'PENDING'
    assert response.json['reportType'] == 'MONTHLY'
    assert response.json['projectId'] == PROJECT_ID
    assert response.json['userId'] == MEMBER_ID
    assert response.json['summary'] is None

    # exactly one job was pushed for the new report
    assert fake_redis.llen('report:queue') == 1
    _key, payload = fake_redis.blpop(['report:queue'], timeout=1)
    job = orjson.loads(payload)
    assert job['reportId'] == response.json['id']
    assert job['projectId'] == PROJECT_ID
    assert job['reportType'] == 'MONTHLY'
    assert job['requestedAt'].endswith('Z')

    report = Report.objects(_id=response.json['id']).get()
    assert report.status == ReportStatus.PENDING
    assert report.enqueued_at is not None


def test_report_post_default_type(init_database, test_client, member_headers):
    response = test_client.post(REPORTS_URL, headers=member_headers, json={})
    assert response.status_code == 201
    assert response.json['reportType'] == ReportType.WEEKLY.value


def test_report_post_invalid_type(init_database, test_client, member_headers):
    response = test_client.post(REPORTS_URL, headers=member_headers, json={'reportType': 'YEARLY'})
    assert response.status_code == 400


def test_report_post_forbidden(init_database, test_client, outsider_headers, fake_redis):
    reports_before = Report.objects.count()

    response = test_client.post(REPORTS_URL, headers=outsider_headers, json={})
    assert response.status_code == 403
    assert fake_redis.llen('report:queue') == 0
    assert Report.objects.count() == reports_before


def test_report_post_queue_unavailable(init_database, test_client, member_headers, fake_redis):
    reports_before = Report.objects.count()

    with patch.object(redis_client, '_redis_client', FailingRedis()):
        response = test_client.post(REPORTS_URL, headers=member_headers, json={})

    assert response.status_code == 503
    assert response.json['retryable'] is True
    # the report row is not left behind
    assert Report.objects.count() == reports_before


def test_reports_list(init_database, test_client, member_headers):
    for _ in range(2):
        response = test_client.post(REPORTS_URL, headers=member_headers, json={})
        assert response.status_code == 201

    response = test_client.get(REPORTS_URL, headers=member_headers)
    assert response.status_code == 200
    assert response.json['total'] == Report.objects(project=PROJECT_ID).count()
    assert len(response.json['reports']) == min(response.json['total'], response.json['take'])
    requested = [report['requestedAt'] for report in response.json['reports']]
    assert requested == sorted(requested, reverse=True)

    response = test_client.get(f'{REPORTS_URL}?take=1', headers=member_headers)
    assert len(response.json['reports']) == 1
    # the total counts every report of the project, not only the returned page
    assert response.json['total'] == Report.objects(project=PROJECT_ID).count() >= 2
    assert response.json['take'] == 1


def test_reports_list_forbidden(init_database, test_client, outsider_headers):
    response = test_client.get(REPORTS_URL, headers=outsider_headers)
    assert response.status_code == 403


def test_report_get(init_database, test_client, member_headers, outsider_headers):
    response = test_client.post(REPORTS_URL, headers=member_headers, json={})
    report_id = response.json['id']

    response = test_client.get(f'/reports/{report_id}', headers=member_headers)
    assert response.status_code == 200
    assert response.json['id'] == report_id
    assert response.json['status'] == 'PENDING'

    response = test_client.get(f'/reports/{report_id}', headers=outsider_headers)
    assert response.status_code == 403

    response = test_client.get('/reports/000000000000000000000000', headers=member_headers)
    assert response.status_code == 404


def test_project_summary(init_database, test_client, member_headers, fake_redis):
    response = test_client.get(SUMMARY_URL, headers=member_headers)
    assert response.status_code == 200
    assert response.json == {'total': 4, 'completed': 1, 'inProgress': 1, 'todo': 2, 'overdue': 1}

    # the summary is now cached
    assert orjson.loads(fake_redis.get(project_summary_key(PROJECT_ID))) == response.json


def test_project_summary_forbidden(init_database, test_client, outsider_headers):
    response = test_client.get(SUMMARY_URL, headers=outsider_headers)
    assert response.status_code == 403


def test_report_endpoints_require_authentication(init_database, test_client):
    assert test_client.get(REPORTS_URL).status_code == 401
    assert test_client.post(REPORTS_URL, json={}).status_code == 401
    assert test_client.get(SUMMARY_URL).status_code == 401
