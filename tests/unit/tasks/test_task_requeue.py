from datetime import datetime, timedelta

import orjson

from taskhub.models import Report
from taskhub.tasks.report import requeue_unqueued_reports
from test_data.load import PROJECT_ID, OWNER_ID


def test_requeue_unqueued_reports_task(init_database, fake_redis):
    """ PENDING reports whose enqueue was never confirmed are pushed to the queue again """
    stale = Report(project=PROJECT_ID, user=OWNER_ID, requested_at=datetime.utcnow() - timedelta(minutes=10))
    stale.save()

    result = requeue_unqueued_reports()

    assert result == {'requeued_reports': 1}
    _key, payload = fake_redis.blpop(['report:queue'], timeout=1)
    assert orjson.loads(payload)['reportId'] == stale._id
    assert Report.objects(_id=stale._id).get().enqueued_at is not None

    # already confirmed, nothing to do on the next run
    assert requeue_unqueued_reports() == {'requeued_reports': 0}
