from taskhub.tasks.report import requeue_unqueued_reports
