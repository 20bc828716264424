from datetime import datetime
import logging
from flask import request, has_request_context, g as g_context


class TaskFormatter(logging.Formatter):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        try:
            from celery._state import get_current_task
            self.get_current_task = get_current_task
        except ImportError:
            self.get_current_task = lambda: None

    def format(self, record):
        task = self.get_current_task()
        if task and task.request:
            record.__dict__.update(task_id=task.request.id,
                                   task_name=task.name)
        else:
            record.__dict__.setdefault('task_name', '')
            record.__dict__.setdefault('task_id', '')
        return super().format(record)


class JobFormatter(logging.Formatter):
    """ Report dispatcher/worker formatter, report_id is passed by the loggers through `extra` """

    def format(self, record):
        record.__dict__.setdefault('report_id', '-')
        return super().format(record)


class ContextualFilter(logging.Filter):
    def filter(self, log_record):
        """ Provide some extra variables to give our logs some better info """
        log_record.utcnow = datetime.utcnow().isoformat(sep=' ', timespec='milliseconds')
        log_record.url = '-'
        log_record.method = '-'
        log_record.request_id = '-'
        log_record.user_id = 'unauthenticated'

        if has_request_context():
            log_record.url = request.path
            log_record.method = request.method
            log_record.request_id = g_context.get('request_id', '-')
            # the user is loaded by the JWT user_lookup_loader on authenticated endpoints
            user = g_context.get('current_user')
            if user is not None:
                log_record.user_id = user._id
        return True


class ContextualFilterWorker(logging.Filter):
    def filter(self, log_record):
        """ Provide some extra variables to give our logs some better info """
        log_record.utcnow = datetime.utcnow().isoformat(sep=' ', timespec='milliseconds')
        return True


webapp_logger_format = '[%(utcnow)s][user:%(user_id)s][%(url)s %(method)s %(request_id)8.8s] ' \
                       '%(levelname)s - %(message)s'
celery_logger_format = '[%(utcnow)s] Task %(task_name)s[%(task_id)s] %(levelname)s - %(message)s'
worker_logger_format = '[%(utcnow)s][%(process)d][%(name)s] report:%(report_id)s %(levelname)s - %(message)s'


webapp_logging_config = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'webapp': {
            'format': webapp_logger_format
        }
    },
    'filters': {
        'contextual_filter': {
            '()': ContextualFilter
        }
    },
    'handlers': {
        'webapp': {
            'level': 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'webapp',
            'filters': ['contextual_filter'],
            'stream': 'ext://sys.stdout'
        },
        'debugging': {
            'level': 'DEBUG',
            'class': 'logging.StreamHandler',
            'formatter': 'webapp',
            'filters': ['contextual_filter'],
            'stream': 'ext://sys.stdout'
        }
    },
    'loggers': {
        'taskhub': {
            'level': 'INFO',
            'handlers': ['webapp'],
            'propagate': False
        },
        'taskhub.reports': {
            'level': 'DEBUG',
            'handlers': ['debugging'],
            'propagate': False
        }
    }
}


logging_config_celery = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'celery': {
            '()': TaskFormatter,
            'format': celery_logger_format
        }
    },
    'filters': {
        'contextual_filter': {
            '()': ContextualFilterWorker
        }
    },
    'handlers': {
        'celery': {
            'level': 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'celery',
            'filters': ['contextual_filter'],
            'stream': 'ext://sys.stdout'
        }
    },
    'loggers': {
        'taskhub': {
            'level': 'INFO',
            'handlers': ['celery'],
            'propagate': False
        }
    }
}


# used by the report dispatcher and by its worker processes
report_worker_logging_config = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'worker': {
            '()': JobFormatter,
            'format': worker_logger_format
        }
    },
    'filters': {
        'contextual_filter': {
            '()': ContextualFilterWorker
        }
    },
    'handlers': {
        'console': {
            'level': 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'worker',
            'filters': ['contextual_filter'],
            'stream': 'ext://sys.stdout'
        }
    },
    'loggers': {
        '': {  # root logger
            'level': 'WARNING',
            'handlers': ['console']
        },
        'taskhub': {
            'level': 'INFO',
            'handlers': ['console'],
            'propagate': False
        }
    }
}
