import os
from logging import Logger, ERROR

import rollbar


class LoggerWithThirdParty(Logger):
    """
    Logger that also reports errors to Rollbar when ROLLBAR_SECRET is set.

    Reports carry the request context bound for the current invocation, e.g.
    the acting user and the branch from x-branch-id.
    """
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.rollbar_secret = os.getenv("ROLLBAR_SECRET")
        self.request_context = {}
        environment = os.getenv("STAGE", "dev")

        if self.rollbar_secret:
            try:    # the api stays up when rollbar is down
                rollbar.init(self.rollbar_secret, environment)
            except Exception:
                print("Unable to initialize rollbar")

    def bind(self, **context):
        """Attach request fields to every later report"""
        self.request_context.update({k: v for k, v in context.items() if v is not None})

    def clear_context(self):
        # a warm lambda reuses the logger across invocations
        self.request_context = {}

    def handle(self, record):
        super().handle(record)

        if self.rollbar_secret and record.levelno >= ERROR:
            extra_data = {
                'file': record.pathname,
                'line': record.lineno,
                'module': record.funcName,
                'sinfo': record.stack_info,
                **self.request_context
            }
            try:
                rollbar.report_message(record.getMessage(), record.levelname.lower(), extra_data=extra_data)
            except Exception:
                print("Unable to report message to rollbar")

    def log_uncaught_exception(self):
        """Report the exception being handled, then re-raise it"""
        if self.rollbar_secret:
            try:
                rollbar.report_exc_info(extra_data=dict(self.request_context))
                rollbar.wait()
            except Exception:
                print("Unable to catch errors with rollbar")

        raise
