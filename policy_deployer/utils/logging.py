import datetime
import json
import logging


class JsonFormatter(logging.Formatter):
    _DEFAULT_RECORD_FIELDS = [
        (
            "timestamp",
            lambda r: datetime.datetime.fromtimestamp(r.created, datetime.timezone.utc),
        ),
        ("version", lambda r: 1),
        ("severity", lambda r: r.levelname),
        ("logger", lambda r: r.name),
        ("file", lambda r: r.pathname),
        ("line", lambda r: r.lineno),
        ("message", lambda r: r.getMessage()),
    ]

    def format(self, record):
        message_dict = {}
        for field, func in self._DEFAULT_RECORD_FIELDS:
            message_dict[field] = func(record)

        if record.__dict__.get("extra"):
            message_dict.update(record.extra)

        if record.exc_info:
            message_dict["details"] = {
                "backtrace": self.formatException(record.exc_info),
                "exception": str(record.exc_info[1]),
            }

        return json.dumps(message_dict, default=str)
