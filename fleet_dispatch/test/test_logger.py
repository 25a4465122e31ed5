"""
Tests for the JSON logging setup.
"""

import json
import logging
import sys

from fleet_dispatch.logger import JsonFormatter, ROOT_LOGGER_NAME, get_logger


def make_record(msg='hello %s', args=('world',), exc_info=None):
    return logging.LogRecord(
        name='fleet_dispatch.domain.test',
        level=logging.WARNING,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=args,
        exc_info=exc_info,
        func='make_record',
    )


def test_json_formatter_emits_one_object():
    formatter = JsonFormatter({'level': 'levelname', 'logger': 'name', 'message': 'message'})
    payload = json.loads(formatter.format(make_record()))

    assert payload == {
        'level': 'WARNING',
        'logger': 'fleet_dispatch.domain.test',
        'message': 'hello world',
    }


def test_json_formatter_includes_exception_text():
    formatter = JsonFormatter()
    try:
        raise RuntimeError('boom')
    except RuntimeError:
        record = make_record(exc_info=sys.exc_info())

    payload = json.loads(formatter.format(record))
    assert 'RuntimeError: boom' in payload['exc_info']


def test_json_formatter_timestamp():
    formatter = JsonFormatter({'timestamp': 'asctime'})
    payload = json.loads(formatter.format(make_record()))
    assert payload['timestamp'][4] == '-'


def test_loggers_share_one_tree():
    root = get_logger()
    child = get_logger('fleet_dispatch.domain.dispatching.assignment')
    outsider = get_logger('build')

    assert root.name == ROOT_LOGGER_NAME
    assert root is get_logger(ROOT_LOGGER_NAME)
    assert child.name.startswith(ROOT_LOGGER_NAME + '.')
    assert outsider.name == 'fleet_dispatch.build'
    assert root.handlers
    assert not child.handlers
