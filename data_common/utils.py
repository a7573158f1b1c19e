import random
import string
import time
import uuid

import maya
from dateutil import parser as date_parser


def clean(obj):
    remove_variables = [
        'previous_version',
        'active',
        'latest',
        'changed_by_id',
        'obj_type'
    ]
    for key in remove_variables:
        obj.pop(key, None)

    if obj and 'changed_on' in obj:
        obj['changed_on'] = maya.MayaDT(obj['changed_on']).iso8601()

    return obj


def is_right_datatype(variable, datatype):
    if datatype == int:
        return type(variable) == int
    if datatype == float:
        return type(variable) == int or type(variable) == float
    if datatype == str:
        return type(variable) == str
    if datatype == list:
        return type(variable) == list
    if datatype == bool:
        return type(variable) == bool
    if datatype == dict:
        return type(variable) == dict
    if datatype == "date" or datatype == "timestamp":
        try:
            date_parser.parse(variable)
        except (ValueError, TypeError, OverflowError):
            return False
    if datatype == "uuid":
        try:
            uuid.UUID(variable, version=4)
        except Exception:
            return False
    return True


def now_iso():
    return maya.now().iso8601()


def add_days_iso(iso_date, days):
    return maya.parse(iso_date).add(days=days).iso8601()


def epoch_millis():
    return int(time.time() * 1000)


def generate_confirmation_code():
    """CONF-<last 6 digits of epoch millis>-<4 random upper-case letters or digits>"""
    timestamp = str(epoch_millis())[-6:]
    suffix = ''.join(
        random.SystemRandom().choice(string.ascii_uppercase + string.digits) for _ in range(4))
    return 'CONF-{TIMESTAMP}-{SUFFIX}'.format(TIMESTAMP=timestamp, SUFFIX=suffix)


def generate_tracking_number():
    return 'TR-{MILLIS}'.format(MILLIS=epoch_millis())
