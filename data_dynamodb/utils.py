from data_common.exceptions import MissingRequiredKey, BadParameters
from data_common.utils import is_right_datatype


def check_for_required_keys(obj, attributes, exclude=None):
    keys_required = list(attributes)
    if exclude:
        keys_required = [k for k in keys_required if k not in exclude]

    for key in keys_required:
        if key not in obj or obj[key] is None or obj[key] == "":
            raise MissingRequiredKey(key)


def check_properties_datatypes(obj, attributes):
    """
    check datatype of key-val pairs present in obj

    :param obj:
    :param attributes: {key: datatype}
    :return:
    """
    for key, val in obj.items():
        if key in attributes and val is not None:
            if not is_right_datatype(val, attributes[key]):
                raise BadParameters(key)


def check_allowed_value(value, allowed, key):
    if value not in allowed:
        raise BadParameters("{KEY}: {VALUE}".format(KEY=key, VALUE=value))
