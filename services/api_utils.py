import json


def get_body(event):
    body = event['body']
    if isinstance(body, str):
        body = json.loads(body)
    return body


def get_path_parameters(event):
    try:
        parameters = event['pathParameters']
    except KeyError:
        try:
            parameters = event['path']
        except KeyError:
            parameters = {}
    return parameters or {}


def get_query_parameters(event):
    parameters = event.get('queryStringParameters')
    if parameters is None:
        parameters = event.get('query')
    return parameters or {}


def get_headers(event):
    try:
        headers = event['headers']
    except KeyError:
        headers = {}
    # API Gateway does not normalize header case
    return {k.lower(): v for k, v in (headers or {}).items()}


def parse_bool(value):
    if isinstance(value, bool) or value is None:
        return value
    return str(value).lower() in ('true', '1', 'yes')


def parse_int(value):
    if value is None or value == '':
        return None
    return int(value)


def get_token(event):
    headers = get_headers(event)
    if 'authorization' in headers:
        token = headers['authorization'].split()[1]
        return token
    else:
        return False
