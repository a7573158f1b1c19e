import os
import sys

from functools import wraps

from jose import JWTError

from log_config import logger
from auth import jwt_decode
import json


AUTH0_CLIENT_ID = os.getenv('AUTH0_CLIENT_ID')
AUTH0_CLIENT_PUBLIC_KEY = os.getenv('AUTH0_CLIENT_PUBLIC_KEY')

SCHEDULER_USER_ID = 'scheduler'


class TokenError(Exception):
    """Raised when token is invalid, malformed or expired"""


def _table_name():
    return 'zargar-{STAGE}'.format(STAGE=os.environ['STAGE'])


def _build_repo(user_id, email=''):
    sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    from data_dynamodb.dynamodb_repository import DynamoRepository

    # While developing, dynamodb local is used. So if `DYNAMO_ENDPOINT` is present in env vars
    # dynamodb boto client is patched to use local db
    try:
        return DynamoRepository(
            region_name=os.environ['REGION'],
            table=_table_name(),
            user_id=user_id,
            email=email,
            dynamodb_local_endpoint=os.environ['DYNAMO_ENDPOINT']
        )
    except KeyError:
        return DynamoRepository(
            region_name=os.environ['REGION'],
            table=_table_name(),
            user_id=user_id,
            email=email
        )


def insert_repo(handler):
    @wraps(handler)
    def wrapper(event, context):
        context.repo = _build_repo(context.user_id, context.email)
        return handler(event, context)

    return wrapper


def get_repo(record=None):
    """This is not a decorator

    Repository for queue and scheduled events. The acting user is read from
    the record body, scheduled events act as the scheduler.
    """
    from data_common.exceptions import UserIdNotInObject

    if record is None:
        return _build_repo(SCHEDULER_USER_ID)

    try:
        body = record['body']
        user_id = json.loads(body)['user_id']
    except KeyError:
        raise UserIdNotInObject

    return _build_repo(user_id)


def check_branch(handler):
    """Needs to be decorated after check_auth, otherwise will not work

    @check_auth
    @insert_repo
    @check_branch
    def handler():
        ....
    """
    @wraps(handler)
    def wrapper(event, context):
        from api_utils import get_headers
        try:
            headers = get_headers(event)
        except json.JSONDecodeError:
            return {
                'statusCode': 400,
                'body': json.dumps({
                    'error': 'Bad parameter(s) in request. Unable to decode Request Headers.'
                })
            }

        try:
            branch_id = headers['x-branch-id']
        except KeyError:
            return {
                'statusCode': 400,
                'body': json.dumps({
                    'error': 'Bad request. Missing header x-branch-id'
                })
            }

        if branch_id not in context.branches:
            return {
                'statusCode': 403,
                'body': json.dumps({
                    'error': 'Forbidden. branch_id is not associated with the user'
                })
            }

        context.branch_id = branch_id
        logger.bind(branch_id=branch_id)

        return handler(event, context)

    return wrapper


def check_auth(handler):
    @wraps(handler)
    def wrapper(event, context):
        from api_utils import get_token
        logger.debug('event: {}'.format(event))

        try:
            auth_token = get_token(event)
        except IndexError:
            auth_token = False

        if not auth_token:
            return {
                'statusCode': 401,
                'body': 'The resource you are trying to access is private. '
                        'Please provide an Authorization token'
            }

        try:
            decoded = jwt_decode(auth_token, AUTH0_CLIENT_PUBLIC_KEY)
        except JWTError:
            decoded = {}

        if 'email' in decoded and 'sub' in decoded:
            context.email = decoded['email']
            # sub is `<provider>|<user id>`
            context.user_id = decoded['sub'].split('|')[-1]

            app_metadata = decoded.get('app_metadata') or {}
            context.branches = app_metadata.get('branches') or []

            logger.clear_context()
            logger.bind(user_id=context.user_id)
        else:
            return {
                'statusCode': 401,
                'body': 'invalid_token. '
                        'The access token provided is expired, '
                        'revoked, malformed, '
                        'or invalid for other reasons'
            }

        return handler(event, context)

    return wrapper


def exception_response(ex):
    """Map a repository or storage exception to an API response"""
    from data_common.exceptions import BadParameters, MissingRequiredKey, NoSuchEntity, \
        InvalidStateTransition, TransactionFailed, BatchTooLarge, WorkflowError

    if isinstance(ex, MissingRequiredKey):
        return {
            'statusCode': 400,
            'body': json.dumps({
                'error': 'Bad request. Missing required key-val pair {KEY}'.format(KEY=str(ex))
            })
        }

    if isinstance(ex, BadParameters):
        return {
            'statusCode': 400,
            'body': json.dumps({
                'error': 'Bad request. The request was Malformed: {DETAIL}'.format(DETAIL=str(ex))
            })
        }

    if isinstance(ex, BatchTooLarge):
        return {
            'statusCode': 400,
            'body': json.dumps({
                'error': 'Bad request. Too many documents in one batch: {COUNT}'.format(COUNT=str(ex))
            })
        }

    if isinstance(ex, NoSuchEntity):
        return {
            'statusCode': 404,
            'body': json.dumps({
                'error': str(ex)
            })
        }

    if isinstance(ex, (InvalidStateTransition, TransactionFailed)):
        return {
            'statusCode': 409,
            'body': json.dumps({
                'error': str(ex)
            })
        }

    if isinstance(ex, WorkflowError):
        return {
            'statusCode': 500,
            'body': json.dumps({
                'error': str(ex)
            })
        }

    raise ex


def bad_body_response():
    return {
        'statusCode': 400,
        'body': json.dumps({
            'error': 'Bad parameter(s) in request'
        })
    }
