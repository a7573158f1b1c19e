import os
import sys
# needed only for local development
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
import json

from common import insert_repo, check_auth, check_branch, exception_response, bad_body_response
from api_utils import get_body, get_path_parameters, get_query_parameters, parse_int
from data_common.exceptions import RepositoryException, StorageException

from log_config import logger


@check_auth
@insert_repo
@check_branch
def set_target(event, context):
    """
    Body: {"year", "month", "target_amount", "items_sold_target", "bonus_threshold", "bonus_amount"}
    """
    logger.debug('event: {}'.format(event))

    try:
        body = get_body(event)
    except json.JSONDecodeError:
        return bad_body_response()

    body['branch_id'] = context.branch_id

    try:
        target = context.repo.set_sales_target(body)
        return {
            'statusCode': 200,
            'body': json.dumps(target)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
@check_branch
def get_targets(event, context):
    """
    ?year=&month=
    """
    logger.debug('event: {}'.format(event))

    params = get_query_parameters(event)

    try:
        year = parse_int(params.get('year'))
        month = parse_int(params.get('month'))
    except ValueError:
        return bad_body_response()

    targets = context.repo.get_sales_targets(context.branch_id, year=year, month=month)

    return {
        'statusCode': 200,
        'body': json.dumps(targets)
    }


@check_auth
@insert_repo
@check_branch
def record_actuals(event, context):
    """
    Body: {"actual_amount": number, "items_sold_actual": int}
    """
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        body = get_body(event)
        actual_amount = body['actual_amount']
        items_sold_actual = body.get('items_sold_actual') or 0
    except (json.JSONDecodeError, KeyError, TypeError):
        return bad_body_response()

    if not isinstance(actual_amount, (int, float)) or isinstance(actual_amount, bool):
        return bad_body_response()

    try:
        target = context.repo.record_sales_target_actuals(entity_id, actual_amount, items_sold_actual)
        return {
            'statusCode': 200,
            'body': json.dumps(target)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()
