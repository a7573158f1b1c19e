import os
import sys
# needed only for local development
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
import json

from common import insert_repo, check_auth, check_branch, exception_response, bad_body_response
from api_utils import get_body, get_path_parameters
from data_common.exceptions import RepositoryException, StorageException

from log_config import logger


def _not_this_branch(check, context):
    if check['branch_id'] != context.branch_id:
        return {
            'statusCode': 403,
            'body': json.dumps({
                'error': 'Forbidden. The inventory check belongs to another branch'
            })
        }


@check_auth
@insert_repo
@check_branch
def schedule_check(event, context):
    """
    Body: {"date": ..., "conducted_by": ...}
    """
    logger.debug('event: {}'.format(event))

    try:
        body = get_body(event)
        date = body['date']
    except (json.JSONDecodeError, KeyError, TypeError):
        return bad_body_response()

    try:
        check = context.repo.schedule_inventory_check(context.branch_id, date,
                                                      body.get('conducted_by') or context.user_id)
        return {
            'statusCode': 200,
            'body': json.dumps(check)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
@check_branch
def start_check(event, context):
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        forbidden = _not_this_branch(context.repo.get_inventory_check_by_id(entity_id), context)
        if forbidden:
            return forbidden

        check = context.repo.start_inventory_check(entity_id)
        return {
            'statusCode': 200,
            'body': json.dumps(check)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
@check_branch
def record_results(event, context):
    """
    Body: {"items_checked": int, "items_missing": int, "items_excess": int, "notes": ...}
    """
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        body = get_body(event)
        counts = [body['items_checked'], body['items_missing'], body['items_excess']]
    except (json.JSONDecodeError, KeyError, TypeError):
        return bad_body_response()

    try:
        forbidden = _not_this_branch(context.repo.get_inventory_check_by_id(entity_id), context)
        if forbidden:
            return forbidden

        check = context.repo.record_inventory_check_results(entity_id, *counts, notes=body.get('notes'))
        return {
            'statusCode': 200,
            'body': json.dumps(check)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
@check_branch
def get_by_id(event, context):
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        check = context.repo.get_inventory_check_by_id(entity_id)
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)

    forbidden = _not_this_branch(check, context)
    if forbidden:
        return forbidden

    return {
        'statusCode': 200,
        'body': json.dumps(check)
    }


@check_auth
@insert_repo
@check_branch
def get_checks(event, context):
    logger.debug('event: {}'.format(event))

    checks = context.repo.get_inventory_checks(context.branch_id)

    return {
        'statusCode': 200,
        'body': json.dumps(checks)
    }
