import os
import sys
# needed only for local development
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
import json

from common import insert_repo, check_auth, get_repo, exception_response, bad_body_response
from api_utils import get_body, get_path_parameters
from data_common.exceptions import RepositoryException, StorageException

from log_config import logger


@check_auth
@insert_repo
def create_confirmation(event, context):
    """
    Ask a supplier to confirm a set of unpaid items.
    Body: {"supplier_name": ..., "item_ids": [...], "admin_notes": ...}
    """
    logger.debug('event: {}'.format(event))

    try:
        body = get_body(event)
    except json.JSONDecodeError:
        return bad_body_response()

    try:
        confirmation = context.repo.create_supplier_confirmation(body)
        return {
            'statusCode': 200,
            'body': json.dumps(confirmation)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
def get_by_id(event, context):
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        confirmation = context.repo.get_supplier_confirmation_by_id(entity_id)
        return {
            'statusCode': 200,
            'body': json.dumps(confirmation)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)


@check_auth
@insert_repo
def get_by_code(event, context):
    logger.debug('event: {}'.format(event))

    code = get_path_parameters(event)['confirmation_code']

    confirmation = context.repo.get_confirmation_by_code(code)

    if not confirmation:
        return {
            'statusCode': 404,
            'body': json.dumps({
                'error': "Tasdiqlash so'rovi topilmadi"
            })
        }

    return {
        'statusCode': 200,
        'body': json.dumps(confirmation)
    }


@check_auth
@insert_repo
def get_by_supplier(event, context):
    logger.debug('event: {}'.format(event))

    supplier_name = get_path_parameters(event)['supplier_name']

    confirmations = context.repo.get_confirmations_by_supplier(supplier_name)

    return {
        'statusCode': 200,
        'body': json.dumps(confirmations)
    }


@check_auth
@insert_repo
def get_stats(event, context):
    logger.debug('event: {}'.format(event))

    return {
        'statusCode': 200,
        'body': json.dumps(context.repo.get_confirmation_stats())
    }


@check_auth
@insert_repo
def send_confirmation(event, context):
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        confirmation = context.repo.send_supplier_confirmation(entity_id)
        return {
            'statusCode': 200,
            'body': json.dumps(confirmation)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
def process_response(event, context):
    """
    Body: {"confirmed": bool, "confirmed_items": [...], "rejected_items": [...], "notes": ...}
    """
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        body = get_body(event)
        confirmed = body['confirmed']
    except (json.JSONDecodeError, KeyError, TypeError):
        return bad_body_response()

    if not isinstance(confirmed, bool):
        return bad_body_response()

    try:
        confirmation = context.repo.process_supplier_response(
            entity_id,
            confirmed,
            body.get('confirmed_items') or [],
            body.get('rejected_items') or [],
            body.get('notes'))
        return {
            'statusCode': 200,
            'body': json.dumps(confirmation)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


def expire_confirmations(event, context):
    """
    Scheduled. Flip sent confirmations past their expiry date to expired
    """
    logger.debug('event: {}'.format(event))

    repo = get_repo()

    try:
        expired = repo.mark_expired_confirmations()
    except Exception:
        logger.log_uncaught_exception()

    logger.info('expired confirmations: {}'.format(expired))
    return expired
