import os
import sys
# needed only for local development
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
import json

from common import insert_repo, check_auth, exception_response, bad_body_response
from api_utils import get_body, get_path_parameters, get_query_parameters, parse_bool, parse_int
from data_common.exceptions import RepositoryException, StorageException

from log_config import logger


def _item_filters(event):
    params = get_query_parameters(event)

    filters = {k: params[k] for k in ['category', 'status', 'branch_id', 'payment_status', 'supplier_name',
                                      'start_date', 'end_date', 'search', 'sort_field', 'sort_direction']
               if params.get(k)}

    for key in ['is_provider', 'confirmed']:
        if key in params:
            filters[key] = parse_bool(params[key])

    for key in ['offset', 'limit']:
        if params.get(key):
            filters[key] = parse_int(params[key])

    return filters


@check_auth
@insert_repo
def add_item(event, context):
    """
    Add a new item to inventory
    """
    logger.debug('event: {}'.format(event))

    try:
        body = get_body(event)
    except json.JSONDecodeError:
        return bad_body_response()

    try:
        item = context.repo.save_item(body)
        return {
            'statusCode': 200,
            'body': json.dumps(item)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
def modify_item(event, context):
    """
    Partially update an item
    """
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        body = get_body(event)
    except json.JSONDecodeError:
        return bad_body_response()

    try:
        item = context.repo.update_item(entity_id, body)
        return {
            'statusCode': 200,
            'body': json.dumps(item)
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
        item = context.repo.get_item_by_id(entity_id)
        return {
            'statusCode': 200,
            'body': json.dumps(item)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
def get_items(event, context):
    """
    List items, filtered by query string parameters
    """
    logger.debug('event: {}'.format(event))

    try:
        filters = _item_filters(event)
    except ValueError:
        return bad_body_response()

    try:
        items = context.repo.get_items(filters)
        return {
            'statusCode': 200,
            'body': json.dumps(items)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
def get_unpaid_by_supplier(event, context):
    logger.debug('event: {}'.format(event))

    supplier_name = get_path_parameters(event)['supplier_name']

    items = context.repo.get_unpaid_items_by_supplier(supplier_name)

    return {
        'statusCode': 200,
        'body': json.dumps(items)
    }


@check_auth
@insert_repo
def delete_by_id(event, context):
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        context.repo.delete_item_by_id(entity_id)
        return {
            'statusCode': 204
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
def update_status(event, context):
    """
    Change an item's status. Body: {"status": ..., any status specific fields}
    """
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        body = dict(get_body(event))
        status = body.pop('status')
    except (json.JSONDecodeError, KeyError, TypeError, ValueError):
        return bad_body_response()

    try:
        item = context.repo.update_item_status(entity_id, status, body)
        return {
            'statusCode': 200,
            'body': json.dumps(item)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
def return_to_inventory(event, context):
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        item = context.repo.return_to_inventory(entity_id)
        return {
            'statusCode': 200,
            'body': json.dumps(item)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
def bulk_update_status(event, context):
    """
    Body: {"entity_ids": [...], "status": ..., "extra": {...}}
    """
    logger.debug('event: {}'.format(event))

    try:
        body = get_body(event)
        entity_ids = body['entity_ids']
        status = body['status']
    except (json.JSONDecodeError, KeyError, TypeError):
        return bad_body_response()

    try:
        items = context.repo.bulk_update_item_status(entity_ids, status, body.get('extra'))
        return {
            'statusCode': 200,
            'body': json.dumps(items)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
def bulk_return_to_inventory(event, context):
    logger.debug('event: {}'.format(event))

    try:
        entity_ids = get_body(event)['entity_ids']
    except (json.JSONDecodeError, KeyError, TypeError):
        return bad_body_response()

    try:
        items = context.repo.bulk_return_to_inventory(entity_ids)
        return {
            'statusCode': 200,
            'body': json.dumps(items)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
def bulk_update(event, context):
    """
    Body: {"entity_ids": [...], "changes": {...}}
    """
    logger.debug('event: {}'.format(event))

    try:
        body = get_body(event)
        entity_ids = body['entity_ids']
        changes = body['changes']
    except (json.JSONDecodeError, KeyError, TypeError):
        return bad_body_response()

    try:
        items = context.repo.bulk_update_items(entity_ids, changes)
        return {
            'statusCode': 200,
            'body': json.dumps(items)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
def bulk_delete(event, context):
    logger.debug('event: {}'.format(event))

    try:
        entity_ids = get_body(event)['entity_ids']
    except (json.JSONDecodeError, KeyError, TypeError):
        return bad_body_response()

    try:
        context.repo.bulk_delete_items(entity_ids)
        return {
            'statusCode': 204
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
def update_payment_status(event, context):
    """
    Body: {"entity_ids": [...], "payment": {"payment_status", "payed_lom_narxi", "payment_date", "reference"}}
    """
    logger.debug('event: {}'.format(event))

    try:
        body = get_body(event)
        entity_ids = body['entity_ids']
        payment = body.get('payment') or {}
    except (json.JSONDecodeError, KeyError, TypeError):
        return bad_body_response()

    try:
        items = context.repo.update_items_payment_status(entity_ids, payment)
        return {
            'statusCode': 200,
            'body': json.dumps(items)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()
