import os
import sys
# needed only for local development
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
import json

from common import insert_repo, check_auth, check_branch, exception_response, bad_body_response
from api_utils import get_body, get_path_parameters, get_query_parameters
from data_common.exceptions import RepositoryException, StorageException

from log_config import logger


def _forbidden():
    return {
        'statusCode': 403,
        'body': json.dumps({
            'error': 'Forbidden. The transfer is not addressed to x-branch-id'
        })
    }


@check_auth
@insert_repo
@check_branch
def create_transfer(event, context):
    """
    Start a transfer from the branch in x-branch-id
    """
    logger.debug('event: {}'.format(event))

    try:
        body = get_body(event)
    except json.JSONDecodeError:
        return bad_body_response()

    if "from_branch_id" in body and body["from_branch_id"] != context.branch_id:
        return {
            'statusCode': 400,
            'body': json.dumps({
                'error': 'Bad parameter(s) in request. from_branch_id in body must match x-branch-id'
            })
        }

    body["from_branch_id"] = context.branch_id
    body.setdefault("initiated_by", context.user_id)

    try:
        transfer = context.repo.create_branch_transfer(body)
        return {
            'statusCode': 200,
            'body': json.dumps(transfer)
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
        transfer = context.repo.get_branch_transfer_by_id(entity_id)
        if context.branch_id not in (transfer['from_branch_id'], transfer['to_branch_id']):
            return _forbidden()

        return {
            'statusCode': 200,
            'body': json.dumps(transfer)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
@check_branch
def get_transfers(event, context):
    """
    Transfers of the branch in x-branch-id. ?direction=incoming|outgoing|all
    """
    logger.debug('event: {}'.format(event))

    direction = get_query_parameters(event).get('direction') or 'all'

    try:
        transfers = context.repo.get_branch_transfers(context.branch_id, direction)
        return {
            'statusCode': 200,
            'body': json.dumps(transfers)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
@check_branch
def dispatch_transfer(event, context):
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        body = get_body(event) or {}
    except (json.JSONDecodeError, KeyError):
        body = {}

    try:
        transfer = context.repo.get_branch_transfer_by_id(entity_id)
        if transfer['from_branch_id'] != context.branch_id:
            return _forbidden()

        transfer = context.repo.dispatch_branch_transfer(
            entity_id,
            transport_method=body.get('transport_method'),
            estimated_arrival=body.get('estimated_arrival'))
        return {
            'statusCode': 200,
            'body': json.dumps(transfer)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
@check_branch
def update_transfer_status(event, context):
    """
    Cancel or reject a transfer. Body: {"status": ..., "notes": ...}
    """
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        body = get_body(event)
        status = body['status']
    except (json.JSONDecodeError, KeyError, TypeError):
        return bad_body_response()

    try:
        transfer = context.repo.get_branch_transfer_by_id(entity_id)
        if status == 'completed':
            allowed = (transfer['to_branch_id'],)
        elif status == 'in_transit':
            allowed = (transfer['from_branch_id'],)
        else:
            allowed = (transfer['from_branch_id'], transfer['to_branch_id'])
        if context.branch_id not in allowed:
            return _forbidden()

        transfer = context.repo.update_branch_transfer_status(entity_id, status, body.get('notes'))
        return {
            'statusCode': 200,
            'body': json.dumps(transfer)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
@check_branch
def complete_transfer(event, context):
    """
    Receive a transfer at the branch in x-branch-id
    """
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        body = get_body(event) or {}
    except (json.JSONDecodeError, KeyError):
        body = {}

    try:
        transfer = context.repo.get_branch_transfer_by_id(entity_id)
        if transfer['to_branch_id'] != context.branch_id:
            return _forbidden()

        transfer = context.repo.complete_branch_transfer(
            entity_id,
            body.get('received_by') or context.user_id,
            body.get('notes'))
        return {
            'statusCode': 200,
            'body': json.dumps(transfer)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()
