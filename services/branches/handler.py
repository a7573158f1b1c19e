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
def add_branch(event, context):
    """
    Add a new branch, or replace the fields of an existing one when entity_id is present
    """
    logger.debug('event: {}'.format(event))

    try:
        body = get_body(event)
    except json.JSONDecodeError:
        return bad_body_response()

    try:
        branch = context.repo.save_branch(body)
        return {
            'statusCode': 200,
            'body': json.dumps(branch)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
def modify_branch(event, context):
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        body = get_body(event)
    except json.JSONDecodeError:
        return bad_body_response()

    if 'entity_id' in body and body['entity_id'] != entity_id:
        return {
            'statusCode': 400,
            'body': json.dumps({
                'error': 'Bad parameter(s) in request. entity_id in body must match path parameter'
            })
        }

    body['entity_id'] = entity_id

    try:
        branch = context.repo.save_branch(body)
        return {
            'statusCode': 200,
            'body': json.dumps(branch)
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
        branch = context.repo.get_branch_by_id(entity_id)
        return {
            'statusCode': 200,
            'body': json.dumps(branch)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)


@check_auth
@insert_repo
def get_all(event, context):
    logger.debug('event: {}'.format(event))

    branches = context.repo.get_all_branches()

    return {
        'statusCode': 200,
        'body': json.dumps(branches)
    }


@check_auth
@insert_repo
def get_hierarchy(event, context):
    logger.debug('event: {}'.format(event))

    branches = context.repo.get_branch_hierarchy()

    return {
        'statusCode': 200,
        'body': json.dumps(branches)
    }


@check_auth
@insert_repo
def delete_by_id(event, context):
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        context.repo.delete_branch_by_id(entity_id)
        return {
            'statusCode': 204
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
def update_stats(event, context):
    """
    Body: any of {"item_count", "total_value", "monthly_revenue"}
    """
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        body = get_body(event)
    except json.JSONDecodeError:
        return bad_body_response()

    try:
        branch = context.repo.update_branch_stats(entity_id, body)
        return {
            'statusCode': 200,
            'body': json.dumps(branch)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
@check_branch
def get_branch_items(event, context):
    logger.debug('event: {}'.format(event))

    items = context.repo.get_branch_items(context.branch_id)

    return {
        'statusCode': 200,
        'body': json.dumps(items)
    }


# Staff

@check_auth
@insert_repo
@check_branch
def add_staff(event, context):
    logger.debug('event: {}'.format(event))

    try:
        body = get_body(event)
    except json.JSONDecodeError:
        return bad_body_response()

    body['branch_id'] = context.branch_id

    try:
        staff = context.repo.save_branch_staff(body)
        return {
            'statusCode': 200,
            'body': json.dumps(staff)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
@check_branch
def get_staff(event, context):
    logger.debug('event: {}'.format(event))

    staff = context.repo.get_branch_staff(context.branch_id)

    return {
        'statusCode': 200,
        'body': json.dumps(staff)
    }


@check_auth
@insert_repo
@check_branch
def delete_staff(event, context):
    logger.debug('event: {}'.format(event))

    entity_id = get_path_parameters(event)['entity_id']

    try:
        context.repo.delete_branch_staff_by_id(entity_id)
        return {
            'statusCode': 204
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


# Expenses

@check_auth
@insert_repo
@check_branch
def add_expense(event, context):
    logger.debug('event: {}'.format(event))

    try:
        body = get_body(event)
    except json.JSONDecodeError:
        return bad_body_response()

    body['branch_id'] = context.branch_id

    try:
        expense = context.repo.save_branch_expense(body)
        return {
            'statusCode': 200,
            'body': json.dumps(expense)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
@check_branch
def get_expenses(event, context):
    """
    Expenses of the branch in x-branch-id. ?start_date=&end_date=
    """
    logger.debug('event: {}'.format(event))

    params = get_query_parameters(event)

    try:
        expenses = context.repo.get_branch_expenses(context.branch_id,
                                                    start_date=params.get('start_date'),
                                                    end_date=params.get('end_date'))
    except ValueError:
        return bad_body_response()

    return {
        'statusCode': 200,
        'body': json.dumps(expenses)
    }


# Transactions

@check_auth
@insert_repo
@check_branch
def add_transaction(event, context):
    logger.debug('event: {}'.format(event))

    try:
        body = get_body(event)
    except json.JSONDecodeError:
        return bad_body_response()

    body['branch_id'] = context.branch_id

    try:
        transaction = context.repo.save_branch_transaction(body)
        return {
            'statusCode': 200,
            'body': json.dumps(transaction)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
@check_branch
def get_transactions(event, context):
    logger.debug('event: {}'.format(event))

    transactions = context.repo.get_branch_transactions(context.branch_id)

    return {
        'statusCode': 200,
        'body': json.dumps(transactions)
    }


# Performance

@check_auth
@insert_repo
@check_branch
def calculate_performance(event, context):
    """
    Body: {"year": 2024, "month": 5}
    """
    logger.debug('event: {}'.format(event))

    try:
        body = get_body(event)
        year = body['year']
        month = body['month']
    except (json.JSONDecodeError, KeyError, TypeError):
        return bad_body_response()

    try:
        metrics = context.repo.calculate_branch_performance(context.branch_id, year, month)
        return {
            'statusCode': 200,
            'body': json.dumps(metrics)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
@check_branch
def get_performance(event, context):
    """
    ?period=YYYY-MM or ?year=&month=
    """
    logger.debug('event: {}'.format(event))

    params = get_query_parameters(event)
    period = params.get('period')

    if not period and params.get('year') and params.get('month'):
        try:
            period = '{YEAR:04d}-{MONTH:02d}'.format(YEAR=parse_int(params['year']),
                                                     MONTH=parse_int(params['month']))
        except ValueError:
            return bad_body_response()

    metrics = context.repo.get_branch_performance_metrics(context.branch_id, period)

    return {
        'statusCode': 200,
        'body': json.dumps(metrics)
    }
