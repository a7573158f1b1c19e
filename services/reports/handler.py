import os
import sys
# needed only for local development
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(os.path.dirname(os.path.abspath(__file__)))
import json

from common import insert_repo, check_auth, exception_response, bad_body_response
from api_utils import get_path_parameters, get_query_parameters, parse_bool
from data_common.exceptions import RepositoryException, StorageException

from log_config import logger

import workbooks

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def _report_filters(event):
    params = get_query_parameters(event)

    filters = {k: params[k] for k in ['category', 'status', 'branch_id', 'payment_status', 'supplier_name',
                                      'start_date', 'end_date', 'search']
               if params.get(k)}

    for key in ['is_provider', 'confirmed']:
        if key in params:
            filters[key] = parse_bool(params[key])

    return filters


def _xlsx_response(wb, prefix):
    return {
        'statusCode': 200,
        'headers': {
            'Content-Type': XLSX_CONTENT_TYPE,
            'Content-Disposition': 'attachment; filename="{}"'.format(workbooks.export_filename(prefix))
        },
        'body': workbooks.to_base64(wb),
        'isBase64Encoded': True
    }


@check_auth
@insert_repo
def item_stats(event, context):
    logger.debug('event: {}'.format(event))

    filters = _report_filters(event)

    try:
        stats = context.repo.get_item_stats(filters)
        return {
            'statusCode': 200,
            'body': json.dumps(stats)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except ValueError:
        return bad_body_response()


@check_auth
@insert_repo
def profit_analysis(event, context):
    """
    Supposed against actual profit, filtered by query string parameters
    """
    logger.debug('event: {}'.format(event))

    filters = _report_filters(event)

    try:
        analysis = context.repo.get_profit_analysis(filters)
        return {
            'statusCode': 200,
            'body': json.dumps(analysis)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except ValueError:
        return bad_body_response()


@check_auth
@insert_repo
def supplier_summary(event, context):
    logger.debug('event: {}'.format(event))

    supplier_name = get_path_parameters(event)['supplier_name']

    try:
        summary = context.repo.get_supplier_summary(supplier_name)
        return {
            'statusCode': 200,
            'body': json.dumps(summary)
        }
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)


@check_auth
@insert_repo
def export_profit_analysis(event, context):
    logger.debug('event: {}'.format(event))

    filters = _report_filters(event)

    try:
        analysis = context.repo.get_profit_analysis(filters)
        wb = workbooks.build_profit_analysis_workbook(analysis, filters)
        return _xlsx_response(wb, 'foyda-tahlili')
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except ValueError:
        return bad_body_response()
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
def export_supplier_report(event, context):
    logger.debug('event: {}'.format(event))

    supplier_name = get_path_parameters(event)['supplier_name']

    try:
        summary = context.repo.get_supplier_summary(supplier_name)
        wb = workbooks.build_supplier_workbook(summary)
        return _xlsx_response(wb, 'taminotchi-hisobi')
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()


@check_auth
@insert_repo
def export_branches(event, context):
    logger.debug('event: {}'.format(event))

    try:
        branches = context.repo.get_all_branches()
        wb = workbooks.build_branches_workbook(branches)
        return _xlsx_response(wb, 'filiallar-hisoboti')
    except (RepositoryException, StorageException) as ex:
        return exception_response(ex)
    except Exception:
        logger.log_uncaught_exception()
