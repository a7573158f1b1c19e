import logging

from boto3.dynamodb.conditions import Key, Attr
from botocore.exceptions import ClientError
from dynamodb_json import json_util

from data_common.constants import inventory_check_attributes, BRANCH_INVENTORY_CHECKS, CHECK_TRANSITIONS, \
    CHECK_PENDING, CHECK_IN_PROGRESS, CHECK_COMPLETED, CHECK_DISCREPANCIES_FOUND, INVENTORY_CHECK_INTERVAL_DAYS
from data_common.exceptions import BadParameters, NoSuchEntity, InvalidStateTransition, WorkflowError
from data_common.notifications import SnsNotifier
from data_common.repository import InventoryCheckRepository
from data_common.utils import clean, now_iso, add_days_iso
from data_dynamodb.utils import check_for_required_keys, check_properties_datatypes

logger = logging.getLogger(__name__)

CHECK_NOT_FOUND = "Inventarizatsiya tekshiruvi topilmadi"
SCHEDULE_FAILED = "Inventarizatsiya tekshiruvini rejalashtirish xatolik yuz berdi"
UPDATE_FAILED = "Inventarizatsiya tekshiruvini yangilashda xatolik yuz berdi"


class DynamoInventoryCheckRepository(InventoryCheckRepository, SnsNotifier):
    def _get_check_or_raise(self, entity_id):
        check = self._storage.get(entity_id)
        if not check or check.get('obj_type') != BRANCH_INVENTORY_CHECKS:
            raise NoSuchEntity(CHECK_NOT_FOUND)
        return check

    def _save_check(self, check, failure_message):
        try:
            saved = self._storage.save(BRANCH_INVENTORY_CHECKS, check)
        except ClientError:
            logger.exception(failure_message)
            raise WorkflowError(failure_message)

        self.sns_publish(BRANCH_INVENTORY_CHECKS, saved)  # publish notification
        return clean(saved)

    def schedule_inventory_check(self, branch_id, date, conducted_by):
        obj = {
            'branch_id': branch_id,
            'date': date,
            'conducted_by': conducted_by,
        }
        check_for_required_keys(obj, inventory_check_attributes)
        check_properties_datatypes(obj, inventory_check_attributes)

        obj.update({
            'status': CHECK_PENDING,
            'items_checked': 0,
            'items_missing': 0,
            'items_excess': 0,
            'next_scheduled_date': add_days_iso(date, INVENTORY_CHECK_INTERVAL_DAYS),
        })

        return self._save_check(obj, SCHEDULE_FAILED)

    def start_inventory_check(self, entity_id):
        check = self._get_check_or_raise(entity_id)

        if CHECK_IN_PROGRESS not in CHECK_TRANSITIONS[check['status']]:
            raise InvalidStateTransition("{FROM} -> {TO}".format(FROM=check['status'], TO=CHECK_IN_PROGRESS))

        check['status'] = CHECK_IN_PROGRESS
        check['started_date'] = now_iso()

        return self._save_check(check, UPDATE_FAILED)

    def record_inventory_check_results(self, entity_id, items_checked, items_missing, items_excess, notes=None):
        for key, val in [('items_checked', items_checked),
                         ('items_missing', items_missing),
                         ('items_excess', items_excess)]:
            if type(val) != int or val < 0:
                raise BadParameters(key)

        check = self._get_check_or_raise(entity_id)

        status = CHECK_COMPLETED if items_missing == 0 and items_excess == 0 else CHECK_DISCREPANCIES_FOUND
        if status not in CHECK_TRANSITIONS[check['status']]:
            raise InvalidStateTransition("{FROM} -> {TO}".format(FROM=check['status'], TO=status))

        check['status'] = status
        check['items_checked'] = items_checked
        check['items_missing'] = items_missing
        check['items_excess'] = items_excess
        check['completed_date'] = now_iso()
        if notes:
            check['notes'] = notes

        return self._save_check(check, UPDATE_FAILED)

    def get_inventory_check_by_id(self, entity_id):
        return clean(self._get_check_or_raise(entity_id))

    def get_inventory_checks(self, branch_id):
        if not branch_id:
            return []

        query = {
            'KeyConditionExpression': Key('branch_id').eq(branch_id) & Key('obj_type').eq(BRANCH_INVENTORY_CHECKS),
            'FilterExpression': Attr('latest').eq(True) & Attr('active').eq(True),
            'IndexName': 'by_branch_id_and_obj_type'
        }

        response = self._storage.get_items(query)

        checks = [clean(json_util.loads(item)) for item in response['Items']]
        checks.sort(key=lambda c: c['date'], reverse=True)
        return checks
