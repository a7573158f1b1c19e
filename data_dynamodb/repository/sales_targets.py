import calendar
import logging

import maya
from boto3.dynamodb.conditions import Key, Attr
from botocore.exceptions import ClientError
from dynamodb_json import json_util

from data_common.constants import sales_target_attributes, base_attributes, BRANCH_SALES_TARGETS, \
    TARGET_PENDING, TARGET_IN_PROGRESS, TARGET_ACHIEVED, TARGET_MISSED
from data_common.exceptions import BadParameters, NoSuchEntity, WorkflowError
from data_common.notifications import SnsNotifier
from data_common.repository import SalesTargetRepository
from data_common.utils import clean
from data_dynamodb.utils import check_for_required_keys, check_properties_datatypes

logger = logging.getLogger(__name__)

TARGET_NOT_FOUND = "Sotuv maqsadi topilmadi"
SET_FAILED = "Sotuv maqsadini o'rnatishda xatolik yuz berdi"
UPDATE_FAILED = "Sotuv maqsadini yangilashda xatolik yuz berdi"


def _month_end(year, month):
    last_day = calendar.monthrange(year, month)[1]
    return maya.parse('{YEAR:04d}-{MONTH:02d}-{DAY:02d}T23:59:59Z'.format(YEAR=year, MONTH=month, DAY=last_day))


class DynamoSalesTargetRepository(SalesTargetRepository, SnsNotifier):
    def _query_targets(self, branch_id):
        query = {
            'KeyConditionExpression': Key('branch_id').eq(branch_id) & Key('obj_type').eq(BRANCH_SALES_TARGETS),
            'FilterExpression': Attr('latest').eq(True) & Attr('active').eq(True),
            'IndexName': 'by_branch_id_and_obj_type'
        }

        response = self._storage.get_items(query)
        return [json_util.loads(item) for item in response['Items']]

    def _save_target(self, target, failure_message):
        try:
            saved = self._storage.save(BRANCH_SALES_TARGETS, target)
        except ClientError:
            logger.exception(failure_message)
            raise WorkflowError(failure_message)

        self.sns_publish(BRANCH_SALES_TARGETS, saved)  # publish notification
        return clean(saved)

    def set_sales_target(self, obj):
        """Create the month's target for a branch, or overwrite the existing one"""
        obj = {k: v for k, v in obj.items() if k not in base_attributes + ['status']}

        check_for_required_keys(obj, sales_target_attributes, exclude=['items_sold_target'])
        check_properties_datatypes(obj, sales_target_attributes)

        if not 1 <= obj['month'] <= 12:
            raise BadParameters('month')

        existing = [t for t in self._query_targets(obj['branch_id'])
                    if t['year'] == obj['year'] and t['month'] == obj['month']]

        if existing:
            target = {**existing[0], **obj}
        else:
            target = dict(obj)
            target['status'] = TARGET_PENDING
            target['actual_amount'] = 0
            target['items_sold_actual'] = 0
            target['bonus_earned'] = False

        return self._save_target(target, SET_FAILED)

    def get_sales_targets(self, branch_id, year=None, month=None):
        if not branch_id:
            return []

        targets = self._query_targets(branch_id)

        if year is not None:
            targets = [t for t in targets if t['year'] == year]
        if month is not None:
            targets = [t for t in targets if t['month'] == month]

        targets.sort(key=lambda t: (t['year'], t['month']), reverse=True)
        return [clean(t) for t in targets]

    def record_sales_target_actuals(self, entity_id, actual_amount, items_sold_actual, as_of=None):
        target = self._storage.get(entity_id)
        if not target or target.get('obj_type') != BRANCH_SALES_TARGETS:
            raise NoSuchEntity(TARGET_NOT_FOUND)

        as_of = maya.parse(as_of) if as_of else maya.now()

        target['actual_amount'] = actual_amount
        target['items_sold_actual'] = items_sold_actual

        if actual_amount >= target['target_amount']:
            target['status'] = TARGET_ACHIEVED
        elif as_of > _month_end(target['year'], target['month']):
            target['status'] = TARGET_MISSED
        else:
            target['status'] = TARGET_IN_PROGRESS

        bonus_threshold = target.get('bonus_threshold')
        if bonus_threshold:
            target['bonus_earned'] = actual_amount >= target['target_amount'] * bonus_threshold / 100
        else:
            target['bonus_earned'] = target['status'] == TARGET_ACHIEVED and bool(target.get('bonus_amount'))

        return self._save_target(target, UPDATE_FAILED)
