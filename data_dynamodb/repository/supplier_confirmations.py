import logging

import maya
from boto3.dynamodb.conditions import Key, Attr
from botocore.exceptions import ClientError
from dynamodb_json import json_util

from data_common.constants import supplier_confirmation_attributes, base_attributes, \
    SUPPLIER_CONFIRMATIONS, ITEMS, CONFIRMATION_TRANSITIONS, CONFIRMATION_PENDING, CONFIRMATION_SENT, \
    CONFIRMATION_CONFIRMED, CONFIRMATION_REJECTED, CONFIRMATION_EXPIRED, CONFIRMATION_EXPIRY_DAYS, \
    MAX_TRANSACTION_DOCUMENTS
from data_common.exceptions import BadParameters, NoSuchEntity, InvalidStateTransition, WorkflowError, \
    TransactionFailed, BatchTooLarge
from data_common.notifications import SnsNotifier
from data_common.repository import SupplierConfirmationRepository
from data_common.utils import clean, now_iso, add_days_iso, generate_confirmation_code
from data_dynamodb.utils import check_for_required_keys, check_properties_datatypes

logger = logging.getLogger(__name__)

CONFIRMATION_NOT_FOUND = "Tasdiqlash so'rovi topilmadi"
ITEM_NOT_FOUND = "Mahsulot topilmadi"
CREATE_FAILED = "Tasdiqlash so'rovini yaratishda xatolik yuz berdi"
SEND_FAILED = "Tasdiqlash so'rovini yuborishda xatolik yuz berdi"
PROCESS_FAILED = "Ta'minotchi javobini qayta ishlashda xatolik yuz berdi"
EXPIRE_FAILED = "Muddati o'tgan so'rovlarni belgilashda xatolik yuz berdi"


class DynamoSupplierConfirmationRepository(SupplierConfirmationRepository, SnsNotifier):
    def _get_confirmation_or_raise(self, entity_id):
        confirmation = self._storage.get(entity_id)
        if not confirmation or confirmation.get('obj_type') != SUPPLIER_CONFIRMATIONS:
            raise NoSuchEntity(CONFIRMATION_NOT_FOUND)
        return confirmation

    @staticmethod
    def _check_confirmation_transition(confirmation, status):
        current = confirmation.get('status', CONFIRMATION_PENDING)
        if status not in CONFIRMATION_TRANSITIONS.get(current, []):
            raise InvalidStateTransition("{FROM} -> {TO}".format(FROM=current, TO=status))

    def _save_confirmation(self, confirmation, failure_message):
        try:
            saved = self._storage.save(SUPPLIER_CONFIRMATIONS, confirmation)
        except ClientError:
            logger.exception(failure_message)
            raise WorkflowError(failure_message)

        self.sns_publish(SUPPLIER_CONFIRMATIONS, saved)  # publish notification
        return clean(saved)

    def _transact_confirmations(self, docs, failure_message):
        try:
            saved = self._storage.transact_save(docs)
        except TransactionFailed:
            logger.error(failure_message)
            raise TransactionFailed(failure_message)
        except ClientError:
            logger.exception(failure_message)
            raise WorkflowError(failure_message)

        for (obj_type, _), obj in zip(docs, saved):
            self.sns_publish(obj_type, obj)  # publish notification

        return saved

    def create_supplier_confirmation(self, obj):
        obj = {k: v for k, v in obj.items() if k not in base_attributes}

        check_for_required_keys(obj, supplier_confirmation_attributes)
        check_properties_datatypes(obj, supplier_confirmation_attributes)

        if not obj['item_ids']:
            raise BadParameters('item_ids')

        total_amount = 0
        total_weight = 0

        for item_id in obj['item_ids']:
            item = self._storage.get(item_id)
            if not item or item.get('obj_type') != ITEMS:
                raise NoSuchEntity(ITEM_NOT_FOUND)

            if item.get('supplier_name') != obj['supplier_name']:
                raise BadParameters('item_ids: {} belongs to another supplier'.format(item_id))
            if item.get('payment_status', 'unpaid') != 'unpaid':
                raise BadParameters('item_ids: {} is already paid'.format(item_id))
            if item.get('confirmed'):
                raise BadParameters('item_ids: {} is already confirmed'.format(item_id))

            weight = item.get('weight') or 0
            total_amount += weight * (item.get('lom_narxi') or 0)
            total_weight += weight

        confirmation = {
            'supplier_name': obj['supplier_name'],
            'item_ids': obj['item_ids'],
            'total_amount': total_amount,
            'total_weight': total_weight,
            'status': CONFIRMATION_PENDING,
            'confirmation_code': generate_confirmation_code(),
            'admin_notes': obj.get('admin_notes'),
            'created_by': self._user_id,
        }

        return self._save_confirmation(confirmation, CREATE_FAILED)

    def get_supplier_confirmation_by_id(self, entity_id):
        return clean(self._get_confirmation_or_raise(entity_id))

    def send_supplier_confirmation(self, entity_id):
        confirmation = self._get_confirmation_or_raise(entity_id)
        self._check_confirmation_transition(confirmation, CONFIRMATION_SENT)

        now = now_iso()
        confirmation['status'] = CONFIRMATION_SENT
        confirmation['sent_date'] = now
        confirmation['expiry_date'] = add_days_iso(now, CONFIRMATION_EXPIRY_DAYS)

        return self._save_confirmation(confirmation, SEND_FAILED)

    def process_supplier_response(self, entity_id, confirmed, confirmed_items, rejected_items, notes=None):
        """
        Record the supplier's answer.

        The confirmation and every confirmed item are written in one
        transaction. Rejected items are only listed in the response.
        """
        confirmation = self._get_confirmation_or_raise(entity_id)
        status = CONFIRMATION_CONFIRMED if confirmed else CONFIRMATION_REJECTED
        self._check_confirmation_transition(confirmation, status)

        confirmed_items = confirmed_items or []
        rejected_items = rejected_items or []

        for item_id in confirmed_items + rejected_items:
            if item_id not in confirmation['item_ids']:
                raise BadParameters('{} is not part of this confirmation'.format(item_id))

        now = now_iso()
        confirmation['status'] = status
        if confirmed:
            confirmation['confirmed_date'] = now
        else:
            confirmation['rejected_date'] = now
        confirmation['supplier_response'] = {
            'confirmed': confirmed,
            'confirmed_items': confirmed_items,
            'rejected_items': rejected_items,
            'notes': notes,
            'confirmed_at': now,
        }

        docs = [(SUPPLIER_CONFIRMATIONS, confirmation)]

        if confirmed:
            if len(confirmed_items) + 1 > MAX_TRANSACTION_DOCUMENTS:
                raise BatchTooLarge(len(confirmed_items) + 1)

            for item_id in confirmed_items:
                item = self._storage.get(item_id)
                if not item or item.get('obj_type') != ITEMS:
                    raise NoSuchEntity(ITEM_NOT_FOUND)

                item['confirmed'] = True
                item['confirmed_date'] = now
                item['confirmation_id'] = confirmation['entity_id']
                item['supplier_confirmation_notes'] = notes
                docs.append((ITEMS, item))

        saved = self._transact_confirmations(docs, PROCESS_FAILED)
        return clean(saved[0])

    def mark_expired_confirmations(self, now=None):
        """
        Expire sent confirmations whose expiry date has passed.

        :param now: ISO timestamp to compare against, defaults to the current time
        :return: entity ids of expired confirmations
        """
        now = maya.parse(now) if now else maya.now()

        response = self._storage.get_items({
            'KeyConditionExpression': Key('obj_type').eq(SUPPLIER_CONFIRMATIONS),
            'FilterExpression':
                Attr('latest').eq(True) & Attr('active').eq(True) & Attr('status').eq(CONFIRMATION_SENT),
            'IndexName': 'by_obj_type'
        })

        expired = []
        for confirmation in response['Items']:
            confirmation = json_util.loads(confirmation)
            if confirmation.get('expiry_date') and maya.parse(confirmation['expiry_date']) < now:
                confirmation['status'] = CONFIRMATION_EXPIRED
                expired.append((SUPPLIER_CONFIRMATIONS, confirmation))

        # each chunk is atomic on its own
        for i in range(0, len(expired), MAX_TRANSACTION_DOCUMENTS):
            self._transact_confirmations(expired[i:i + MAX_TRANSACTION_DOCUMENTS], EXPIRE_FAILED)

        logger.info('{COUNT} supplier confirmations expired'.format(COUNT=len(expired)))
        return [confirmation['entity_id'] for _, confirmation in expired]

    def get_confirmations_by_supplier(self, supplier_name):
        query = {
            'KeyConditionExpression':
                Key('supplier_name').eq(supplier_name) & Key('obj_type').eq(SUPPLIER_CONFIRMATIONS),
            'FilterExpression': Attr('latest').eq(True) & Attr('active').eq(True),
            'IndexName': 'by_supplier_name_and_obj_type'
        }

        response = self._storage.get_items(query)

        confirmations = [clean(json_util.loads(item)) for item in response['Items']]
        confirmations.sort(key=lambda c: c.get('changed_on') or '', reverse=True)
        return confirmations

    def get_confirmation_by_code(self, confirmation_code):
        query = {
            'KeyConditionExpression':
                Key('confirmation_code').eq(confirmation_code) & Key('obj_type').eq(SUPPLIER_CONFIRMATIONS),
            'FilterExpression': Attr('latest').eq(True) & Attr('active').eq(True),
            'IndexName': 'by_confirmation_code_and_obj_type'
        }

        response = self._storage.get_items(query)

        if not response['Items']:
            return None

        return clean(json_util.loads(response['Items'][0]))

    def get_confirmation_stats(self):
        response = self._storage.get_all_items(SUPPLIER_CONFIRMATIONS)

        stats = {'total': len(response['Items'])}
        for status in CONFIRMATION_TRANSITIONS:
            stats[status] = len([c for c in response['Items'] if c.get('status') == status])

        return stats
