import logging

from boto3.dynamodb.conditions import Key, Attr
from botocore.exceptions import ClientError
from dynamodb_json import json_util

from data_common.constants import branch_transfer_attributes, branch_transfer_item_attributes, base_attributes, \
    BRANCH_TRANSFERS, ITEMS, TRANSFER_ITEM_CONDITIONS, TRANSFER_TRANSITIONS, ITEM_TERMINAL_STATUSES, \
    TRANSFER_PENDING, TRANSFER_IN_TRANSIT, TRANSFER_COMPLETED, TRANSFER_CANCELLED, TRANSFER_REJECTED, \
    MAX_TRANSACTION_DOCUMENTS
from data_common.exceptions import BadParameters, NoSuchEntity, InvalidStateTransition, WorkflowError, \
    TransactionFailed, BatchTooLarge
from data_common.notifications import SnsNotifier
from data_common.repository import BranchTransferRepository
from data_common.utils import clean, now_iso, generate_tracking_number
from data_dynamodb.utils import check_for_required_keys, check_properties_datatypes, check_allowed_value

logger = logging.getLogger(__name__)

TRANSFER_NOT_FOUND = "Ko'chirish topilmadi"
CREATE_FAILED = "Filiallar o'rtasidagi ko'chirishni yaratishda xatolik yuz berdi"
UPDATE_FAILED = "Filiallar o'rtasidagi ko'chirishni yangilashda xatolik yuz berdi"
COMPLETE_FAILED = "Filiallar o'rtasidagi ko'chirishni yakunlashda xatolik yuz berdi"
ITEM_NOT_FOUND = "Mahsulot topilmadi"


class DynamoBranchTransferRepository(BranchTransferRepository, SnsNotifier):
    def _get_transfer_or_raise(self, entity_id):
        transfer = self._storage.get(entity_id)
        if not transfer or transfer.get('obj_type') != BRANCH_TRANSFERS:
            raise NoSuchEntity(TRANSFER_NOT_FOUND)
        return transfer

    @staticmethod
    def _check_transfer_transition(transfer, status):
        current = transfer.get('status', TRANSFER_PENDING)
        if status not in TRANSFER_TRANSITIONS.get(current, []):
            raise InvalidStateTransition("{FROM} -> {TO}".format(FROM=current, TO=status))

    def _save_transfer(self, transfer, failure_message):
        try:
            saved = self._storage.save(BRANCH_TRANSFERS, transfer)
        except ClientError:
            logger.exception(failure_message)
            raise WorkflowError(failure_message)

        self.sns_publish(BRANCH_TRANSFERS, saved)  # publish notification
        return clean(saved)

    def _query_transfers(self, key, branch_id):
        query = {
            'KeyConditionExpression': Key(key).eq(branch_id) & Key('obj_type').eq(BRANCH_TRANSFERS),
            'FilterExpression': Attr('latest').eq(True) & Attr('active').eq(True),
            'IndexName': 'by_{KEY}_and_obj_type'.format(KEY=key)
        }

        response = self._storage.get_items(query)
        return [clean(json_util.loads(item)) for item in response['Items']]

    def create_branch_transfer(self, obj):
        obj = {k: v for k, v in obj.items() if k not in base_attributes}

        check_for_required_keys(obj, branch_transfer_attributes, exclude=['initiated_by', 'reason'])
        check_properties_datatypes(obj, branch_transfer_attributes)

        if not obj['items']:
            raise BadParameters('items')

        if obj['from_branch_id'] == obj['to_branch_id']:
            raise BadParameters('to_branch_id')

        items = []
        for transfer_item in obj['items']:
            if not isinstance(transfer_item, dict):
                raise BadParameters('items')
            check_for_required_keys(transfer_item, branch_transfer_item_attributes, exclude=['quantity', 'condition'])
            check_properties_datatypes(transfer_item, branch_transfer_item_attributes)

            transfer_item = dict(transfer_item)
            transfer_item['quantity'] = transfer_item.get('quantity') or 1
            transfer_item['condition'] = transfer_item.get('condition') or 'good'
            check_allowed_value(transfer_item['condition'], TRANSFER_ITEM_CONDITIONS, 'condition')
            items.append(transfer_item)

        if len({transfer_item['item_id'] for transfer_item in items}) != len(items):
            raise BadParameters('items')

        obj['items'] = items
        obj['status'] = TRANSFER_PENDING
        obj['tracking_number'] = generate_tracking_number()
        obj['initiated_date'] = now_iso()
        obj['initiated_by'] = obj.get('initiated_by') or self._user_id

        return self._save_transfer(obj, CREATE_FAILED)

    def get_branch_transfer_by_id(self, entity_id):
        return clean(self._get_transfer_or_raise(entity_id))

    def get_branch_transfers(self, branch_id, direction='all'):
        if not branch_id:
            return []

        if direction == 'incoming':
            transfers = self._query_transfers('to_branch_id', branch_id)
        elif direction == 'outgoing':
            transfers = self._query_transfers('from_branch_id', branch_id)
        elif direction == 'all':
            incoming = self._query_transfers('to_branch_id', branch_id)
            outgoing = self._query_transfers('from_branch_id', branch_id)
            for transfer in incoming:
                transfer['transfer_type'] = 'incoming'
            for transfer in outgoing:
                transfer['transfer_type'] = 'outgoing'
            transfers = incoming + outgoing
        else:
            raise BadParameters('direction')

        transfers.sort(key=lambda t: t.get('initiated_date') or '', reverse=True)
        return transfers

    def dispatch_branch_transfer(self, entity_id, transport_method=None, estimated_arrival=None):
        transfer = self._get_transfer_or_raise(entity_id)
        self._check_transfer_transition(transfer, TRANSFER_IN_TRANSIT)

        transfer['status'] = TRANSFER_IN_TRANSIT
        transfer['dispatched_date'] = now_iso()
        if transport_method:
            transfer['transport_method'] = transport_method
        if estimated_arrival:
            transfer['estimated_arrival'] = estimated_arrival

        return self._save_transfer(transfer, UPDATE_FAILED)

    def update_branch_transfer_status(self, entity_id, status, notes=None):
        if status not in TRANSFER_TRANSITIONS:
            raise BadParameters('status: {}'.format(status))

        # these two carry their own side effects
        if status == TRANSFER_COMPLETED:
            return self.complete_branch_transfer(entity_id, self._user_id, notes)
        if status == TRANSFER_IN_TRANSIT:
            return self.dispatch_branch_transfer(entity_id)

        transfer = self._get_transfer_or_raise(entity_id)
        self._check_transfer_transition(transfer, status)

        transfer['status'] = status
        if status == TRANSFER_CANCELLED:
            transfer['cancelled_date'] = now_iso()
        elif status == TRANSFER_REJECTED:
            transfer['rejected_date'] = now_iso()
        if notes:
            transfer['notes'] = notes

        return self._save_transfer(transfer, UPDATE_FAILED)

    def complete_branch_transfer(self, entity_id, received_by, notes=None):
        """
        Receive a transfer at its destination.

        Every listed item moves to the destination branch and the transfer
        becomes completed in one transaction. If any write fails, neither the
        items nor the transfer change.
        """
        transfer = self._get_transfer_or_raise(entity_id)
        self._check_transfer_transition(transfer, TRANSFER_COMPLETED)

        if len(transfer['items']) + 1 > MAX_TRANSACTION_DOCUMENTS:
            raise BatchTooLarge(len(transfer['items']) + 1)

        now = now_iso()
        to_branch_id = transfer['to_branch_id']

        items = []
        for transfer_item in transfer['items']:
            item = self._storage.get(transfer_item['item_id'])
            if not item or item.get('obj_type') != ITEMS:
                raise NoSuchEntity(ITEM_NOT_FOUND)
            if item.get('status') in ITEM_TERMINAL_STATUSES:
                raise InvalidStateTransition("{FROM} -> available".format(FROM=item.get('status')))

            item['branch_id'] = to_branch_id
            item['branch'] = to_branch_id
            item['branch_name'] = transfer.get('to_branch_name')
            item['is_provider'] = False
            item['status'] = 'available'
            item['transferred_date'] = now
            item['transferred_from'] = transfer['from_branch_id']
            item['transferred_to'] = to_branch_id
            items.append(item)

        transfer['status'] = TRANSFER_COMPLETED
        transfer['received_by'] = received_by
        transfer['completed_date'] = now
        transfer['notes'] = notes or transfer.get('notes')

        try:
            saved = self._storage.transact_save(
                [(BRANCH_TRANSFERS, transfer)] + [(ITEMS, item) for item in items])
        except TransactionFailed:
            logger.error('{MSG}: {ID}'.format(MSG=COMPLETE_FAILED, ID=entity_id))
            raise TransactionFailed(COMPLETE_FAILED)
        except ClientError:
            logger.exception(COMPLETE_FAILED)
            raise WorkflowError(COMPLETE_FAILED)

        saved_transfer, saved_items = saved[0], saved[1:]

        self.sns_publish(BRANCH_TRANSFERS, saved_transfer)  # publish notification
        for item in saved_items:
            self.sns_publish(ITEMS, item)

        return clean(saved_transfer)
