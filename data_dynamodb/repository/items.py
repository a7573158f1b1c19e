import logging

import maya
from boto3.dynamodb.conditions import Key, Attr
from botocore.exceptions import ClientError
from dynamodb_json import json_util

from data_common.constants import item_attributes, item_optional_attributes, base_attributes, \
    ITEMS, CATEGORIES, PAYMENT_STATUSES, ITEM_STATUSES, ITEM_TERMINAL_STATUSES, \
    DEFAULT_PROFIT_PERCENTAGE, MAX_TRANSACTION_DOCUMENTS
from data_common.exceptions import BadParameters, NoSuchEntity, InvalidStateTransition, \
    WorkflowError, TransactionFailed, BatchTooLarge
from data_common.notifications import SnsNotifier
from data_common.pricing import calculate_selling_price, PRICING_FIELDS
from data_common.repository import ItemRepository
from data_common.utils import clean, now_iso
from data_dynamodb.utils import check_for_required_keys, check_properties_datatypes, check_allowed_value

logger = logging.getLogger(__name__)

DEFAULT_RETURN_REASON = "Mijoz qaytardi"
DEFAULT_RETURN_TO_SUPPLIER_REASON = "Sabab ko'rsatilmagan"

ITEM_NOT_FOUND = "Mahsulot topilmadi"
CREATE_FAILED = "Mahsulot yaratishda xatolik yuz berdi"
UPDATE_FAILED = "Mahsulotni yangilashda xatolik yuz berdi"
STATUS_UPDATE_FAILED = "Mahsulot holatini yangilashda xatolik yuz berdi"
RETURN_TO_INVENTORY_FAILED = "Mahsulotni omborga qaytarishda xatolik yuz berdi"
DELETE_FAILED = "Mahsulotni o'chirishda xatolik yuz berdi"
BULK_UPDATE_FAILED = "Ko'p mahsulotni yangilashda xatolik yuz berdi"
BULK_DELETE_FAILED = "Ko'p mahsulotni o'chirishda xatolik yuz berdi"
PAYMENT_UPDATE_FAILED = "To'lov holatini yangilashda xatolik yuz berdi"

# fields a caller may never write through an update
PROTECTED_FIELDS = base_attributes + ["obj_type", "selling_price", "price_history", "price_difference"]

SEARCH_FIELDS = ["model", "category", "notes", "supplier_name"]


def _today():
    return maya.now().iso8601().split('T')[0]


def _sort_key(field):
    def key(item):
        val = item.get(field)
        return val is not None, val
    return key


class DynamoItemRepository(ItemRepository, SnsNotifier):
    def _get_item_or_raise(self, entity_id):
        item = self._storage.get(entity_id)
        if not item or item.get('obj_type') != ITEMS:
            raise NoSuchEntity(ITEM_NOT_FOUND)
        return item

    def _load_items(self, entity_ids):
        if len(entity_ids) > MAX_TRANSACTION_DOCUMENTS:
            raise BatchTooLarge(len(entity_ids))
        if len(set(entity_ids)) != len(entity_ids):
            raise BadParameters('entity_ids')
        return [self._get_item_or_raise(entity_id) for entity_id in entity_ids]

    def _commit_items(self, items, failure_message):
        """Write items all-or-nothing and notify subscribers"""
        try:
            saved = self._storage.transact_save([(ITEMS, item) for item in items])
        except TransactionFailed:
            logger.error('{MSG}: {IDS}'.format(MSG=failure_message, IDS=[i['entity_id'] for i in items]))
            raise TransactionFailed(failure_message)
        except ClientError:
            logger.exception(failure_message)
            raise WorkflowError(failure_message)

        for item in saved:
            self.sns_publish(ITEMS, item)  # publish notification

        return [clean(item) for item in saved]

    def _save_item(self, item, failure_message):
        try:
            saved = self._storage.save(ITEMS, item)
        except ClientError:
            logger.exception(failure_message)
            raise WorkflowError(failure_message)

        self.sns_publish(ITEMS, saved)  # publish notification
        return clean(saved)

    @staticmethod
    def _price(item):
        item['selling_price'] = calculate_selling_price(
            item.get('weight') or 0,
            item.get('lom_narxi') or 0,
            item.get('lom_narxi_kirim') or 0,
            item.get('labor_cost') or 0,
            item.get('profit_percentage') or DEFAULT_PROFIT_PERCENTAGE,
            bool(item.get('is_provider'))
        )
        return item

    @staticmethod
    def _set_location(item):
        # an item is provider-held exactly when it has no branch
        if item.get('is_provider') or not item.get('branch_id'):
            item['is_provider'] = True
            item['branch_id'] = None
            item['branch'] = None
            item['branch_name'] = None
        else:
            item['is_provider'] = False
            item['branch'] = item['branch_id']
        return item

    @staticmethod
    def _validate_item_content(content):
        check_properties_datatypes(content, {**item_attributes, **item_optional_attributes})

        if 'category' in content:
            check_allowed_value(content['category'], CATEGORIES, 'category')
        if content.get('payment_status') is not None:
            check_allowed_value(content['payment_status'], PAYMENT_STATUSES, 'payment_status')
        if 'weight' in content and content['weight'] is not None and content['weight'] <= 0:
            raise BadParameters('weight')

    def _apply_changes(self, item, changes):
        changes = {k: v for k, v in changes.items() if k not in PROTECTED_FIELDS}
        self._validate_item_content(changes)

        pricing_changed = any(k in changes and changes[k] != item.get(k) for k in PRICING_FIELDS)
        location_changed = 'is_provider' in changes or 'branch_id' in changes

        updated = {**item, **changes}

        if changes.get('is_provider') is True:
            updated['branch_id'] = None
        elif changes.get('branch_id'):
            updated['is_provider'] = False
        updated = self._set_location(updated)

        if pricing_changed or location_changed:
            updated = self._price(updated)

        if pricing_changed:
            history = list(item.get('price_history') or [])
            history.append({
                'date': now_iso(),
                'lom_narxi': updated.get('lom_narxi'),
                'lom_narxi_kirim': updated.get('lom_narxi_kirim'),
                'labor_cost': updated.get('labor_cost'),
                'selling_price': updated['selling_price'],
                'reason': changes.get('price_change_reason'),
                'updated_by': self._user_id,
            })
            updated['price_history'] = history
        updated.pop('price_change_reason', None)

        if 'payed_lom_narxi' in changes or 'lom_narxi' in changes:
            if updated.get('payed_lom_narxi') and updated.get('lom_narxi'):
                updated['price_difference'] = updated['payed_lom_narxi'] - updated['lom_narxi']
            else:
                updated['price_difference'] = None

        return updated

    def _apply_status(self, item, status, extra):
        if status not in ITEM_STATUSES:
            raise BadParameters('status: {}'.format(status))

        if item.get('status') in ITEM_TERMINAL_STATUSES:
            raise InvalidStateTransition(
                "{FROM} -> {TO}".format(FROM=item.get('status'), TO=status))

        now = now_iso()
        extra = {k: v for k, v in extra.items() if k not in PROTECTED_FIELDS + ['status']}
        updated = {**item, **extra, 'status': status}

        if status == 'sold':
            updated['sold_date'] = now
        elif status == 'returned':
            # a returned item goes straight back on sale
            updated['status'] = 'available'
            updated['returned_date'] = now
            updated['return_date'] = now
            updated['return_reason'] = extra.get('return_reason') or DEFAULT_RETURN_REASON
        elif status == 'transferred':
            updated['transferred_date'] = now
            updated['transferred_to'] = extra.get('transferred_to')
        elif status == 'reserved':
            updated['reserved_date'] = now
            updated['reserved_by'] = extra.get('reserved_by')
        elif status == 'returned_to_supplier':
            updated['return_to_supplier_date'] = now
            updated['return_to_supplier_reason'] = \
                extra.get('return_to_supplier_reason') or DEFAULT_RETURN_TO_SUPPLIER_REASON
            updated['return_to_supplier_reference'] = extra.get('return_to_supplier_reference')

        return updated

    @staticmethod
    def _apply_return_to_inventory(item):
        if item.get('status') in ITEM_TERMINAL_STATUSES:
            raise InvalidStateTransition("{FROM} -> available".format(FROM=item.get('status')))

        updated = dict(item)
        updated['is_provider'] = True
        updated['branch_id'] = None
        updated['branch'] = None
        updated['branch_name'] = None
        updated['status'] = 'available'
        updated['distributed_date'] = None
        updated['returned_to_inventory_date'] = now_iso()
        return updated

    def save_item(self, obj):
        check_for_required_keys(obj, item_attributes)
        content = {k: v for k, v in obj.items() if k not in base_attributes}
        self._validate_item_content(content)

        obj = {k: v for k, v in obj.items() if k not in ['selling_price', 'price_history']}
        obj['model'] = obj['model'].strip()
        obj.setdefault('quantity', 1)
        obj['profit_percentage'] = obj.get('profit_percentage') or DEFAULT_PROFIT_PERCENTAGE
        obj['payment_status'] = obj.get('payment_status') or 'unpaid'
        obj['purchase_date'] = obj.get('purchase_date') or _today()
        obj['status'] = 'available'
        obj['confirmed'] = obj.get('confirmed', False)
        obj['created_by'] = self._user_id

        obj = self._set_location(obj)
        obj = self._price(obj)

        if obj.get('payed_lom_narxi') and obj.get('lom_narxi'):
            obj['price_difference'] = obj['payed_lom_narxi'] - obj['lom_narxi']

        return self._save_item(obj, CREATE_FAILED)

    def update_item(self, entity_id, changes):
        item = self._get_item_or_raise(entity_id)
        updated = self._apply_changes(item, changes)
        return self._save_item(updated, UPDATE_FAILED)

    def get_item_by_id(self, entity_id):
        item = self._get_item_or_raise(entity_id)
        return clean(item)

    def delete_item_by_id(self, entity_id):
        item = self._get_item_or_raise(entity_id)
        item['active'] = False
        self._save_item(item, DELETE_FAILED)

    def get_items(self, filters=None):
        """
        List live items.

        :param filters: optional dict with any of category, status, branch_id,
            is_provider, payment_status, supplier_name, confirmed, start_date,
            end_date (on purchase_date), search, sort_field, sort_direction,
            offset, limit
        :return: list of items
        """
        filters = filters or {}

        if filters.get('branch_id'):
            response = self._storage.get_items({
                'KeyConditionExpression': Key('branch_id').eq(filters['branch_id']) & Key('obj_type').eq(ITEMS),
                'FilterExpression': Attr('latest').eq(True) & Attr('active').eq(True),
                'IndexName': 'by_branch_id_and_obj_type'
            })
        elif filters.get('supplier_name'):
            response = self._storage.get_items({
                'KeyConditionExpression':
                    Key('supplier_name').eq(filters['supplier_name']) & Key('obj_type').eq(ITEMS),
                'FilterExpression': Attr('latest').eq(True) & Attr('active').eq(True),
                'IndexName': 'by_supplier_name_and_obj_type'
            })
        else:
            response = self._storage.get_all_items(ITEMS)

        items = [clean(json_util.loads(item)) for item in response['Items']]

        for key in ['category', 'status', 'payment_status', 'supplier_name']:
            if filters.get(key):
                items = [item for item in items if item.get(key) == filters[key]]

        for key in ['is_provider', 'confirmed']:
            if filters.get(key) is not None:
                items = [item for item in items if bool(item.get(key)) == filters[key]]

        if filters.get('start_date'):
            start = maya.parse(filters['start_date'])
            items = [item for item in items
                     if item.get('purchase_date') and maya.parse(item['purchase_date']) >= start]
        if filters.get('end_date'):
            end = maya.parse(filters['end_date'])
            items = [item for item in items
                     if item.get('purchase_date') and maya.parse(item['purchase_date']) <= end]

        if filters.get('search'):
            term = filters['search'].lower()
            items = [item for item in items
                     if any(term in str(item.get(field) or '').lower() for field in SEARCH_FIELDS)]

        sort_field = filters.get('sort_field') or 'purchase_date'
        reverse = (filters.get('sort_direction') or 'desc') == 'desc'
        items.sort(key=_sort_key(sort_field), reverse=reverse)

        offset = filters.get('offset') or 0
        if offset:
            items = items[offset:]
        if filters.get('limit'):
            items = items[:filters['limit']]

        return items

    def get_unpaid_items_by_supplier(self, supplier_name):
        query = {
            'KeyConditionExpression': Key('supplier_name').eq(supplier_name) & Key('obj_type').eq(ITEMS),
            'FilterExpression':
                Attr('latest').eq(True) & Attr('active').eq(True) & Attr('payment_status').eq('unpaid'),
            'IndexName': 'by_supplier_name_and_obj_type'
        }

        response = self._storage.get_items(query)

        items = [clean(json_util.loads(item)) for item in response['Items']]
        items.sort(key=_sort_key('purchase_date'))
        return items

    def update_item_status(self, entity_id, status, extra=None):
        item = self._get_item_or_raise(entity_id)
        updated = self._apply_status(item, status, extra or {})
        return self._save_item(updated, STATUS_UPDATE_FAILED)

    def return_to_inventory(self, entity_id):
        item = self._get_item_or_raise(entity_id)
        updated = self._apply_return_to_inventory(item)
        return self._save_item(updated, RETURN_TO_INVENTORY_FAILED)

    def bulk_update_item_status(self, entity_ids, status, extra=None):
        items = self._load_items(entity_ids)
        updated = [self._apply_status(item, status, extra or {}) for item in items]
        return self._commit_items(updated, STATUS_UPDATE_FAILED)

    def bulk_return_to_inventory(self, entity_ids):
        items = self._load_items(entity_ids)
        updated = [self._apply_return_to_inventory(item) for item in items]
        return self._commit_items(updated, RETURN_TO_INVENTORY_FAILED)

    def bulk_update_items(self, entity_ids, changes):
        items = self._load_items(entity_ids)
        updated = [self._apply_changes(item, changes) for item in items]
        return self._commit_items(updated, BULK_UPDATE_FAILED)

    def bulk_delete_items(self, entity_ids):
        items = self._load_items(entity_ids)
        for item in items:
            item['active'] = False
        self._commit_items(items, BULK_DELETE_FAILED)

    def update_items_payment_status(self, entity_ids, payment):
        payment_status = payment.get('payment_status') or 'paid'
        check_allowed_value(payment_status, PAYMENT_STATUSES, 'payment_status')
        check_properties_datatypes(payment, item_optional_attributes)

        items = self._load_items(entity_ids)

        updated = []
        for item in items:
            item = dict(item)
            item['payment_status'] = payment_status
            item['payment_date'] = payment.get('payment_date') or _today()
            item['payment_reference'] = payment.get('reference')
            if payment.get('payed_lom_narxi'):
                item['payed_lom_narxi'] = payment['payed_lom_narxi']
                item['price_difference'] = payment['payed_lom_narxi'] - (item.get('lom_narxi') or 0)
            updated.append(item)

        return self._commit_items(updated, PAYMENT_UPDATE_FAILED)
