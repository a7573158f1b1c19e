import logging

import maya
from boto3.dynamodb.conditions import Key, Attr
from botocore.exceptions import ClientError
from dynamodb_json import json_util

from data_common.constants import branch_attributes, branch_staff_attributes, branch_expense_attributes, \
    branch_transaction_attributes, base_attributes, BRANCHES, BRANCH_STAFF, BRANCH_EXPENSES, \
    BRANCH_TRANSACTIONS, BRANCH_PERFORMANCE_METRICS, BRANCH_STATUSES
from data_common.exceptions import BadParameters, NoSuchEntity, WorkflowError
from data_common.notifications import SnsNotifier
from data_common.repository import BranchRepository
from data_common.utils import clean, now_iso
from data_dynamodb.utils import check_for_required_keys, check_properties_datatypes, check_allowed_value

logger = logging.getLogger(__name__)

BRANCH_NOT_FOUND = "Filial topilmadi"
STAFF_NOT_FOUND = "Filial xodimi topilmadi"
BRANCH_SAVE_FAILED = "Filialni saqlashda xatolik yuz berdi"
BRANCH_DELETE_FAILED = "Filialni o'chirishda xatolik yuz berdi"
STATS_UPDATE_FAILED = "Filial statistikasini yangilashda xatolik yuz berdi"
STAFF_SAVE_FAILED = "Filial xodimini saqlashda xatolik yuz berdi"
STAFF_DELETE_FAILED = "Filial xodimini o'chirishda xatolik yuz berdi"
EXPENSE_SAVE_FAILED = "Filial xarajatini qo'shishda xatolik yuz berdi"
TRANSACTION_SAVE_FAILED = "Filial tranzaksiyasini saqlashda xatolik yuz berdi"
PERFORMANCE_FAILED = "Filial samaradorligini hisoblashda xatolik yuz berdi"

STATS_FIELDS = ["item_count", "total_value", "monthly_revenue"]


def _most_frequent(counts):
    # first seen wins a tie
    top, top_count = "", 0
    for key, count in counts.items():
        if count > top_count:
            top, top_count = key, count
    return top


class DynamoBranchRepository(BranchRepository, SnsNotifier):
    def _save_record(self, obj_type, obj, failure_message):
        try:
            saved = self._storage.save(obj_type, obj)
        except ClientError:
            logger.exception(failure_message)
            raise WorkflowError(failure_message)

        self.sns_publish(obj_type, saved)  # publish notification
        return clean(saved)

    def _get_record_or_raise(self, obj_type, entity_id, message):
        obj = self._storage.get(entity_id)
        if not obj or obj.get('obj_type') != obj_type:
            raise NoSuchEntity(message)
        return obj

    def _query_by_branch(self, obj_type, branch_id):
        query = {
            'KeyConditionExpression': Key('branch_id').eq(branch_id) & Key('obj_type').eq(obj_type),
            'FilterExpression': Attr('latest').eq(True) & Attr('active').eq(True),
            'IndexName': 'by_branch_id_and_obj_type'
        }

        response = self._storage.get_items(query)
        return [clean(json_util.loads(item)) for item in response['Items']]

    # Branches

    def save_branch(self, obj):
        check_for_required_keys(obj, branch_attributes, exclude=['manager', 'is_provider'])
        content = {k: v for k, v in obj.items() if k not in base_attributes}
        check_properties_datatypes(content, branch_attributes)

        obj = dict(obj)
        obj['status'] = obj.get('status') or 'active'
        check_allowed_value(obj['status'], BRANCH_STATUSES, 'status')

        if obj.get('entity_id'):
            existing = self._get_record_or_raise(BRANCHES, obj['entity_id'], BRANCH_NOT_FOUND)
            obj = {**existing, **content, 'status': obj['status']}
        else:
            obj['is_provider'] = obj.get('is_provider', False)
            obj['created_date'] = now_iso()
            for field in STATS_FIELDS:
                obj[field] = 0

        if obj.get('parent_branch_id') and obj['parent_branch_id'] == obj.get('entity_id'):
            raise BadParameters('parent_branch_id')

        return self._save_record(BRANCHES, obj, BRANCH_SAVE_FAILED)

    def get_branch_by_id(self, entity_id):
        if not entity_id:
            return None
        return clean(self._get_record_or_raise(BRANCHES, entity_id, BRANCH_NOT_FOUND))

    def delete_branch_by_id(self, entity_id):
        branch = self._get_record_or_raise(BRANCHES, entity_id, BRANCH_NOT_FOUND)
        branch['active'] = False
        self._save_record(BRANCHES, branch, BRANCH_DELETE_FAILED)

    def get_all_branches(self):
        response = self._storage.get_all_items(BRANCHES)

        branches = [clean(json_util.loads(item)) for item in response['Items']]
        branches.sort(key=lambda b: b.get('created_date') or '', reverse=True)
        return branches

    def update_branch_stats(self, entity_id, stats):
        if not entity_id:
            return None

        branch = self._get_record_or_raise(BRANCHES, entity_id, BRANCH_NOT_FOUND)

        for field in STATS_FIELDS:
            if field in stats:
                if not isinstance(stats[field], (int, float)) or isinstance(stats[field], bool):
                    raise BadParameters(field)
                branch[field] = stats[field]

        return self._save_record(BRANCHES, branch, STATS_UPDATE_FAILED)

    def get_branch_hierarchy(self):
        branches = self.get_all_branches()
        by_id = {branch['entity_id']: branch for branch in branches}

        for branch in branches:
            parent = by_id.get(branch.get('parent_branch_id'))
            if parent:
                parent.setdefault('child_branch_ids', []).append(branch['entity_id'])

        return branches

    def get_branch_items(self, branch_id):
        if not branch_id:
            return []
        return self.get_items({'branch_id': branch_id})

    # Staff

    def save_branch_staff(self, obj):
        check_for_required_keys(obj, branch_staff_attributes, exclude=['contact_phone', 'hire_date'])
        content = {k: v for k, v in obj.items() if k not in base_attributes}
        check_properties_datatypes(content, branch_staff_attributes)

        if obj.get('entity_id'):
            existing = self._get_record_or_raise(BRANCH_STAFF, obj['entity_id'], STAFF_NOT_FOUND)
            obj = {**existing, **content}

        return self._save_record(BRANCH_STAFF, obj, STAFF_SAVE_FAILED)

    def get_branch_staff(self, branch_id):
        if not branch_id:
            return []

        staff = self._query_by_branch(BRANCH_STAFF, branch_id)
        staff.sort(key=lambda s: s['name'])
        return staff

    def delete_branch_staff_by_id(self, entity_id):
        staff = self._get_record_or_raise(BRANCH_STAFF, entity_id, STAFF_NOT_FOUND)
        staff['active'] = False
        self._save_record(BRANCH_STAFF, staff, STAFF_DELETE_FAILED)

    # Expenses

    def save_branch_expense(self, obj):
        check_for_required_keys(obj, branch_expense_attributes, exclude=['description'])
        content = {k: v for k, v in obj.items() if k not in base_attributes}
        check_properties_datatypes(content, branch_expense_attributes)

        if obj['amount'] <= 0:
            raise BadParameters('amount')

        obj = dict(content)
        obj['created_by'] = self._user_id

        return self._save_record(BRANCH_EXPENSES, obj, EXPENSE_SAVE_FAILED)

    def get_branch_expenses(self, branch_id, start_date=None, end_date=None):
        if not branch_id:
            return []

        expenses = self._query_by_branch(BRANCH_EXPENSES, branch_id)

        if start_date:
            start = maya.parse(start_date)
            expenses = [e for e in expenses if maya.parse(e['date']) >= start]
        if end_date:
            end = maya.parse(end_date)
            expenses = [e for e in expenses if maya.parse(e['date']) <= end]

        expenses.sort(key=lambda e: e['date'], reverse=True)
        return expenses

    # Transactions

    def save_branch_transaction(self, obj):
        check_for_required_keys(obj, branch_transaction_attributes)
        content = {k: v for k, v in obj.items() if k not in base_attributes}
        check_properties_datatypes(content, branch_transaction_attributes)

        obj = dict(content)
        obj['date'] = obj.get('date') or now_iso()

        return self._save_record(BRANCH_TRANSACTIONS, obj, TRANSACTION_SAVE_FAILED)

    def get_branch_transactions(self, branch_id):
        if not branch_id:
            return []

        transactions = self._query_by_branch(BRANCH_TRANSACTIONS, branch_id)
        transactions.sort(key=lambda t: t.get('date') or '', reverse=True)
        return transactions

    # Performance

    def calculate_branch_performance(self, branch_id, year, month):
        """
        Aggregate one month of sales for a branch and store the result as a
        performance metrics record.
        """
        if not branch_id:
            raise BadParameters("Filial ID ko'rsatilmagan")
        if type(year) != int or type(month) != int or not 1 <= month <= 12:
            raise BadParameters('period')

        period = '{YEAR:04d}-{MONTH:02d}'.format(YEAR=year, MONTH=month)

        transactions = [t for t in self._query_by_branch(BRANCH_TRANSACTIONS, branch_id)
                        if t.get('type') == 'sale' and (t.get('date') or '')[:7] == period]

        sales_total = sum(t.get('amount') or 0 for t in transactions)
        items_sold = sum(t.get('item_count') or 1 for t in transactions)
        customer_ids = {t['customer_id'] for t in transactions if t.get('customer_id')}

        employees = {}
        category_sales = {}
        item_sales = {}
        total_cost = 0
        total_revenue = 0

        for t in transactions:
            if t.get('employee_id'):
                employee = employees.setdefault(t['employee_id'], {'sales_amount': 0, 'items_sold': 0})
                employee['sales_amount'] += t.get('amount') or 0
                employee['items_sold'] += t.get('item_count') or 1

            for sold in t.get('items') or []:
                if sold.get('category'):
                    category_sales[sold['category']] = category_sales.get(sold['category'], 0) + 1
                if sold.get('id'):
                    item_sales[sold['id']] = item_sales.get(sold['id'], 0) + 1

            if t.get('total_cost') and t.get('amount'):
                total_cost += t['total_cost']
                total_revenue += t['amount']

        metrics = {
            'branch_id': branch_id,
            'period': period,
            'sales_total': sales_total,
            'items_sold': items_sold,
            'new_customers': len(customer_ids),
            'average_transaction_value': sales_total / len(transactions) if transactions else 0,
            'top_selling_category': _most_frequent(category_sales),
            'top_selling_item': _most_frequent(item_sales),
            'profit_margin': (total_revenue - total_cost) / total_revenue * 100 if total_revenue > 0 else 0,
            'employee_performance': [
                {'employee_id': employee_id, **totals} for employee_id, totals in employees.items()
            ],
        }

        return self._save_record(BRANCH_PERFORMANCE_METRICS, metrics, PERFORMANCE_FAILED)

    def get_branch_performance_metrics(self, branch_id, period=None):
        if not branch_id:
            return []

        metrics = self._query_by_branch(BRANCH_PERFORMANCE_METRICS, branch_id)

        if period:
            metrics = [m for m in metrics if m['period'] == period]

        metrics.sort(key=lambda m: m['period'], reverse=True)
        return metrics
