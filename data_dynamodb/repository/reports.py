import logging

from data_common.pricing import calculate_item_profit
from data_common.repository import ReportRepository

logger = logging.getLogger(__name__)

CENTRAL_BRANCH = "Markaz"
UNKNOWN_SUPPLIER = "Noma'lum"


def _group(rows, key):
    groups = {}
    for row in rows:
        group = groups.setdefault(key(row), {
            'count': 0,
            'total_weight': 0,
            'supposed_profit': 0,
            'actual_profit': 0,
            'total_revenue': 0,
            'total_cost': 0,
        })
        group['count'] += 1
        group['total_weight'] += row['item'].get('weight') or 0
        group['supposed_profit'] += row['supposed_profit']
        group['actual_profit'] += row['actual_profit']
        group['total_revenue'] += row['actual_revenue']
        group['total_cost'] += row['actual_cost']

    for group in groups.values():
        group['profit_margin'] = \
            group['actual_profit'] / group['total_revenue'] * 100 if group['total_revenue'] > 0 else 0
        group['average_profit'] = group['actual_profit'] / group['count']
        group['efficiency'] = \
            group['actual_profit'] / group['supposed_profit'] * 100 if group['supposed_profit'] > 0 else 0

    return groups


class DynamoReportRepository(ReportRepository):
    def get_item_stats(self, filters=None):
        items = self.get_items(filters)

        return {
            'total_items': len(items),
            'total_weight': sum(item.get('weight') or 0 for item in items),
            'total_value': sum((item.get('selling_price') or 0) * (item.get('quantity') or 1) for item in items),
            'available_items': len([item for item in items if item.get('status') == 'available']),
            'sold_items': len([item for item in items if item.get('status') == 'sold']),
            'reserved_items': len([item for item in items if item.get('status') == 'reserved']),
            'returned_to_supplier_items':
                len([item for item in items if item.get('status') == 'returned_to_supplier']),
            'branch_items': len([item for item in items if not item.get('is_provider')]),
            'central_items': len([item for item in items if item.get('is_provider')]),
        }

    def get_profit_analysis(self, filters=None):
        """
        Theoretical against actual profit over the filtered items.

        :return: dict with `summary`, per item `items` rows, and `by_category`
            and `by_branch` groupings
        """
        items = self.get_items(filters)

        rows = []
        for item in items:
            row = calculate_item_profit(item)
            row['item'] = item
            rows.append(row)

        supposed_profit = sum(row['supposed_profit'] for row in rows)
        actual_profit = sum(row['actual_profit'] for row in rows)
        total_revenue = sum(row['actual_revenue'] for row in rows)
        total_cost = sum(row['actual_cost'] for row in rows)

        summary = {
            'item_count': len(rows),
            'supposed_profit': supposed_profit,
            'actual_profit': actual_profit,
            'total_revenue': total_revenue,
            'total_cost': total_cost,
            'profit_margin': actual_profit / total_revenue * 100 if total_revenue > 0 else 0,
            'average_profit': actual_profit / len(rows) if rows else 0,
            'price_difference_impact': sum(row['price_difference_impact'] for row in rows),
        }

        return {
            'summary': summary,
            'items': rows,
            'by_category': _group(rows, lambda row: row['item'].get('category')),
            'by_branch': _group(rows, lambda row: row['item'].get('branch_name')
                                or row['item'].get('branch_id') or CENTRAL_BRANCH),
        }

    def get_supplier_summary(self, supplier_name):
        items = self.get_items({'supplier_name': supplier_name})

        paid = [item for item in items if item.get('payment_status') == 'paid']
        unpaid = [item for item in items if item.get('payment_status') == 'unpaid']
        partially_paid = [item for item in items if item.get('payment_status') == 'partially_paid']

        def value(item):
            return (item.get('weight') or 0) * (item.get('lom_narxi') or 0)

        def paid_value(item):
            return (item.get('weight') or 0) * (item.get('payed_lom_narxi') or item.get('lom_narxi') or 0)

        totals = {
            'total_items': len(items),
            'paid_items': len(paid),
            'unpaid_items': len(unpaid),
            'partially_paid_items': len(partially_paid),
            'total_weight': sum(item.get('weight') or 0 for item in items),
            'total_value': sum(value(item) for item in items),
            'paid_value': sum(paid_value(item) for item in paid),
            'unpaid_value': sum(value(item) for item in unpaid),
            'price_difference': sum((item.get('price_difference') or 0) * (item.get('weight') or 0)
                                    for item in paid),
            'confirmed_items': len([item for item in items if item.get('confirmed')]),
            'unconfirmed_items': len([item for item in items if not item.get('confirmed')]),
        }

        return {
            'supplier_name': supplier_name or UNKNOWN_SUPPLIER,
            'totals': totals,
            'items': items,
            'paid_items': paid,
            'unpaid_items': unpaid,
            'confirmations': self.get_confirmations_by_supplier(supplier_name),
        }
