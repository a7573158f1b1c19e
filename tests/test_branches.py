"""
Branch records, staff, expenses, transactions and monthly performance.
"""

import pytest

from data_common.exceptions import BadParameters, MissingRequiredKey, NoSuchEntity


@pytest.fixture
def branch(repo):
    return repo.save_branch({'name': 'Chilonzor', 'location': 'Toshkent', 'manager': 'Karimova'})


class TestBranches:
    def test_new_branch_defaults(self, branch):
        assert branch['status'] == 'active'
        assert branch['is_provider'] is False
        assert branch['item_count'] == 0
        assert branch['created_date']

    def test_update_keeps_stats(self, repo, branch):
        repo.update_branch_stats(branch['entity_id'], {'item_count': 12, 'total_value': 85000000})

        updated = repo.save_branch({'entity_id': branch['entity_id'], 'name': 'Chilonzor-2',
                                    'location': 'Toshkent', 'status': 'maintenance'})

        assert updated['name'] == 'Chilonzor-2'
        assert updated['status'] == 'maintenance'
        assert updated['item_count'] == 12

    def test_unknown_status(self, repo):
        with pytest.raises(BadParameters):
            repo.save_branch({'name': 'Sergeli', 'location': 'Toshkent', 'status': 'closed'})

    def test_missing_name(self, repo):
        with pytest.raises(MissingRequiredKey):
            repo.save_branch({'location': 'Toshkent'})

    def test_get_blank_and_missing(self, repo):
        assert repo.get_branch_by_id('') is None
        with pytest.raises(NoSuchEntity) as ex:
            repo.get_branch_by_id('no-such-branch')
        assert str(ex.value) == "Filial topilmadi"

    def test_stats_must_be_numbers(self, repo, branch):
        assert repo.update_branch_stats('', {'item_count': 1}) is None
        with pytest.raises(BadParameters):
            repo.update_branch_stats(branch['entity_id'], {'item_count': '12'})

    def test_delete(self, repo, branch):
        repo.delete_branch_by_id(branch['entity_id'])

        assert repo.get_all_branches() == []

    def test_hierarchy(self, repo, branch):
        child = repo.save_branch({'name': 'Chilonzor-kichik', 'location': 'Toshkent',
                                  'parent_branch_id': branch['entity_id']})

        by_id = {b['entity_id']: b for b in repo.get_branch_hierarchy()}

        assert by_id[branch['entity_id']]['child_branch_ids'] == [child['entity_id']]
        assert 'child_branch_ids' not in by_id[child['entity_id']]


class TestStaffAndExpenses:
    def test_staff_sorted_by_name(self, repo):
        repo.save_branch_staff({'branch_id': 'branch-x', 'name': 'Umarov', 'position': 'sotuvchi'})
        repo.save_branch_staff({'branch_id': 'branch-x', 'name': 'Aliyeva', 'position': 'kassir'})

        assert [s['name'] for s in repo.get_branch_staff('branch-x')] == ['Aliyeva', 'Umarov']

    def test_delete_staff(self, repo):
        staff = repo.save_branch_staff({'branch_id': 'branch-x', 'name': 'Umarov', 'position': 'sotuvchi'})

        repo.delete_branch_staff_by_id(staff['entity_id'])

        assert repo.get_branch_staff('branch-x') == []

    def test_expenses_by_date_range(self, repo):
        for date in ['2024-01-05', '2024-02-05', '2024-03-05']:
            repo.save_branch_expense({'branch_id': 'branch-x', 'amount': 150000, 'category': 'ijara',
                                      'date': date})

        expenses = repo.get_branch_expenses('branch-x', start_date='2024-02-01', end_date='2024-03-31')

        assert [e['date'] for e in expenses] == ['2024-03-05', '2024-02-05']
        assert expenses[0]['created_by'] == 'user-1'

    def test_expense_amount_positive(self, repo):
        with pytest.raises(BadParameters):
            repo.save_branch_expense({'branch_id': 'branch-x', 'amount': 0, 'category': 'ijara',
                                      'date': '2024-01-05'})


class TestPerformance:
    def test_monthly_metrics(self, repo):
        repo.save_branch_transaction({
            'branch_id': 'branch-x', 'type': 'sale', 'amount': 3000000, 'total_cost': 2400000,
            'date': '2024-05-03T10:00:00Z', 'customer_id': 'c-1', 'employee_id': 'e-1', 'item_count': 1,
            'items': [{'id': 'i-1', 'category': 'Uzuk'}],
        })
        repo.save_branch_transaction({
            'branch_id': 'branch-x', 'type': 'sale', 'amount': 5000000, 'total_cost': 4000000,
            'date': '2024-05-20T10:00:00Z', 'customer_id': 'c-2', 'employee_id': 'e-1', 'item_count': 2,
            'items': [{'id': 'i-2', 'category': 'Zanjir'}, {'id': 'i-3', 'category': 'Zanjir'}],
        })
        # outside the period or not a sale
        repo.save_branch_transaction({'branch_id': 'branch-x', 'type': 'sale', 'amount': 9000000,
                                      'date': '2024-06-01T10:00:00Z'})
        repo.save_branch_transaction({'branch_id': 'branch-x', 'type': 'refund', 'amount': 1000000,
                                      'date': '2024-05-21T10:00:00Z'})

        metrics = repo.calculate_branch_performance('branch-x', 2024, 5)

        assert metrics['period'] == '2024-05'
        assert metrics['sales_total'] == 8000000
        assert metrics['items_sold'] == 3
        assert metrics['new_customers'] == 2
        assert metrics['average_transaction_value'] == 4000000
        assert metrics['top_selling_category'] == 'Zanjir'
        assert metrics['profit_margin'] == 20
        assert metrics['employee_performance'] == [
            {'employee_id': 'e-1', 'sales_amount': 8000000, 'items_sold': 3}]

        stored = repo.get_branch_performance_metrics('branch-x', '2024-05')
        assert [m['entity_id'] for m in stored] == [metrics['entity_id']]

    def test_period_validation(self, repo):
        with pytest.raises(BadParameters):
            repo.calculate_branch_performance('branch-x', 2024, 0)
        with pytest.raises(BadParameters):
            repo.calculate_branch_performance('', 2024, 5)

    def test_transactions_newest_first(self, repo):
        repo.save_branch_transaction({'branch_id': 'branch-x', 'type': 'sale', 'amount': 1,
                                      'date': '2024-05-01T10:00:00Z'})
        repo.save_branch_transaction({'branch_id': 'branch-x', 'type': 'sale', 'amount': 2,
                                      'date': '2024-05-02T10:00:00Z'})

        assert [t['amount'] for t in repo.get_branch_transactions('branch-x')] == [2, 1]
