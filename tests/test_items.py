"""
Item lifecycle: intake, pricing on update, status changes and bulk writes.
"""

import pytest

from data_common.exceptions import BadParameters, MissingRequiredKey, NoSuchEntity, InvalidStateTransition, \
    BatchTooLarge


class TestSaveItem:
    def test_branch_item_is_priced_from_intake_price(self, repo, new_item):
        item = repo.save_item(new_item(branch_id='branch-x', branch_name='Chilonzor'))

        assert item['selling_price'] == 7200000
        assert item['is_provider'] is False
        assert item['branch'] == 'branch-x'
        assert item['status'] == 'available'
        assert item['payment_status'] == 'unpaid'
        assert item['quantity'] == 1
        assert item['confirmed'] is False

    def test_item_without_branch_is_provider_held(self, repo, new_item):
        item = repo.save_item(new_item())

        assert item['is_provider'] is True
        assert 'branch_id' not in item
        assert item['selling_price'] == 6600000

    def test_missing_cost_field(self, repo, new_item):
        body = new_item()
        del body['labor_cost']

        with pytest.raises(MissingRequiredKey):
            repo.save_item(body)

    def test_unknown_category(self, repo, new_item):
        with pytest.raises(BadParameters):
            repo.save_item(new_item(category='Toj'))

    def test_get_missing_item(self, repo):
        with pytest.raises(NoSuchEntity) as ex:
            repo.get_item_by_id('no-such-item')
        assert str(ex.value) == "Mahsulot topilmadi"

    def test_deleted_item_is_gone(self, repo, new_item):
        item = repo.save_item(new_item())

        repo.delete_item_by_id(item['entity_id'])

        assert repo.get_items() == []
        with pytest.raises(NoSuchEntity):
            repo.get_item_by_id(item['entity_id'])


class TestUpdateItem:
    def test_cost_change_reprices_and_records_history(self, repo, new_item):
        item = repo.save_item(new_item(branch_id='branch-x'))

        updated = repo.update_item(item['entity_id'], {'labor_cost': 60000, 'price_change_reason': 'bozor'})

        # (10 * 550000 + 10 * 60000) * 1.2
        assert updated['selling_price'] == 7320000
        assert len(updated['price_history']) == 1
        assert updated['price_history'][0]['reason'] == 'bozor'
        assert 'price_change_reason' not in updated

    def test_selling_price_cannot_be_written(self, repo, new_item):
        item = repo.save_item(new_item(branch_id='branch-x'))

        updated = repo.update_item(item['entity_id'], {'selling_price': 1, 'notes': 'vitrina'})

        assert updated['selling_price'] == 7200000
        assert updated['notes'] == 'vitrina'
        assert 'price_history' not in updated

    def test_paid_price_sets_price_difference(self, repo, new_item):
        item = repo.save_item(new_item())

        updated = repo.update_item(item['entity_id'], {'payed_lom_narxi': 520000})

        assert updated['price_difference'] == 20000


class TestItemStatus:
    def test_sold_stamps_date(self, repo, new_item):
        item = repo.save_item(new_item(branch_id='branch-x'))

        sold = repo.update_item_status(item['entity_id'], 'sold')

        assert sold['status'] == 'sold'
        assert sold['sold_date']

    def test_returned_item_goes_back_on_sale(self, repo, new_item):
        item = repo.save_item(new_item(branch_id='branch-x'))
        repo.update_item_status(item['entity_id'], 'sold')

        repo.update_item_status(item['entity_id'], 'returned', {'return_reason': 'Hajmi mos kelmadi'})
        stored = repo.get_item_by_id(item['entity_id'])

        assert stored['status'] == 'available'
        assert stored['return_reason'] == 'Hajmi mos kelmadi'
        assert stored['returned_date']

    def test_returned_without_reason_gets_default(self, repo, new_item):
        item = repo.save_item(new_item(branch_id='branch-x'))

        returned = repo.update_item_status(item['entity_id'], 'returned')

        assert returned['return_reason'] == "Mijoz qaytardi"

    def test_reserved_and_transferred(self, repo, new_item):
        item = repo.save_item(new_item(branch_id='branch-x'))

        reserved = repo.update_item_status(item['entity_id'], 'reserved', {'reserved_by': 'Karimova'})
        assert reserved['reserved_by'] == 'Karimova'
        assert reserved['reserved_date']

        transferred = repo.update_item_status(item['entity_id'], 'transferred', {'transferred_to': 'branch-y'})
        assert transferred['transferred_to'] == 'branch-y'

    def test_returned_to_supplier_is_terminal(self, repo, new_item):
        item = repo.save_item(new_item(branch_id='branch-x'))

        returned = repo.update_item_status(item['entity_id'], 'returned_to_supplier')
        assert returned['return_to_supplier_reason'] == "Sabab ko'rsatilmagan"

        with pytest.raises(InvalidStateTransition):
            repo.update_item_status(item['entity_id'], 'available')
        with pytest.raises(InvalidStateTransition):
            repo.return_to_inventory(item['entity_id'])

    def test_unknown_status(self, repo, new_item):
        item = repo.save_item(new_item())

        with pytest.raises(BadParameters):
            repo.update_item_status(item['entity_id'], 'lost')

    def test_return_to_inventory(self, repo, new_item):
        item = repo.save_item(new_item(branch_id='branch-x', distributed_date='2024-01-10'))

        returned = repo.return_to_inventory(item['entity_id'])

        assert returned['is_provider'] is True
        assert returned['status'] == 'available'
        assert 'branch_id' not in returned
        assert 'branch' not in returned
        assert 'distributed_date' not in returned
        assert returned['returned_to_inventory_date']
        assert repo.get_branch_items('branch-x') == []


class TestBulk:
    def test_bulk_status_update(self, repo, new_item):
        ids = [repo.save_item(new_item(branch_id='branch-x'))['entity_id'] for _ in range(3)]

        items = repo.bulk_update_item_status(ids, 'reserved', {'reserved_by': 'Karimova'})

        assert [item['status'] for item in items] == ['reserved'] * 3

    def test_bulk_status_update_is_all_or_nothing(self, repo, new_item):
        good = repo.save_item(new_item(branch_id='branch-x'))
        terminal = repo.save_item(new_item(branch_id='branch-x'))
        repo.update_item_status(terminal['entity_id'], 'returned_to_supplier')

        with pytest.raises(InvalidStateTransition):
            repo.bulk_update_item_status([good['entity_id'], terminal['entity_id']], 'sold')

        assert repo.get_item_by_id(good['entity_id'])['status'] == 'available'

    def test_bulk_over_transaction_limit(self, repo):
        with pytest.raises(BatchTooLarge):
            repo.bulk_update_item_status(['id-{}'.format(i) for i in range(51)], 'sold')

    def test_bulk_with_repeated_id(self, repo, new_item):
        item = repo.save_item(new_item(branch_id='branch-x'))

        with pytest.raises(BadParameters):
            repo.bulk_update_item_status([item['entity_id'], item['entity_id']], 'sold')

        assert repo.get_item_by_id(item['entity_id'])['status'] == 'available'

    def test_bulk_update_reprices_each_item(self, repo, new_item):
        ids = [repo.save_item(new_item(branch_id='branch-x'))['entity_id'],
               repo.save_item(new_item())['entity_id']]

        items = repo.bulk_update_items(ids, {'profit_percentage': 10})

        assert items[0]['selling_price'] == 6600000
        assert items[1]['selling_price'] == 6050000

    def test_bulk_return_and_delete(self, repo, new_item):
        ids = [repo.save_item(new_item(branch_id='branch-x'))['entity_id'] for _ in range(2)]

        returned = repo.bulk_return_to_inventory(ids)
        assert all(item['is_provider'] for item in returned)

        repo.bulk_delete_items(ids)
        with pytest.raises(NoSuchEntity):
            repo.get_item_by_id(ids[0])

    def test_payment_status(self, repo, new_item):
        ids = [repo.save_item(new_item())['entity_id'] for _ in range(2)]

        items = repo.update_items_payment_status(ids, {'payed_lom_narxi': 510000, 'reference': 'PAY-1'})

        assert all(item['payment_status'] == 'paid' for item in items)
        assert items[0]['price_difference'] == 10000
        assert items[0]['payment_reference'] == 'PAY-1'
        assert repo.get_unpaid_items_by_supplier("Oltin Yo'li") == []


class TestListItems:
    def test_filters_and_sorting(self, repo, new_item):
        repo.save_item(new_item(model='A-1', branch_id='branch-x', purchase_date='2024-01-01'))
        repo.save_item(new_item(model='A-2', branch_id='branch-x', category='Zanjir', purchase_date='2024-02-01'))
        repo.save_item(new_item(model='B-1', purchase_date='2024-03-01'))

        assert [i['model'] for i in repo.get_items()] == ['B-1', 'A-2', 'A-1']
        assert [i['model'] for i in repo.get_items({'branch_id': 'branch-x', 'sort_direction': 'asc'})] == \
            ['A-1', 'A-2']
        assert [i['model'] for i in repo.get_items({'category': 'Zanjir'})] == ['A-2']
        assert [i['model'] for i in repo.get_items({'is_provider': True})] == ['B-1']
        assert [i['model'] for i in repo.get_items({'search': 'a-'})] == ['A-2', 'A-1']
        assert [i['model'] for i in repo.get_items({'start_date': '2024-01-15', 'end_date': '2024-02-15'})] == \
            ['A-2']
        assert [i['model'] for i in repo.get_items({'offset': 1, 'limit': 1})] == ['A-2']

    def test_unpaid_by_supplier_oldest_first(self, repo, new_item):
        repo.save_item(new_item(model='new', purchase_date='2024-05-01'))
        repo.save_item(new_item(model='old', purchase_date='2024-01-01'))
        repo.save_item(new_item(model='paid', payment_status='paid'))
        repo.save_item(new_item(model='other', supplier_name='Zar'))

        unpaid = repo.get_unpaid_items_by_supplier("Oltin Yo'li")

        assert [i['model'] for i in unpaid] == ['old', 'new']
