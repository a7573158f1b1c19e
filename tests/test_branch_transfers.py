"""
Branch transfers: creation, the status graph and atomic completion.
"""

import pytest

from data_common.exceptions import BadParameters, MissingRequiredKey, NoSuchEntity, InvalidStateTransition, \
    TransactionFailed


@pytest.fixture
def items_at_x(repo, new_item):
    return [repo.save_item(new_item(model=model, branch_id='branch-x', branch_name='Chilonzor'))
            for model in ['A', 'B']]


@pytest.fixture
def transfer(repo, items_at_x):
    return repo.create_branch_transfer({
        'from_branch_id': 'branch-x',
        'to_branch_id': 'branch-y',
        'to_branch_name': 'Yunusobod',
        'items': [{'item_id': item['entity_id']} for item in items_at_x],
        'reason': "Yunusobodda talab yuqori",
    })


class TestCreateTransfer:
    def test_new_transfer_is_pending(self, transfer, items_at_x, repo):
        assert transfer['status'] == 'pending'
        assert transfer['tracking_number'].startswith('TR-')
        assert transfer['initiated_by'] == 'user-1'
        assert transfer['initiated_date']
        assert [i['quantity'] for i in transfer['items']] == [1, 1]
        assert [i['condition'] for i in transfer['items']] == ['good', 'good']

        # items stay at the source until the transfer completes
        for item in items_at_x:
            assert repo.get_item_by_id(item['entity_id'])['branch_id'] == 'branch-x'

    def test_needs_items(self, repo):
        with pytest.raises(BadParameters):
            repo.create_branch_transfer({'from_branch_id': 'branch-x', 'to_branch_id': 'branch-y', 'items': []})

    def test_needs_destination(self, repo):
        with pytest.raises(MissingRequiredKey):
            repo.create_branch_transfer({'from_branch_id': 'branch-x', 'items': [{'item_id': 'a'}]})

    def test_source_and_destination_differ(self, repo):
        with pytest.raises(BadParameters):
            repo.create_branch_transfer({'from_branch_id': 'branch-x', 'to_branch_id': 'branch-x',
                                         'items': [{'item_id': 'a'}]})

    def test_unknown_condition(self, repo):
        with pytest.raises(BadParameters):
            repo.create_branch_transfer({'from_branch_id': 'branch-x', 'to_branch_id': 'branch-y',
                                         'items': [{'item_id': 'a', 'condition': 'broken'}]})

    def test_same_item_listed_twice(self, repo, items_at_x):
        item_id = items_at_x[0]['entity_id']

        with pytest.raises(BadParameters):
            repo.create_branch_transfer({'from_branch_id': 'branch-x', 'to_branch_id': 'branch-y',
                                         'items': [{'item_id': item_id}, {'item_id': item_id}]})

    def test_listing_by_direction(self, repo, transfer):
        assert [t['entity_id'] for t in repo.get_branch_transfers('branch-x', 'outgoing')] == \
            [transfer['entity_id']]
        assert repo.get_branch_transfers('branch-x', 'incoming') == []

        incoming = repo.get_branch_transfers('branch-y')
        assert incoming[0]['transfer_type'] == 'incoming'

        with pytest.raises(BadParameters):
            repo.get_branch_transfers('branch-x', 'sideways')


class TestCompleteTransfer:
    def test_items_move_to_destination(self, repo, transfer, items_at_x):
        completed = repo.complete_branch_transfer(transfer['entity_id'], 'Aliyev', 'Hammasi joyida')

        assert completed['status'] == 'completed'
        assert completed['received_by'] == 'Aliyev'
        assert completed['completed_date']
        assert completed['notes'] == 'Hammasi joyida'

        for item in items_at_x:
            moved = repo.get_item_by_id(item['entity_id'])
            assert moved['branch_id'] == 'branch-y'
            assert moved['branch'] == 'branch-y'
            assert moved['branch_name'] == 'Yunusobod'
            assert moved['status'] == 'available'
            assert moved['is_provider'] is False
            assert moved['transferred_from'] == 'branch-x'
            assert moved['transferred_to'] == 'branch-y'
            assert moved['transferred_date']

        assert repo.get_branch_items('branch-x') == []
        assert len(repo.get_branch_items('branch-y')) == 2

    def test_failed_write_leaves_everything_unchanged(self, repo, transfer, items_at_x, monkeypatch):
        item_a, item_b = items_at_x
        stale_b = repo._storage.get(item_b['entity_id'])

        # someone else writes item B after it was read
        repo.update_item(item_b['entity_id'], {'notes': 'vitrinada'})

        storage_get = repo._storage.get

        def get_with_stale_b(entity_id):
            if entity_id == item_b['entity_id']:
                return dict(stale_b)
            return storage_get(entity_id)

        monkeypatch.setattr(repo._storage, 'get', get_with_stale_b)

        with pytest.raises(TransactionFailed):
            repo.complete_branch_transfer(transfer['entity_id'], 'Aliyev')

        monkeypatch.undo()

        assert repo.get_branch_transfer_by_id(transfer['entity_id'])['status'] == 'pending'
        assert repo.get_item_by_id(item_a['entity_id'])['branch_id'] == 'branch-x'
        assert repo.get_item_by_id(item_b['entity_id'])['branch_id'] == 'branch-x'

    def test_missing_item_fails_before_writing(self, repo):
        transfer = repo.create_branch_transfer({'from_branch_id': 'branch-x', 'to_branch_id': 'branch-y',
                                                'items': [{'item_id': 'no-such-item'}]})

        with pytest.raises(NoSuchEntity):
            repo.complete_branch_transfer(transfer['entity_id'], 'Aliyev')

        assert repo.get_branch_transfer_by_id(transfer['entity_id'])['status'] == 'pending'


class TestTransferStatus:
    def test_dispatch_then_complete(self, repo, transfer):
        dispatched = repo.dispatch_branch_transfer(transfer['entity_id'], transport_method='kuryer')

        assert dispatched['status'] == 'in_transit'
        assert dispatched['transport_method'] == 'kuryer'

        with pytest.raises(InvalidStateTransition):
            repo.update_branch_transfer_status(transfer['entity_id'], 'cancelled')

        assert repo.update_branch_transfer_status(transfer['entity_id'], 'completed')['status'] == 'completed'

    def test_cancel(self, repo, transfer):
        cancelled = repo.update_branch_transfer_status(transfer['entity_id'], 'cancelled', 'Kerak emas')

        assert cancelled['status'] == 'cancelled'
        assert cancelled['cancelled_date']
        assert cancelled['notes'] == 'Kerak emas'

    @pytest.mark.parametrize('terminal', ['completed', 'cancelled', 'rejected'])
    def test_terminal_states_do_not_move(self, repo, transfer, terminal):
        repo.update_branch_transfer_status(transfer['entity_id'], terminal)

        for status in ['pending', 'in_transit', 'cancelled', 'rejected', 'completed']:
            with pytest.raises(InvalidStateTransition):
                repo.update_branch_transfer_status(transfer['entity_id'], status)

    def test_unknown_status(self, repo, transfer):
        with pytest.raises(BadParameters):
            repo.update_branch_transfer_status(transfer['entity_id'], 'lost')

    def test_missing_transfer(self, repo):
        with pytest.raises(NoSuchEntity) as ex:
            repo.complete_branch_transfer('no-such-transfer', 'Aliyev')
        assert str(ex.value) == "Ko'chirish topilmadi"
