"""
Supplier confirmations: totals, the status graph, responses and expiry.
"""

import re

import maya
import pytest

from data_common.exceptions import BadParameters, NoSuchEntity, InvalidStateTransition

SUPPLIER = "Oltin Yo'li"


@pytest.fixture
def supplier_items(repo, new_item):
    return [
        repo.save_item(new_item(model='S-1', weight=5, lom_narxi=480000)),
        repo.save_item(new_item(model='S-2', weight=7.5, lom_narxi=500000)),
        repo.save_item(new_item(model='S-3', weight=12, lom_narxi=510000)),
    ]


@pytest.fixture
def confirmation(repo, supplier_items):
    return repo.create_supplier_confirmation({
        'supplier_name': SUPPLIER,
        'item_ids': [item['entity_id'] for item in supplier_items],
        'admin_notes': 'Yanvar partiyasi',
    })


class TestCreateConfirmation:
    def test_totals_and_code(self, confirmation):
        assert confirmation['total_amount'] == 5 * 480000 + 7.5 * 500000 + 12 * 510000
        assert confirmation['total_weight'] == 24.5
        assert confirmation['status'] == 'pending'
        assert re.match(r'^CONF-\d{6}-[A-Z0-9]{4}$', confirmation['confirmation_code'])
        assert confirmation['created_by'] == 'user-1'

    def test_items_must_belong_to_supplier(self, repo, new_item):
        item = repo.save_item(new_item(supplier_name='Zar'))

        with pytest.raises(BadParameters):
            repo.create_supplier_confirmation({'supplier_name': SUPPLIER, 'item_ids': [item['entity_id']]})

    def test_paid_items_are_rejected(self, repo, new_item):
        item = repo.save_item(new_item(payment_status='paid'))

        with pytest.raises(BadParameters):
            repo.create_supplier_confirmation({'supplier_name': SUPPLIER, 'item_ids': [item['entity_id']]})

    def test_missing_item(self, repo):
        with pytest.raises(NoSuchEntity):
            repo.create_supplier_confirmation({'supplier_name': SUPPLIER, 'item_ids': ['no-such-item']})

    def test_lookup_by_code_and_supplier(self, repo, confirmation):
        found = repo.get_confirmation_by_code(confirmation['confirmation_code'])

        assert found['entity_id'] == confirmation['entity_id']
        assert repo.get_confirmation_by_code('CONF-000000-XXXX') is None
        assert [c['entity_id'] for c in repo.get_confirmations_by_supplier(SUPPLIER)] == \
            [confirmation['entity_id']]


class TestSendConfirmation:
    def test_send_sets_seven_day_expiry(self, repo, confirmation):
        sent = repo.send_supplier_confirmation(confirmation['entity_id'])

        assert sent['status'] == 'sent'
        assert (maya.parse(sent['expiry_date']) - maya.parse(sent['sent_date'])).days == 7

    def test_cannot_send_twice(self, repo, confirmation):
        repo.send_supplier_confirmation(confirmation['entity_id'])

        with pytest.raises(InvalidStateTransition):
            repo.send_supplier_confirmation(confirmation['entity_id'])

    def test_response_needs_sent_confirmation(self, repo, confirmation):
        with pytest.raises(InvalidStateTransition):
            repo.process_supplier_response(confirmation['entity_id'], True, [], [])


class TestSupplierResponse:
    def test_confirmed_items_are_marked(self, repo, confirmation, supplier_items):
        repo.send_supplier_confirmation(confirmation['entity_id'])
        confirmed_ids = [item['entity_id'] for item in supplier_items[:2]]
        rejected_id = supplier_items[2]['entity_id']

        result = repo.process_supplier_response(confirmation['entity_id'], True, confirmed_ids, [rejected_id],
                                                "Og'irlik to'g'ri")

        assert result['status'] == 'confirmed'
        assert result['confirmed_date']
        assert result['supplier_response']['rejected_items'] == [rejected_id]

        for item_id in confirmed_ids:
            item = repo.get_item_by_id(item_id)
            assert item['confirmed'] is True
            assert item['confirmation_id'] == confirmation['entity_id']
            assert item['supplier_confirmation_notes'] == "Og'irlik to'g'ri"

        rejected = repo.get_item_by_id(rejected_id)
        assert rejected['confirmed'] is False
        assert 'confirmation_id' not in rejected

    def test_rejection_leaves_items_alone(self, repo, confirmation, supplier_items):
        repo.send_supplier_confirmation(confirmation['entity_id'])

        result = repo.process_supplier_response(confirmation['entity_id'], False, [],
                                                [item['entity_id'] for item in supplier_items])

        assert result['status'] == 'rejected'
        assert result['rejected_date']
        assert all(repo.get_item_by_id(item['entity_id'])['confirmed'] is False for item in supplier_items)

    def test_foreign_item_in_response(self, repo, confirmation):
        repo.send_supplier_confirmation(confirmation['entity_id'])

        with pytest.raises(BadParameters):
            repo.process_supplier_response(confirmation['entity_id'], True, ['someone-else'], [])

        assert repo.get_supplier_confirmation_by_id(confirmation['entity_id'])['status'] == 'sent'


class TestExpiry:
    def test_only_past_expiry_flips(self, repo, confirmation):
        sent = repo.send_supplier_confirmation(confirmation['entity_id'])

        tomorrow = maya.parse(sent['sent_date']).add(days=1).iso8601()
        assert repo.mark_expired_confirmations(tomorrow) == []
        assert repo.get_supplier_confirmation_by_id(confirmation['entity_id'])['status'] == 'sent'

        next_week = maya.parse(sent['sent_date']).add(days=8).iso8601()
        assert repo.mark_expired_confirmations(next_week) == [confirmation['entity_id']]
        assert repo.get_supplier_confirmation_by_id(confirmation['entity_id'])['status'] == 'expired'

    def test_unsent_confirmations_never_expire(self, repo, confirmation):
        far_future = maya.now().add(days=365).iso8601()

        assert repo.mark_expired_confirmations(far_future) == []

    def test_stats(self, repo, confirmation):
        repo.send_supplier_confirmation(confirmation['entity_id'])

        stats = repo.get_confirmation_stats()

        assert stats['total'] == 1
        assert stats['sent'] == 1
        assert stats['pending'] == 0
