"""
Versioned storage: all-or-nothing multi-document writes, and the composed
repository resolving each area's helpers to its own mixin.
"""

import inspect

import pytest

from data_common.constants import ITEMS, BRANCHES
from data_common.exceptions import TransactionFailed, BatchTooLarge
from data_dynamodb.dynamodb_repository import DynamoRepository
from data_dynamodb.repository.branch_transfers import DynamoBranchTransferRepository
from data_dynamodb.repository.branches import DynamoBranchRepository
from data_dynamodb.repository.inventory_checks import DynamoInventoryCheckRepository
from data_dynamodb.repository.items import DynamoItemRepository
from data_dynamodb.repository.reports import DynamoReportRepository
from data_dynamodb.repository.sales_targets import DynamoSalesTargetRepository
from data_dynamodb.repository.supplier_confirmations import DynamoSupplierConfirmationRepository


@pytest.fixture
def storage(repo):
    return repo._storage


class TestTransactSave:
    def test_new_documents(self, storage):
        saved = storage.transact_save([
            (ITEMS, {'model': 'UZ-1', 'weight': 3.5, 'is_provider': True}),
            (BRANCHES, {'name': 'Chilonzor'}),
        ])

        assert [doc['obj_type'] for doc in saved] == [ITEMS, BRANCHES]
        stored = storage.get(saved[0]['entity_id'])
        assert stored['model'] == 'UZ-1'
        assert stored['weight'] == 3.5
        assert stored['is_provider'] is True

    def test_new_version_retires_the_old_one(self, storage):
        first, = storage.transact_save([(ITEMS, {'model': 'UZ-1'})])

        second, = storage.transact_save([(ITEMS, {**first, 'model': 'UZ-2'})])

        assert second['entity_id'] == first['entity_id']
        assert second['previous_version'] == first['version']
        assert storage.get(first['entity_id'])['version'] == second['version']

    def test_stale_version_writes_nothing(self, storage):
        item, = storage.transact_save([(ITEMS, {'model': 'UZ-1'})])
        other, = storage.transact_save([(ITEMS, {'model': 'UZ-9'})])
        storage.transact_save([(ITEMS, {**item, 'model': 'UZ-2'})])

        with pytest.raises(TransactionFailed):
            storage.transact_save([
                (ITEMS, {**other, 'model': 'UZ-10'}),
                (ITEMS, {**item, 'model': 'UZ-3'}),
            ])

        assert storage.get(other['entity_id'])['model'] == 'UZ-9'
        assert storage.get(item['entity_id'])['model'] == 'UZ-2'

    def test_batch_limit(self, storage):
        with pytest.raises(BatchTooLarge):
            storage.transact_save([(ITEMS, {'model': str(i)}) for i in range(51)])


@pytest.mark.parametrize('mixin', [
    DynamoItemRepository,
    DynamoBranchRepository,
    DynamoBranchTransferRepository,
    DynamoInventoryCheckRepository,
    DynamoSalesTargetRepository,
    DynamoSupplierConfirmationRepository,
    DynamoReportRepository,
])
def test_mixin_methods_are_not_shadowed(mixin):
    for name, function in vars(mixin).items():
        if inspect.isfunction(function) or isinstance(function, staticmethod):
            resolved = inspect.getattr_static(DynamoRepository, name)
            assert resolved is function, '{MIXIN}.{NAME}'.format(MIXIN=mixin.__name__, NAME=name)
