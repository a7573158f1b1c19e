from data_dynamodb.data_adapter import DynamoStorage

from data_common.repository import Repository
from data_dynamodb.repository.items \
    import DynamoItemRepository
from data_dynamodb.repository.branches \
    import DynamoBranchRepository
from data_dynamodb.repository.branch_transfers \
    import DynamoBranchTransferRepository
from data_dynamodb.repository.inventory_checks \
    import DynamoInventoryCheckRepository
from data_dynamodb.repository.sales_targets \
    import DynamoSalesTargetRepository
from data_dynamodb.repository.supplier_confirmations \
    import DynamoSupplierConfirmationRepository
from data_dynamodb.repository.reports \
    import DynamoReportRepository


class DynamoRepository(Repository,
                       DynamoItemRepository,
                       DynamoBranchRepository,
                       DynamoBranchTransferRepository,
                       DynamoInventoryCheckRepository,
                       DynamoSalesTargetRepository,
                       DynamoSupplierConfirmationRepository,
                       DynamoReportRepository
                       ):
    def __init__(self,
                 region_name,
                 table,
                 user_id=None,
                 email='',
                 dynamodb_local_endpoint=None):
        # dynamodb_local_endpoint if present is used to patch the dynamodb boto client to
        # use a local db instance instead of going to AWS

        super(Repository, self).__init__(region_name, user_id, email)

        if dynamodb_local_endpoint:
            self._storage = DynamoStorage(table=table, user_id=user_id, region_name=region_name,
                                          endpoint_url=dynamodb_local_endpoint)
        else:
            self._storage = DynamoStorage(table=table, user_id=user_id, region_name=region_name)
