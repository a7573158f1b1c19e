import abc
import os


class BaseRepository:
    def __init__(self, region_name, user_id=None, email=''):
        self._region_name = region_name
        self._user_id = user_id
        self._email = email
        self._stage = os.environ["STAGE"]
    # If more attributes are required, modify SQSManager, SnsNotifier class as well to match with this signature


class ItemRepository(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def save_item(self, obj):
        pass

    @abc.abstractmethod
    def update_item(self, entity_id, changes):
        pass

    @abc.abstractmethod
    def get_item_by_id(self, entity_id):
        pass

    @abc.abstractmethod
    def delete_item_by_id(self, entity_id):
        pass

    @abc.abstractmethod
    def get_items(self, filters=None):
        pass

    @abc.abstractmethod
    def get_unpaid_items_by_supplier(self, supplier_name):
        pass

    @abc.abstractmethod
    def update_item_status(self, entity_id, status, extra=None):
        pass

    @abc.abstractmethod
    def return_to_inventory(self, entity_id):
        pass

    @abc.abstractmethod
    def bulk_update_item_status(self, entity_ids, status, extra=None):
        pass

    @abc.abstractmethod
    def bulk_return_to_inventory(self, entity_ids):
        pass

    @abc.abstractmethod
    def bulk_update_items(self, entity_ids, changes):
        pass

    @abc.abstractmethod
    def bulk_delete_items(self, entity_ids):
        pass

    @abc.abstractmethod
    def update_items_payment_status(self, entity_ids, payment):
        pass


class BranchRepository(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def save_branch(self, obj):
        pass

    @abc.abstractmethod
    def get_branch_by_id(self, entity_id):
        pass

    @abc.abstractmethod
    def delete_branch_by_id(self, entity_id):
        pass

    @abc.abstractmethod
    def get_all_branches(self):
        pass

    @abc.abstractmethod
    def update_branch_stats(self, entity_id, stats):
        pass

    @abc.abstractmethod
    def get_branch_hierarchy(self):
        pass

    @abc.abstractmethod
    def get_branch_items(self, branch_id):
        pass

    @abc.abstractmethod
    def save_branch_staff(self, obj):
        pass

    @abc.abstractmethod
    def get_branch_staff(self, branch_id):
        pass

    @abc.abstractmethod
    def delete_branch_staff_by_id(self, entity_id):
        pass

    @abc.abstractmethod
    def save_branch_expense(self, obj):
        pass

    @abc.abstractmethod
    def get_branch_expenses(self, branch_id, start_date=None, end_date=None):
        pass

    @abc.abstractmethod
    def save_branch_transaction(self, obj):
        pass

    @abc.abstractmethod
    def get_branch_transactions(self, branch_id):
        pass

    @abc.abstractmethod
    def calculate_branch_performance(self, branch_id, year, month):
        pass

    @abc.abstractmethod
    def get_branch_performance_metrics(self, branch_id, period=None):
        pass


class BranchTransferRepository(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def create_branch_transfer(self, obj):
        pass

    @abc.abstractmethod
    def get_branch_transfer_by_id(self, entity_id):
        pass

    @abc.abstractmethod
    def get_branch_transfers(self, branch_id, direction='all'):
        pass

    @abc.abstractmethod
    def dispatch_branch_transfer(self, entity_id, transport_method=None, estimated_arrival=None):
        pass

    @abc.abstractmethod
    def update_branch_transfer_status(self, entity_id, status, notes=None):
        pass

    @abc.abstractmethod
    def complete_branch_transfer(self, entity_id, received_by, notes=None):
        pass


class InventoryCheckRepository(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def schedule_inventory_check(self, branch_id, date, conducted_by):
        pass

    @abc.abstractmethod
    def start_inventory_check(self, entity_id):
        pass

    @abc.abstractmethod
    def record_inventory_check_results(self, entity_id, items_checked, items_missing, items_excess, notes=None):
        pass

    @abc.abstractmethod
    def get_inventory_check_by_id(self, entity_id):
        pass

    @abc.abstractmethod
    def get_inventory_checks(self, branch_id):
        pass


class SalesTargetRepository(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def set_sales_target(self, obj):
        pass

    @abc.abstractmethod
    def get_sales_targets(self, branch_id, year=None, month=None):
        pass

    @abc.abstractmethod
    def record_sales_target_actuals(self, entity_id, actual_amount, items_sold_actual, as_of=None):
        pass


class SupplierConfirmationRepository(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def create_supplier_confirmation(self, obj):
        pass

    @abc.abstractmethod
    def get_supplier_confirmation_by_id(self, entity_id):
        pass

    @abc.abstractmethod
    def send_supplier_confirmation(self, entity_id):
        pass

    @abc.abstractmethod
    def process_supplier_response(self, entity_id, confirmed, confirmed_items, rejected_items, notes=None):
        pass

    @abc.abstractmethod
    def mark_expired_confirmations(self, now=None):
        pass

    @abc.abstractmethod
    def get_confirmations_by_supplier(self, supplier_name):
        pass

    @abc.abstractmethod
    def get_confirmation_by_code(self, confirmation_code):
        pass

    @abc.abstractmethod
    def get_confirmation_stats(self):
        pass


class ReportRepository(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def get_item_stats(self, filters=None):
        pass

    @abc.abstractmethod
    def get_profit_analysis(self, filters=None):
        pass

    @abc.abstractmethod
    def get_supplier_summary(self, supplier_name):
        pass


class Repository(ItemRepository,
                 BranchRepository,
                 BranchTransferRepository,
                 InventoryCheckRepository,
                 SalesTargetRepository,
                 SupplierConfirmationRepository,
                 ReportRepository,
                 BaseRepository,
                 metaclass=abc.ABCMeta):
    pass
