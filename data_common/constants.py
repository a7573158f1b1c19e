# Global Constants

# Metadata associated with all data stored
# Also called Big-7
base_attributes = ["entity_id", "version", "previous_version", "active", "latest", "changed_by_id", "changed_on"]

# Collection names, stored as obj_type and used as SNS topic suffixes
ITEMS = "items"
BRANCHES = "branches"
BRANCH_TRANSFERS = "branch-transfers"
BRANCH_INVENTORY_CHECKS = "branch-inventory-checks"
BRANCH_SALES_TARGETS = "branch-sales-targets"
BRANCH_STAFF = "branch-staff"
BRANCH_EXPENSES = "branch-expenses"
BRANCH_TRANSACTIONS = "transactions"
BRANCH_PERFORMANCE_METRICS = "branch-performance-metrics"
SUPPLIER_CONFIRMATIONS = "supplier-confirmations"

collections = [
    ITEMS,
    BRANCHES,
    BRANCH_TRANSFERS,
    BRANCH_INVENTORY_CHECKS,
    BRANCH_SALES_TARGETS,
    BRANCH_STAFF,
    BRANCH_EXPENSES,
    BRANCH_TRANSACTIONS,
    BRANCH_PERFORMANCE_METRICS,
    SUPPLIER_CONFIRMATIONS,
]

# DynamoDB allows 100 actions per transaction, a versioned save takes two
MAX_TRANSACTION_DOCUMENTS = 50

# API data structures

item_attributes = {
    "model": str,
    "category": str,
    "weight": float,
    "lom_narxi": float,
    "lom_narxi_kirim": float,
    "labor_cost": float,
}

item_optional_attributes = {
    "quantity": int,
    "profit_percentage": float,
    "is_provider": bool,
    "branch_id": str,
    "branch_name": str,
    "size": float,
    "color": str,
    "purity": str,
    "stone_type": str,
    "stone_weight": float,
    "manufacturer": str,
    "notes": str,
    "purchase_date": "date",
    "distributed_date": "date",
    "supplier_name": str,
    "payment_status": str,
    "payed_lom_narxi": float,
    "quality_grade": str,
}

branch_attributes = {
    "name": str,
    "location": str,
    "manager": str,
    "is_provider": bool,
}

branch_staff_attributes = {
    "branch_id": str,
    "name": str,
    "position": str,
    "contact_phone": str,
    "hire_date": "date",
}

branch_expense_attributes = {
    "branch_id": str,
    "amount": float,
    "category": str,
    "description": str,
    "date": "date",
}

branch_transaction_attributes = {
    "branch_id": str,
    "type": str,
    "amount": float,
}

branch_transfer_attributes = {
    "from_branch_id": str,
    "to_branch_id": str,
    "items": list,
    "initiated_by": str,
    "reason": str,
}

branch_transfer_item_attributes = {
    "item_id": str,
    "quantity": int,
    "condition": str,
}

inventory_check_attributes = {
    "branch_id": str,
    "date": "date",
    "conducted_by": str,
}

sales_target_attributes = {
    "branch_id": str,
    "year": int,
    "month": int,
    "target_amount": float,
    "items_sold_target": int,
}

supplier_confirmation_attributes = {
    "supplier_name": str,
    "item_ids": list,
}

# Enumerations

CATEGORIES = ["Uzuk", "Sirg'a", "Bilakuzuk", "Zanjir", "Boshqa"]

PAYMENT_STATUSES = ["paid", "partially_paid", "unpaid"]

TRANSFER_ITEM_CONDITIONS = ["excellent", "good", "fair", "poor"]

BRANCH_STATUSES = ["active", "inactive", "maintenance"]

DEFAULT_PROFIT_PERCENTAGE = 20

# Item lifecycle. `returned` is accepted as a request but never persisted.
ITEM_STATUSES = ["available", "sold", "reserved", "transferred", "returned", "returned_to_supplier"]
ITEM_TERMINAL_STATUSES = ["returned_to_supplier"]

# Branch transfer lifecycle
TRANSFER_PENDING = "pending"
TRANSFER_IN_TRANSIT = "in_transit"
TRANSFER_COMPLETED = "completed"
TRANSFER_CANCELLED = "cancelled"
TRANSFER_REJECTED = "rejected"

TRANSFER_TRANSITIONS = {
    TRANSFER_PENDING: [TRANSFER_IN_TRANSIT, TRANSFER_COMPLETED, TRANSFER_CANCELLED, TRANSFER_REJECTED],
    TRANSFER_IN_TRANSIT: [TRANSFER_COMPLETED],
    TRANSFER_COMPLETED: [],
    TRANSFER_CANCELLED: [],
    TRANSFER_REJECTED: [],
}

# Supplier confirmation lifecycle
CONFIRMATION_PENDING = "pending"
CONFIRMATION_SENT = "sent"
CONFIRMATION_CONFIRMED = "confirmed"
CONFIRMATION_REJECTED = "rejected"
CONFIRMATION_EXPIRED = "expired"

CONFIRMATION_TRANSITIONS = {
    CONFIRMATION_PENDING: [CONFIRMATION_SENT],
    CONFIRMATION_SENT: [CONFIRMATION_CONFIRMED, CONFIRMATION_REJECTED, CONFIRMATION_EXPIRED],
    CONFIRMATION_CONFIRMED: [],
    CONFIRMATION_REJECTED: [],
    CONFIRMATION_EXPIRED: [],
}

CONFIRMATION_EXPIRY_DAYS = 7

# Inventory check lifecycle
CHECK_PENDING = "pending"
CHECK_IN_PROGRESS = "in_progress"
CHECK_COMPLETED = "completed"
CHECK_DISCREPANCIES_FOUND = "discrepancies_found"

CHECK_TRANSITIONS = {
    CHECK_PENDING: [CHECK_IN_PROGRESS, CHECK_COMPLETED, CHECK_DISCREPANCIES_FOUND],
    CHECK_IN_PROGRESS: [CHECK_COMPLETED, CHECK_DISCREPANCIES_FOUND],
    CHECK_COMPLETED: [],
    CHECK_DISCREPANCIES_FOUND: [],
}

INVENTORY_CHECK_INTERVAL_DAYS = 30

# Sales target lifecycle
TARGET_PENDING = "pending"
TARGET_IN_PROGRESS = "in_progress"
TARGET_ACHIEVED = "achieved"
TARGET_MISSED = "missed"
