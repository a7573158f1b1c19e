# Storage exceptions
class StorageException(Exception):
    pass


class MultipleItemsFound(StorageException):
    """
    Multiple items in table
    """


class ItemNotFound(StorageException):
    """
    Item not in table
    """


class TransactionFailed(StorageException):
    """
    A batched write was cancelled, nothing was persisted
    """


class BatchTooLarge(StorageException):
    """
    More documents than a single transaction can carry
    """


class RepositoryException(Exception):
    pass


class BadParameters(RepositoryException):
    """Bad arguments to function"""
    pass


class MissingRequiredKey(RepositoryException):
    """If a required key-val pair is missing in POST request"""
    pass


class NoSuchEntity(RepositoryException):
    pass


class InvalidStateTransition(RepositoryException):
    """Requested status change is not allowed from the current status"""
    pass


class WorkflowError(RepositoryException):
    """A workflow step failed in the store. Message is user facing"""
    pass


class SubscriptionException(Exception):
    pass


class UserIdNotInObject(SubscriptionException):
    pass
