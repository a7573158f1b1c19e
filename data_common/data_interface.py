import abc


class DataInterface(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def save(self, obj_type, obj):
        pass

    @abc.abstractmethod
    def transact_save(self, objs):
        pass

    @abc.abstractmethod
    def get(self, entity_id):
        pass

    @abc.abstractmethod
    def get_items(self, query):
        pass

    @abc.abstractmethod
    def get_all_items(self, obj_type):
        pass
