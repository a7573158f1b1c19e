import time
import uuid
from decimal import Decimal
import functools
import logging

import boto3
from boto3.dynamodb.conditions import Key, Attr
from botocore.exceptions import ClientError
from dynamodb_json import json_util

from data_common.constants import MAX_TRANSACTION_DOCUMENTS
from data_common.data_interface import DataInterface
from data_common.exceptions import BatchTooLarge, TransactionFailed

logger = logging.getLogger(__name__)


def paginate(function=None, first_match=False):
    # first_match: break from loop upon finding items
    def with_pagination(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            def get_items(resp):
                items = resp['Items']
                count = resp['Count']

                if first_match and items:
                    return items, count

                while "LastEvaluatedKey" in resp:
                    kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
                    resp = func(self, *args, **kwargs)
                    items.extend(resp['Items'])
                    count += resp['Count']

                    if first_match and items:
                        return items, count

                return items, count

            response = func(self, *args, **kwargs)
            response['Items'], response['Count'] = get_items(response)
            return response

        return wrapper

    if function:
        return with_pagination(function)

    return with_pagination


class DynamoStorage(DataInterface):
    def __init__(self, table, user_id, *args, **kwargs):
        self._table = table
        self._user_id = user_id
        self._client = boto3.resource(
            'dynamodb',
            *args,
            **kwargs
        )

    @property
    def client(self):
        """boto3 client"""
        return self._client

    @client.setter
    def client(self, client):
        """Setter for boto3 client. Used for tests"""
        self._client = client

    @staticmethod
    def _clean_empty(d):
        # empty strings and None are never stored, an absent attribute reads as None
        if not isinstance(d, (dict, list)):
            return d
        if isinstance(d, list):
            return [v for v in (DynamoStorage._clean_empty(v) for v in d) if v != "" and v is not None]
        return {k: v for k, v in ((k, DynamoStorage._clean_empty(v)) for k, v in d.items())
                if v != "" and v is not None}

    @staticmethod
    def _float_to_decimal(d):
        if not isinstance(d, (dict, list)):
            if isinstance(d, float):
                return Decimal('{val:.3f}'.format(val=d))
            return d
        if isinstance(d, list):
            return [v for v in (DynamoStorage._float_to_decimal(v) for v in d)]
        return {k: v for k, v in ((k, DynamoStorage._float_to_decimal(v)) for k, v in d.items())}

    def _prepare(self, obj_type, obj):
        """Assign the private attributes of a new version"""
        # if entity_id not provided, its assumed as new entity
        if 'entity_id' not in obj or not obj['entity_id']:
            obj['entity_id'] = str(uuid.uuid4())

        # if active is not set externally, its assumed as active
        if 'active' not in obj:
            obj['active'] = True

        if 'version' in obj:
            obj['previous_version'] = obj['version']
        else:
            obj['previous_version'] = '00000000-0000-0000-0000-000000000000'

        obj['version'] = str(uuid.uuid4())
        obj['latest'] = True
        obj['changed_by_id'] = self._user_id
        obj['changed_on'] = int(time.time())
        obj['obj_type'] = obj_type

        obj = self._clean_empty(obj)
        obj = self._float_to_decimal(obj)
        return obj

    def save(self, obj_type, obj):
        obj = dict(obj)

        response = self._client.Table(self._table).query(
            KeyConditionExpression=Key('entity_id').eq(obj['entity_id']),
            FilterExpression=Attr('latest').eq(True)
        ) if obj.get('entity_id') else {'Items': []}

        for item in response["Items"]:
            self._client.Table(self._table).update_item(
                Key={
                    'entity_id': item['entity_id'],
                    'version': item["version"]
                },
                UpdateExpression=('SET latest = :latest'),
                ExpressionAttributeValues={
                    ':latest': False
                }
            )

        obj = self._prepare(obj_type, obj)

        self._client.Table(self._table).put_item(
            Item=obj
        )

        obj = json_util.loads(obj)
        return obj

    def transact_save(self, objs):
        """
        Save several documents in a single all-or-nothing write.

        :param objs: list of (obj_type, obj). An obj carrying a `version` must
            still be the latest version of its entity, otherwise the whole
            transaction is cancelled and nothing is written.
        :return: list of saved objects, in input order
        """
        if len(objs) > MAX_TRANSACTION_DOCUMENTS:
            raise BatchTooLarge(len(objs))

        if not objs:
            return []

        actions = []
        saved = []

        for obj_type, obj in objs:
            obj = dict(obj)
            current_version = obj.get('version')

            if current_version:
                actions.append({
                    'Update': {
                        'TableName': self._table,
                        'Key': {
                            'entity_id': obj['entity_id'],
                            'version': current_version
                        },
                        'UpdateExpression': 'SET latest = :retired',
                        'ConditionExpression': 'latest = :current',
                        'ExpressionAttributeValues': {
                            ':retired': False,
                            ':current': True
                        }
                    }
                })

            obj = self._prepare(obj_type, obj)
            actions.append({
                'Put': {
                    'TableName': self._table,
                    'Item': obj
                }
            })
            saved.append(obj)

        try:
            self._client.meta.client.transact_write_items(TransactItems=actions)
        except ClientError as ex:
            if ex.response['Error']['Code'] == 'TransactionCanceledException':
                logger.error('transaction cancelled: {}'.format(ex.response.get('CancellationReasons')))
                raise TransactionFailed(str(ex))
            raise

        return [json_util.loads(obj) for obj in saved]

    def get(self, entity_id):
        @paginate(first_match=True)
        def run_query(entity_id, **kwargs):
            return self._client.Table(self._table).query(
                KeyConditionExpression=Key('entity_id').eq(entity_id),
                FilterExpression=Attr('latest').eq(True) & Attr('active').eq(True),
                **kwargs
            )

        if not entity_id:
            return None

        response = run_query(entity_id)

        if response["Count"] > 0:
            obj = response['Items'][0]
            obj = json_util.loads(obj)

            return obj
        else:
            return None

    @paginate
    def get_items(self, query, **kwargs):
        return self._client.Table(self._table).query(**{**query, **kwargs})

    @paginate
    def get_all_items(self, obj_type, **kwargs):
        return self._client.Table(self._table).query(
            KeyConditionExpression=Key('obj_type').eq(obj_type),
            FilterExpression=Attr('latest').eq(True) & Attr('active').eq(True),
            IndexName='by_obj_type',
            **kwargs
        )

    def __repr__(self):
        return '<DynamoStorage>'
