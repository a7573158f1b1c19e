"""
Pytest fixtures for the jewelry back end.

Every test runs against moto: one versioned DynamoDB table plus an SNS topic
per collection, created the same way the deployment scripts create them.
"""

import importlib.util
import os
import sys

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
SERVICES = os.path.join(ROOT, 'services')

sys.path.append(ROOT)
sys.path.append(SERVICES)
sys.path.append(os.path.join(SERVICES, 'reports'))

STAGE = 'test'
REGION = 'us-east-1'

os.environ['STAGE'] = STAGE
os.environ['REGION'] = REGION
os.environ['AWS_ACCESS_KEY_ID'] = 'testing'
os.environ['AWS_SECRET_ACCESS_KEY'] = 'testing'
os.environ['AWS_SECURITY_TOKEN'] = 'testing'
os.environ['AWS_SESSION_TOKEN'] = 'testing'
os.environ['AWS_DEFAULT_REGION'] = REGION
for local_endpoint in ['DYNAMO_ENDPOINT', 'SNS_ENDPOINT', 'SQS_ENDPOINT', 'ROLLBAR_SECRET']:
    os.environ.pop(local_endpoint, None)

import boto3
import pytest
from moto import mock_aws

from data_common.constants import collections
from data_dynamodb.create_tables import create_table, table_name_for
from data_dynamodb.dynamodb_repository import DynamoRepository

USER_ID = 'user-1'
EMAIL = 'admin@zargar.uz'


@pytest.fixture(scope='function')
def aws():
    """Mocked table and topics for a single test."""
    with mock_aws():
        create_table(boto3.client('dynamodb', region_name=REGION), table_name_for(STAGE))

        sns = boto3.client('sns', region_name=REGION)
        for collection in collections:
            sns.create_topic(Name='{STAGE}-{COLLECTION}'.format(STAGE=STAGE, COLLECTION=collection))

        yield


@pytest.fixture(scope='function')
def repo(aws):
    return DynamoRepository(region_name=REGION, table=table_name_for(STAGE), user_id=USER_ID, email=EMAIL)


@pytest.fixture
def new_item():
    """Build an item body, overriding any field."""
    def build(**overrides):
        item = {
            'model': 'UZ-101',
            'category': 'Uzuk',
            'weight': 10,
            'lom_narxi': 500000,
            'lom_narxi_kirim': 550000,
            'labor_cost': 50000,
            'supplier_name': "Oltin Yo'li",
        }
        item.update(overrides)
        return item

    return build


@pytest.fixture
def load_handler():
    """Import services/<area>/handler.py under a unique module name."""
    def load(area):
        path = os.path.join(SERVICES, area, 'handler.py')
        spec = importlib.util.spec_from_file_location('{AREA}_handler'.format(AREA=area), path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module

    return load
