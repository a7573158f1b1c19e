import time

import boto3
from botocore.exceptions import ClientError

TABLE_NAME = 'zargar-{STAGE}'

# every index is projected fully, hash key is a string attribute of the document
GLOBAL_INDEXES = {
    'by_obj_type': ('obj_type', None),
    'by_branch_id_and_obj_type': ('branch_id', 'obj_type'),
    'by_supplier_name_and_obj_type': ('supplier_name', 'obj_type'),
    'by_from_branch_id_and_obj_type': ('from_branch_id', 'obj_type'),
    'by_to_branch_id_and_obj_type': ('to_branch_id', 'obj_type'),
    'by_confirmation_code_and_obj_type': ('confirmation_code', 'obj_type'),
}


def table_name_for(stage):
    return TABLE_NAME.format(STAGE=stage)


def create_table(dynamo_client, table_name):
    attributes = {'entity_id', 'version'}
    indexes = []

    for index_name, (hash_key, range_key) in GLOBAL_INDEXES.items():
        key_schema = [
            {
                'AttributeName': hash_key,
                'KeyType': 'HASH'
            }
        ]
        attributes.add(hash_key)

        if range_key:
            key_schema.append({
                'AttributeName': range_key,
                'KeyType': 'RANGE'
            })
            attributes.add(range_key)

        indexes.append({
            'IndexName': index_name,
            'KeySchema': key_schema,
            'Projection': {
                'ProjectionType': 'ALL'
            }
        })

    resp = dynamo_client.create_table(
        AttributeDefinitions=[
            {
                'AttributeName': attribute,
                'AttributeType': 'S'
            } for attribute in sorted(attributes)
        ],
        TableName=table_name,
        KeySchema=[
            {
                'AttributeName': 'entity_id',
                'KeyType': 'HASH'
            },
            {
                'AttributeName': 'version',
                'KeyType': 'RANGE'
            },
        ],
        GlobalSecondaryIndexes=indexes,
        BillingMode='PAY_PER_REQUEST'
    )
    return resp


def wait_till_creation(dynamo_client, table_name, attempts=90, delay=10):
    for _ in range(attempts):
        try:
            resp = dynamo_client.describe_table(
                TableName=table_name,
            )
            if resp['Table']['TableStatus'] == 'ACTIVE':
                return
        except ClientError as ex:
            if ex.response['Error']['Code'] != 'ResourceNotFoundException':
                raise ex

        time.sleep(delay)


if __name__ == '__main__':
    import sys
    import json
    import os

    args = sys.argv
    if len(args) >= 2:
        stage = args[1]

        config_filename = 'config.' + stage + '.json'
        parent_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        config_filepath = os.path.join(parent_dir, config_filename)

        with open(config_filepath, 'r') as fp:
            config = json.load(fp)

        region = config['REGION']

        try:
            endpoint = args[2]
            client = boto3.client('dynamodb', region_name=region, endpoint_url=endpoint)
        except IndexError:
            client = boto3.client('dynamodb', region_name=region)

        tables = client.list_tables()['TableNames']
        table_name = table_name_for(stage)

        print('Running dynamodb tables creation script '
              'in Region: {REGION}'.format(REGION=region))

        if table_name not in tables:
            print('Creating table: ', table_name)
            create_table(client, table_name)
            wait_till_creation(client, table_name)
        else:
            print('Table {TABLE} already exists'.format(TABLE=table_name))
    else:
        print("""FAILED: Running dynamodb tables creation script.
                 STAGE needs to be passed as a positional argument
                 while running the script""")
