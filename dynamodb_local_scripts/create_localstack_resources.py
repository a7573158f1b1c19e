import boto3
import os
import sys
import json

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from data_common.constants import collections
from data_dynamodb.create_tables import create_table, table_name_for, wait_till_creation


def create_sns_topic(client, topic):
    client.create_topic(
        Name=topic,
    )


def create_local_table(client, table_name):
    if table_name in client.list_tables()['TableNames']:
        print('Table {TABLE} already exists'.format(TABLE=table_name))
        return

    print('Creating table: ', table_name)
    create_table(client, table_name)
    wait_till_creation(client, table_name, attempts=10, delay=1)


if __name__ == "__main__":
    stage = os.environ['STAGE']

    config_filename = 'config.' + stage + '.json'
    parent_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    config_filepath = os.path.join(parent_dir, config_filename)

    with open(config_filepath, 'r') as fp:
        config = json.load(fp)

    region = config['REGION']

    sns = boto3.client('sns', region_name=region, endpoint_url=os.environ['SNS_ENDPOINT'])
    dynamodb = boto3.client('dynamodb', region_name=region, endpoint_url=os.environ['DYNAMO_ENDPOINT'])

    # one topic per collection, subscription queues are created on demand
    for obj_name in collections:
        topic = stage + '-' + obj_name
        create_sns_topic(sns, topic)

    create_local_table(dynamodb, table_name_for(stage))
