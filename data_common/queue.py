import boto3
import json
import os
import logging

logger = logging.getLogger(__name__)


class SQSManager:
    def __init__(self, region_name, user_id=None, email=''):
        # SQSManager is a co-operating class with BaseRepository and their init method signature and
        # initialized attributes should match this class will be inherited
        # along with any repository abstract class in the methods implementation

        self._region_name = region_name
        self._user_id = user_id
        self._email = email
        self._stage = os.environ["STAGE"]
        # Do not add more attributes, this initializer may never be called
        # If more attributes are required, modify SQSManager class as well to match with this signature

    def _sqs_client(self):
        if 'SQS_ENDPOINT' in os.environ:
            return boto3.client('sqs', region_name=self._region_name, endpoint_url=os.environ['SQS_ENDPOINT'])
        return boto3.client('sqs', region_name=self._region_name)

    def sqs_create_queue(self, queue_name, topic_arn):
        """Create a queue the given SNS topic is allowed to deliver to"""
        sqs = self._sqs_client()

        queue_url = sqs.create_queue(QueueName=queue_name)['QueueUrl']
        queue_arn = sqs.get_queue_attributes(
            QueueUrl=queue_url,
            AttributeNames=['QueueArn']
        )['Attributes']['QueueArn']

        policy = {
            'Version': '2012-10-17',
            'Statement': [{
                'Effect': 'Allow',
                'Principal': {'Service': 'sns.amazonaws.com'},
                'Action': 'sqs:SendMessage',
                'Resource': queue_arn,
                'Condition': {'ArnEquals': {'aws:SourceArn': topic_arn}}
            }]
        }
        sqs.set_queue_attributes(QueueUrl=queue_url, Attributes={'Policy': json.dumps(policy)})

        return queue_url, queue_arn

    def sqs_receive(self, queue_url, max_messages=10, wait_seconds=0):
        sqs = self._sqs_client()

        response = sqs.receive_message(
            QueueUrl=queue_url,
            MaxNumberOfMessages=max_messages,
            WaitTimeSeconds=wait_seconds
        )

        records = []
        for message in response.get('Messages', []):
            records.append(json.loads(message['Body']))
            sqs.delete_message(QueueUrl=queue_url, ReceiptHandle=message['ReceiptHandle'])

        return records

    def sqs_delete_queue(self, queue_url):
        self._sqs_client().delete_queue(QueueUrl=queue_url)


class Subscription:
    """Handle on a live feed of one collection's changes"""

    def __init__(self, queues, sns, subscription_arn, queue_url):
        self._queues = queues
        self._sns = sns
        self.subscription_arn = subscription_arn
        self.queue_url = queue_url
        self.active = True

    def poll(self, max_messages=10, wait_seconds=0):
        if not self.active:
            return []
        return self._queues.sqs_receive(self.queue_url, max_messages, wait_seconds)

    def unsubscribe(self):
        if not self.active:
            return

        self._sns.unsubscribe(SubscriptionArn=self.subscription_arn)
        self._queues.sqs_delete_queue(self.queue_url)
        self.active = False
        logger.debug('unsubscribed {}'.format(self.subscription_arn))
