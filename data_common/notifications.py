import boto3
import json
import os

from data_common.queue import SQSManager, Subscription


class SnsNotifier:
    def __init__(self, region_name, user_id=None, email=''):
        # SnsNotifier is a co-operating class with BaseRepository and their init method signature should match
        # this class will be inherited along with any repository abstract class in the methods implementation
        # For e.g, in items.py the class signature is DynamoItemRepository(ItemRepository, SnsNotifier)

        self._region_name = region_name
        self._stage = os.environ["STAGE"]
        self._user_id = user_id
        self._email = email

    def _sns_client(self):
        if 'SNS_ENDPOINT' in os.environ:
            # local development
            return boto3.client('sns', region_name=self._region_name, endpoint_url=os.environ['SNS_ENDPOINT'])
        return boto3.client('sns', region_name=self._region_name)

    def _topic_arn(self, object_name):
        if 'SNS_ENDPOINT' in os.environ:
            account_id = '000000000000'
        else:
            account_id = boto3.client('sts', region_name=self._region_name).get_caller_identity().get('Account')

        topic = "{STAGE}-{OBJECT_NAME}".format(STAGE=self._stage,
                                               OBJECT_NAME=object_name)

        return 'arn:aws:sns:{REGION}:{ACCOUNT_ID}:{TOPIC}'.format(REGION=self._region_name,
                                                                   ACCOUNT_ID=account_id,
                                                                   TOPIC=topic)

    def sns_publish(self, object_name, obj):
        sns = self._sns_client()

        # Publish a simple message to the specified SNS topic
        response = sns.publish(
            TopicArn=self._topic_arn(object_name),
            Message=json.dumps(obj, default=str),
        )

        return response

    def sns_subscribe(self, object_name, subscriber):
        """
        Start receiving every record written to a collection.

        A queue named `{STAGE}-{object_name}-{subscriber}` is created and
        subscribed to the collection topic. The returned Subscription is polled
        for changes and must be unsubscribed when the consumer goes away.
        """
        sns = self._sns_client()
        topic_arn = self._topic_arn(object_name)

        queues = SQSManager(self._region_name, self._user_id, self._email)
        queue_name = "{STAGE}-{OBJECT_NAME}-{SUBSCRIBER}".format(STAGE=self._stage,
                                                                OBJECT_NAME=object_name,
                                                                SUBSCRIBER=subscriber)
        queue_url, queue_arn = queues.sqs_create_queue(queue_name, topic_arn)

        response = sns.subscribe(
            TopicArn=topic_arn,
            Protocol='sqs',
            Endpoint=queue_arn,
            Attributes={'RawMessageDelivery': 'true'},
            ReturnSubscriptionArn=True
        )

        return Subscription(queues, sns, response['SubscriptionArn'], queue_url)
