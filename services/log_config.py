import logging
import os
import sys

# logging_api lives at the project root
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from logging_api import LoggerWithThirdParty

logger = LoggerWithThirdParty('zargar', level=os.getenv('LOG_LEVEL', 'INFO').upper())

_handler = logging.StreamHandler()
_handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(module)s: %(message)s'))
logger.addHandler(_handler)
