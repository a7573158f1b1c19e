import os

from jose import jwt

AUTH0_CLIENT_ID = os.getenv('AUTH0_CLIENT_ID')


def jwt_decode(auth_token, public_key):
    public_key = format_public_key(public_key)
    payload = jwt.decode(auth_token, public_key, algorithms=['RS256'],
                         audience=AUTH0_CLIENT_ID)
    return payload


def format_public_key(public_key):
    public_key = public_key.replace('\n', ' ').replace('\r', '')
    public_key = public_key.replace('-----BEGIN CERTIFICATE-----',
                                    '-----BEGIN CERTIFICATE-----\n')
    public_key = public_key.replace('-----END CERTIFICATE-----',
                                    '\n-----END CERTIFICATE-----')
    return public_key
