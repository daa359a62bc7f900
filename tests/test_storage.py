from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from conftest import BUCKET_PREFIX
from stockpilot.config import S3Settings
from stockpilot.errors import ExternalServiceError, ValidationError
from stockpilot.services import ImageStorageService


@pytest.fixture
def storage(config, s3_client):
    return ImageStorageService(config.s3, client=s3_client)


def test_create_upload_url(storage, s3_client):
    urls = storage.create_upload_url('1700000000-foto producto.png', 'image/png')

    assert urls == {
        'uploadUrl': 'https://signed.example/put',
        'publicUrl': BUCKET_PREFIX + 'products/1700000000-foto_producto.png',
    }
    s3_client.generate_presigned_url.assert_called_once_with(
        'put_object',
        Params={
            'Bucket': 'test-bucket',
            'Key': 'products/1700000000-foto_producto.png',
            'ContentType': 'image/png',
            'ACL': 'public-read',
        },
        ExpiresIn=300,
    )


@pytest.mark.parametrize('filename, content_type', [
    ('', 'image/png'),
    ('foto.png', ''),
    ('script.sh', 'application/x-sh'),
    ('../..', 'image/png'),
    (['foto.png'], 'image/png'),
    ('foto.png', ['image/png']),
])
def test_create_upload_url_rejects_bad_input(storage, filename, content_type):
    with pytest.raises(ValidationError):
        storage.create_upload_url(filename, content_type)


def test_create_upload_url_without_bucket():
    storage = ImageStorageService(S3Settings(), client=MagicMock())
    with pytest.raises(ExternalServiceError):
        storage.create_upload_url('foto.png', 'image/png')


def test_signing_failure_is_external_error(storage, s3_client):
    s3_client.generate_presigned_url.side_effect = ClientError(
        {'Error': {'Code': 'InvalidAccessKeyId', 'Message': 'bad key'}}, 'PutObject')
    with pytest.raises(ExternalServiceError):
        storage.create_upload_url('foto.png', 'image/png')


def test_key_from_url(storage):
    assert storage.key_from_url(BUCKET_PREFIX + 'products/a.png') == 'products/a.png'
    assert storage.key_from_url('https://otro.example/products/a.png') is None
    assert storage.key_from_url(BUCKET_PREFIX) is None
    assert storage.key_from_url('') is None


def test_delete_image(storage, s3_client):
    assert storage.delete_image(BUCKET_PREFIX + 'products/a.png') is True
    s3_client.delete_object.assert_called_once_with(Bucket='test-bucket', Key='products/a.png')


def test_delete_foreign_url_is_skipped(storage, s3_client):
    assert storage.delete_image('https://cdn.example/a.png') is False
    s3_client.delete_object.assert_not_called()


def test_delete_failure_returns_false(storage, s3_client):
    s3_client.delete_object.side_effect = ClientError(
        {'Error': {'Code': 'NoSuchBucket', 'Message': 'gone'}}, 'DeleteObject')
    assert storage.delete_image(BUCKET_PREFIX + 'products/a.png') is False
