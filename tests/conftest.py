from unittest.mock import MagicMock

import pytest

from stockpilot.app_container import AppContainer
from stockpilot.config import Config, S3Settings
from stockpilot.main import create_app
from stockpilot.models import UserRole
from stockpilot.repositories import MemoryDocumentStore

BUCKET_PREFIX = 'https://test-bucket.s3.us-east-1.amazonaws.com/'
PASSWORD = 'secreto123'


@pytest.fixture
def config(tmp_path):
    return Config(
        secret_key='test-secret',
        data_dir=str(tmp_path / 'data'),
        enable_profiling=False,
        logs_dir=str(tmp_path / 'logs'),
        s3=S3Settings(
            region='us-east-1',
            access_key_id='AKIATEST',
            secret_access_key='secret',
            bucket_name='test-bucket',
        ),
    )


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def s3_client():
    client = MagicMock()
    client.generate_presigned_url.return_value = 'https://signed.example/put'
    return client


@pytest.fixture
def container(config, store, s3_client):
    return AppContainer(config, store=store, s3_client=s3_client)


@pytest.fixture
def app(container):
    app = create_app(container)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


@pytest.fixture
def category(container):
    return container.catalog_service.create_category({'name': 'Herramientas'})


@pytest.fixture
def supplier(container):
    return container.catalog_service.create_supplier({'name': 'Ferretería Sur', 'contactEmail': 'ventas@sur.cl'})


@pytest.fixture
def make_product(container, category):
    def _make(name='Martillo', quantity=10, price=2.5, threshold=5, **extra):
        data = {
            'name': name,
            'categoryId': category.id,
            'price': price,
            'quantity': quantity,
            'lowStockThreshold': threshold,
        }
        data.update(extra)
        return container.inventory_service.create_product(data)
    return _make


@pytest.fixture
def users(container):
    service = container.user_service
    return {
        'admin': service.create_user('Ana Admin', 'admin@stock.test', PASSWORD, UserRole.ADMIN),
        'bodega': service.create_user('Bruno Bodega', 'bodega@stock.test', PASSWORD, UserRole.BODEGA),
        'seller': service.create_user('Sara Vendedora', 'seller@stock.test', PASSWORD, UserRole.SELLER),
    }


def login(client, email, password=PASSWORD):
    """Inicia sesión por la API y retorna el token CSRF vigente."""
    token = client.get('/api/session').get_json()['csrf_token']
    r = client.post('/api/login', json={'email': email, 'password': password},
                    headers={'X-CSRF-Token': token})
    assert r.status_code == 200, r.get_json()
    return r.get_json()['csrf_token']
