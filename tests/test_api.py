import pytest

from conftest import login


def post(client, url, token, json=None):
    return client.post(url, json=json or {}, headers={'X-CSRF-Token': token})


def test_session_without_login(client):
    data = client.get('/api/session').get_json()
    assert data['authenticated'] is False
    assert data['csrf_token']


def test_login_returns_menu_for_role(client, users):
    token = client.get('/api/session').get_json()['csrf_token']
    r = client.post('/api/login', json={'email': 'bodega@stock.test', 'password': 'secreto123'},
                    headers={'X-CSRF-Token': token})

    data = r.get_json()
    assert r.status_code == 200
    assert data['user']['role'] == 'bodega'
    assert [i['href'] for i in data['nav']] == [
        '/dashboard', '/products', '/categories', '/suppliers', '/goods-receipts',
    ]
    assert data['csrf_token'] != token


def test_login_wrong_password(client, users):
    token = client.get('/api/session').get_json()['csrf_token']
    r = client.post('/api/login', json={'email': 'admin@stock.test', 'password': 'nop'},
                    headers={'X-CSRF-Token': token})
    assert r.status_code == 401
    assert r.get_json() == {'ok': False, 'error': 'Correo o contraseña incorrectos'}


def test_login_requires_csrf(client, users):
    client.get('/api/session')
    r = client.post('/api/login', json={'email': 'admin@stock.test', 'password': 'secreto123'})
    assert r.status_code == 403


def test_csrf_token_in_body_is_accepted(client, users):
    token = client.get('/api/session').get_json()['csrf_token']
    r = client.post('/api/login', json={
        'email': 'admin@stock.test', 'password': 'secreto123', 'csrf_token': token,
    })
    assert r.status_code == 200


def test_requires_session(client):
    assert client.get('/api/products').status_code == 401
    assert client.get('/api/users').status_code == 401
    assert client.get('/api/nav').get_json()['items'] == []


@pytest.mark.parametrize('email, url, status', [
    ('seller@stock.test', '/api/users', 403),
    ('seller@stock.test', '/api/suppliers', 403),
    ('seller@stock.test', '/api/goods-receipts', 403),
    ('seller@stock.test', '/api/reports/sales?start=2024-01-01&end=2024-01-31', 403),
    ('bodega@stock.test', '/api/carrito', 403),
    ('bodega@stock.test', '/api/users', 403),
    ('bodega@stock.test', '/api/suppliers', 200),
    ('seller@stock.test', '/api/carrito', 200),
    ('seller@stock.test', '/api/products', 200),
    ('admin@stock.test', '/api/users', 200),
])
def test_role_gates(client, users, email, url, status):
    login(client, email)
    assert client.get(url).status_code == status


def test_access_check(client, users):
    login(client, 'seller@stock.test')
    assert client.get('/api/access?path=/point-of-sale').get_json()['allowed'] is True
    assert client.get('/api/access?path=/products').get_json()['allowed'] is False


def test_mutations_require_csrf(client, users, category):
    login(client, 'admin@stock.test')
    r = client.post('/api/products', json={'name': 'X', 'categoryId': category.id})
    assert r.status_code == 403
    assert r.get_json()['error'] == 'CSRF token inválido'


def test_product_crud(client, users, category, s3_client):
    token = login(client, 'bodega@stock.test')

    r = post(client, '/api/products', token, {'name': 'Taladro', 'categoryId': category.id, 'quantity': 2})
    assert r.status_code == 201
    product = r.get_json()['product']
    assert product['lowStock'] is True

    r = client.put(f"/api/products/{product['id']}", json={'quantity': 20},
                   headers={'X-CSRF-Token': token})
    assert r.get_json()['product']['quantity'] == 20
    assert client.get('/api/low-stock').get_json()['products'] == []

    r = client.delete(f"/api/products/{product['id']}", headers={'X-CSRF-Token': token})
    assert r.status_code == 200
    assert client.get(f"/api/products/{product['id']}").status_code == 404


def test_validation_error_is_json(client, users):
    token = login(client, 'admin@stock.test')
    r = post(client, '/api/products', token, {'name': ''})
    assert r.status_code == 400
    assert r.get_json()['ok'] is False


def test_s3_upload_url(client, users):
    token = login(client, 'admin@stock.test')
    r = post(client, '/api/s3-upload', token, {'filename': 'foto.png', 'contentType': 'image/png'})
    assert r.status_code == 200
    assert r.get_json()['publicUrl'].endswith('/products/foto.png')

    assert post(client, '/api/s3-upload', token, {'filename': 'foto.png'}).status_code == 400


def test_goods_receipt_endpoint(client, users, make_product, supplier):
    product = make_product(quantity=1)
    token = login(client, 'bodega@stock.test')

    r = post(client, '/api/goods-receipts', token, {
        'productId': product.id, 'quantityReceived': 9, 'supplierId': supplier.id,
    })
    assert r.status_code == 201
    assert r.get_json()['receipt']['userName'] == 'Bruno Bodega'
    assert client.get(f'/api/products/{product.id}').get_json()['product']['quantity'] == 10

    r = post(client, '/api/goods-receipts', token, {'productId': 'ghost', 'quantityReceived': 1})
    assert r.status_code == 404

    r = post(client, '/api/goods-receipts', token, {'productId': product.id, 'quantityReceived': 2.9})
    assert r.status_code == 400
    assert client.get(f'/api/products/{product.id}').get_json()['product']['quantity'] == 10


def test_product_receipts_endpoint(client, users, make_product):
    hammer = make_product('Martillo', quantity=0)
    saw = make_product('Serrucho', quantity=0)
    token = login(client, 'bodega@stock.test')
    post(client, '/api/goods-receipts', token,
         {'productId': hammer.id, 'quantityReceived': 2, 'receiptDate': '2024-01-10'})
    post(client, '/api/goods-receipts', token,
         {'productId': hammer.id, 'quantityReceived': 5, 'receiptDate': '2024-02-10'})
    post(client, '/api/goods-receipts', token, {'productId': saw.id, 'quantityReceived': 1})

    r = client.get(f'/api/products/{hammer.id}/receipts')
    assert r.status_code == 200
    assert [rc['quantityReceived'] for rc in r.get_json()['receipts']] == [5, 2]
    assert client.get('/api/products/ghost/receipts').status_code == 404

    login(client, 'seller@stock.test')
    assert client.get(f'/api/products/{hammer.id}/receipts').status_code == 403


def test_point_of_sale_flow(client, container, users, make_product):
    hammer = make_product('Martillo', quantity=4, price=2.5)
    token = login(client, 'seller@stock.test')

    r = post(client, '/api/carrito/agregar', token, {'productId': hammer.id, 'quantity': 5})
    assert r.status_code == 409
    assert r.get_json()['disponible'] == 4

    r = post(client, '/api/carrito/agregar', token, {'productId': hammer.id, 'quantity': 3})
    assert r.get_json()['carrito']['total_monto'] == 7.5

    r = post(client, '/api/carrito/confirmar', token)
    assert r.status_code == 201
    assert r.get_json()['venta']['userName'] == 'Sara Vendedora'
    assert container.product_repo.get(hammer.id).quantity == 1
    assert client.get('/api/carrito').get_json()['items'] == []

    r = post(client, '/api/carrito/confirmar', token)
    assert r.status_code == 400
    assert r.get_json()['error'] == 'No se puede registrar una venta vacía. El carrito está vacío.'


def test_logout_clears_cart(client, users, make_product):
    product = make_product()
    token = login(client, 'seller@stock.test')
    post(client, '/api/carrito/agregar', token, {'productId': product.id, 'quantity': 1})

    assert post(client, '/api/logout', token).status_code == 200
    assert client.get('/api/carrito').status_code == 401


def test_users_admin(client, users):
    token = login(client, 'admin@stock.test')

    r = post(client, '/api/users', token, {
        'name': 'Nuevo', 'email': 'nuevo@stock.test', 'password': 'secreto123', 'role': 'bodega',
    })
    assert r.status_code == 201
    new_id = r.get_json()['user']['id']

    r = client.delete(f"/api/users/{users['admin'].id}", headers={'X-CSRF-Token': token})
    assert r.status_code == 403

    r = client.delete(f'/api/users/{new_id}', headers={'X-CSRF-Token': token})
    assert r.status_code == 200
    assert len(client.get('/api/users').get_json()['users']) == 3


def test_sales_report_endpoints(client, users, store):
    store.set('sales', 's1', {
        'items': [{'productId': 'p1', 'productName': 'Martillo', 'quantity': 2, 'unitPrice': 2.5, 'subtotal': 5.0}],
        'grandTotal': 5.0,
        'saleDate': '2024-05-02T10:00:00.000000+00:00',
    })
    login(client, 'admin@stock.test')

    summary = client.get('/api/reports/sales?start=2024-05-01&end=2024-05-31').get_json()
    assert summary['totalRevenue'] == 5.0

    r = client.get('/api/reports/sales.pdf?start=2024-05-01&end=2024-05-31')
    assert r.status_code == 200
    assert r.mimetype == 'application/pdf'
    assert r.data.startswith(b'%PDF')

    r = client.get('/api/reports/sales.csv?start=2024-05-01&end=2024-05-31')
    assert r.mimetype == 'text/csv'
    assert 'Martillo' in r.get_data(as_text=True)

    assert client.get('/api/reports/sales?start=2024-05-01').status_code == 400


def test_security_headers(client):
    r = client.get('/api/session')
    assert r.headers['X-Frame-Options'] == 'DENY'
    assert r.headers['X-Content-Type-Options'] == 'nosniff'


def test_unknown_route_is_json(client):
    r = client.get('/api/nope')
    assert r.status_code == 404
    assert r.get_json()['ok'] is False


def test_recent_sales_endpoints(client, container, users, make_product):
    hammer = make_product('Martillo', quantity=10, price=2.5)
    token = login(client, 'seller@stock.test')
    post(client, '/api/carrito/agregar', token, {'productId': hammer.id, 'quantity': 2})
    sale_id = post(client, '/api/carrito/confirmar', token).get_json()['venta']['id']
    post(client, '/api/carrito/agregar', token, {'productId': hammer.id, 'quantity': 1})
    post(client, '/api/carrito/confirmar', token)

    assert client.get('/api/sales').status_code == 403
    assert client.get(f'/api/sales/{sale_id}').status_code == 403

    login(client, 'admin@stock.test')
    sales = client.get('/api/sales').get_json()['sales']
    assert len(sales) == 2
    assert {s['id'] for s in sales} == {s.id for s in container.sales_repo.list()}
    assert len(client.get('/api/sales?limit=1').get_json()['sales']) == 1
    assert client.get('/api/sales?limit=0').status_code == 400

    sale = client.get(f'/api/sales/{sale_id}').get_json()['sale']
    assert sale['grandTotal'] == 5.0
    assert sale['items'][0]['productName'] == 'Martillo'
    assert sale['userName'] == 'Sara Vendedora'
    assert client.get('/api/sales/ghost').status_code == 404


def test_json_body_must_be_an_object(client, users, category):
    token = login(client, 'admin@stock.test')

    r = client.post('/api/products', json=[{'name': 'X', 'categoryId': category.id}],
                    headers={'X-CSRF-Token': token})
    assert r.status_code == 400
    assert r.get_json() == {'ok': False, 'error': 'El cuerpo de la petición debe ser un objeto JSON'}

    r = client.post('/api/carrito/agregar', json=['p1', 1], headers={'X-CSRF-Token': token})
    assert r.status_code == 400


def test_non_text_values_are_client_errors(client, users, category):
    token = login(client, 'admin@stock.test')

    r = post(client, '/api/products', token, {'name': 123, 'categoryId': category.id})
    assert r.status_code == 201
    assert r.get_json()['product']['name'] == '123'

    assert post(client, '/api/products', token, {'name': ['x'], 'categoryId': category.id}).status_code == 400
    assert post(client, '/api/categories', token, {'name': {'es': 'Pinturas'}}).status_code == 400
    assert post(client, '/api/s3-upload', token,
                {'filename': 'foto.png', 'contentType': ['image/png']}).status_code == 400

    token = client.get('/api/session').get_json()['csrf_token']
    r = client.post('/api/login', json={'email': ['admin@stock.test'], 'password': 'secreto123'},
                    headers={'X-CSRF-Token': token})
    assert r.status_code == 400
    r = client.post('/api/login', json={'email': 'admin@stock.test', 'password': 12345678},
                    headers={'X-CSRF-Token': token})
    assert r.status_code == 401
