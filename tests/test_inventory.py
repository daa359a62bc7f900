import pytest
from botocore.exceptions import ClientError

from conftest import BUCKET_PREFIX
from stockpilot.errors import NotFoundError, ValidationError


def test_create_product_applies_defaults(container, category):
    product = container.inventory_service.create_product({'name': '  Alicate ', 'categoryId': category.id})

    assert product.id
    assert product.name == 'Alicate'
    assert product.quantity == 0
    assert product.price == 0.0
    assert product.low_stock_threshold == 5
    assert product.supplier_id == ''
    assert product.created_at == product.updated_at

    stored = container.store.get('products', product.id)
    assert stored['lowStockThreshold'] == 5
    assert stored['imageUrl'] == ''


@pytest.mark.parametrize('data', [
    {'name': '', 'categoryId': 'x'},
    {'name': 'Sin categoría'},
    {'name': 'Categoría falsa', 'categoryId': 'no-existe'},
])
def test_create_product_requires_name_and_category(container, data):
    with pytest.raises(ValidationError):
        container.inventory_service.create_product(data)


@pytest.mark.parametrize('field, value', [
    ('price', -1),
    ('price', 'gratis'),
    ('quantity', -5),
    ('quantity', 'diez'),
    ('quantity', 2.5),
    ('quantity', '3.7'),
    ('lowStockThreshold', -1),
    ('lowStockThreshold', 1.5),
    ('price', True),
    ('price', 'nan'),
])
def test_create_product_rejects_bad_numbers(container, category, field, value):
    with pytest.raises(ValidationError):
        container.inventory_service.create_product({'name': 'X', 'categoryId': category.id, field: value})


def test_unknown_fields_are_ignored(make_product, container):
    product = make_product(role='admin', id='forced')
    stored = container.store.get('products', product.id)
    assert 'role' not in stored
    assert product.id != 'forced'


def test_update_product_clears_supplier_when_absent(container, make_product, supplier):
    product = make_product(supplierId=supplier.id)
    assert product.supplier_id == supplier.id

    updated = container.inventory_service.update_product(product.id, {'name': 'Martillo grande', 'price': '3.456'})

    assert updated.name == 'Martillo grande'
    assert updated.price == 3.46
    assert updated.supplier_id == ''
    assert updated.updated_at >= product.updated_at


def test_update_missing_product(container):
    with pytest.raises(NotFoundError):
        container.inventory_service.update_product('ghost', {'name': 'X'})


def test_update_rejects_empty_name(container, make_product):
    product = make_product()
    with pytest.raises(ValidationError):
        container.inventory_service.update_product(product.id, {'name': '  '})


def test_list_products_filters_and_sorts(container, make_product, supplier, category):
    make_product('sierra')
    make_product('Alicate', supplierId=supplier.id)
    make_product('Martillo de goma')

    service = container.inventory_service
    assert [p.name for p in service.list_products()] == ['Alicate', 'Martillo de goma', 'sierra']
    assert [p.name for p in service.list_products(supplier_id=supplier.id)] == ['Alicate']
    assert [p.name for p in service.list_products(search='MARTILLO')] == ['Martillo de goma']
    assert len(service.list_products(category_id=category.id)) == 3
    assert [p.name for p in service.list_products(category_id=category.id, search='ali')] == ['Alicate']
    assert service.list_products(category_id=category.id, supplier_id='otro') == []


def test_delete_product_removes_image(container, make_product, s3_client):
    product = make_product(imageUrl=BUCKET_PREFIX + 'products/x.png')

    container.inventory_service.delete_product(product.id)

    s3_client.delete_object.assert_called_once_with(Bucket='test-bucket', Key='products/x.png')
    assert container.inventory_service.get_product(product.id) is None


def test_delete_product_without_image_skips_s3(container, make_product, s3_client):
    product = make_product()
    container.inventory_service.delete_product(product.id)
    s3_client.delete_object.assert_not_called()


def test_s3_failure_still_deletes_product(container, make_product, s3_client):
    s3_client.delete_object.side_effect = ClientError(
        {'Error': {'Code': 'AccessDenied', 'Message': 'denied'}}, 'DeleteObject')
    product = make_product(imageUrl=BUCKET_PREFIX + 'products/x.png')

    container.inventory_service.delete_product(product.id)

    assert container.inventory_service.get_product(product.id) is None


def test_delete_missing_product(container):
    with pytest.raises(NotFoundError):
        container.inventory_service.delete_product('ghost')


def test_low_stock_products(container, make_product):
    make_product('A', quantity=5, threshold=5)
    make_product('B', quantity=4, threshold=5)
    make_product('C', quantity=0, threshold=2)
    make_product('D', quantity=100, threshold=10)

    assert [p.name for p in container.inventory_service.get_low_stock_products()] == ['C', 'B']


def test_dashboard_summary(container, make_product, supplier, users):
    make_product('A', quantity=1)
    make_product('B', quantity=50)

    assert container.inventory_service.get_dashboard_summary() == {
        'totalUsers': 3,
        'totalProducts': 2,
        'lowStockItems': 1,
        'totalCategories': 1,
        'totalSuppliers': 1,
    }


def test_catalog_crud(container):
    catalog = container.catalog_service
    tools = catalog.create_category({'name': 'Pinturas', 'description': 'Látex'})
    catalog.create_category({'name': 'Adhesivos'})

    assert [c.name for c in catalog.list_categories()] == ['Adhesivos', 'Pinturas']
    assert catalog.update_category(tools.id, {'description': 'Esmaltes'}).description == 'Esmaltes'

    catalog.delete_category(tools.id)
    with pytest.raises(NotFoundError):
        catalog.get_category(tools.id)
    with pytest.raises(NotFoundError):
        catalog.delete_category(tools.id)
    with pytest.raises(ValidationError):
        catalog.create_category({'name': ' '})


def test_supplier_crud(container):
    catalog = container.catalog_service
    supplier = catalog.create_supplier({'name': 'Acme', 'contactPhone': ' 555-1234 '})
    assert supplier.contact_phone == '555-1234'

    updated = catalog.update_supplier(supplier.id, {'contactName': 'Wile E.'})
    assert updated.contact_name == 'Wile E.'
    assert updated.name == 'Acme'

    with pytest.raises(ValidationError):
        catalog.update_supplier(supplier.id, {'name': ''})
    catalog.delete_supplier(supplier.id)
    assert catalog.list_suppliers() == []


def test_numeric_text_fields_are_coerced(container, category):
    product = container.inventory_service.create_product(
        {'name': 1234, 'categoryId': category.id, 'quantity': '7', 'description': 5.5})
    assert product.name == '1234'
    assert product.description == '5.5'
    assert product.quantity == 7

    with pytest.raises(ValidationError):
        container.inventory_service.update_product(product.id, {'name': {'es': 'Taladro'}})
