import pytest

from stockpilot.errors import EmptyCartError, InsufficientStockError, NotFoundError, ValidationError
from stockpilot.models import Cart, CartItem


def cart_of(*lines):
    return Cart([CartItem(p.id, p.name, qty, p.price) for p, qty in lines])


def stock(container, product):
    return container.product_repo.get(product.id).quantity


def test_finalize_sale_writes_sale_and_decrements_stock(container, make_product, users):
    hammer = make_product('Martillo', quantity=10, price=2.5)
    nails = make_product('Clavos', quantity=100, price=0.1)

    sale = container.sales_service.finalize_sale(cart_of((hammer, 3), (nails, 25)), users['seller'])

    assert sale.id
    assert sale.grand_total == 10.0
    assert sale.user_id == users['seller'].id
    assert sale.user_name == 'Sara Vendedora'
    assert stock(container, hammer) == 7
    assert stock(container, nails) == 75

    stored = container.sales_service.get_sale(sale.id)
    assert [i.quantity for i in stored.items] == [3, 25]
    assert stored.sale_date == sale.sale_date


def test_empty_cart_is_rejected(container):
    with pytest.raises(EmptyCartError):
        container.sales_service.finalize_sale(Cart())
    assert container.sales_repo.count() == 0


def test_one_short_item_writes_nothing(container, make_product):
    hammer = make_product('Martillo', quantity=10)
    saw = make_product('Sierra', quantity=1)

    with pytest.raises(InsufficientStockError) as exc:
        container.sales_service.finalize_sale(cart_of((hammer, 2), (saw, 4)))

    assert exc.value.items == [{
        'productId': saw.id, 'productName': 'Sierra', 'requested': 4, 'available': 1,
    }]
    assert 'Sierra' in exc.value.message
    assert container.sales_repo.count() == 0
    assert stock(container, hammer) == 10
    assert stock(container, saw) == 1


def test_every_short_item_is_reported(container, make_product):
    a = make_product('A', quantity=1)
    b = make_product('B', quantity=0)

    with pytest.raises(InsufficientStockError) as exc:
        container.sales_service.finalize_sale(cart_of((a, 2), (b, 1)))

    assert [i['productName'] for i in exc.value.items] == ['A', 'B']


def test_missing_product_aborts_sale(container, make_product):
    hammer = make_product('Martillo', quantity=10)
    ghost = CartItem('no-existe', 'Fantasma', 1, 1.0)

    with pytest.raises(NotFoundError):
        container.sales_service.finalize_sale(Cart([CartItem(hammer.id, hammer.name, 1, 2.5), ghost]))

    assert container.sales_repo.count() == 0
    assert stock(container, hammer) == 10


def test_duplicate_lines_are_checked_together(container, make_product):
    hammer = make_product('Martillo', quantity=5)
    cart = cart_of((hammer, 3), (hammer, 3))

    with pytest.raises(InsufficientStockError) as exc:
        container.sales_service.finalize_sale(cart)
    assert exc.value.items[0]['requested'] == 6

    sale = container.sales_service.finalize_sale(cart_of((hammer, 2), (hammer, 3)))
    assert len(sale.items) == 2
    assert stock(container, hammer) == 0


def test_cart_is_not_modified_by_finalize(container, make_product):
    hammer = make_product('Martillo', quantity=5)
    cart = cart_of((hammer, 1))
    container.sales_service.finalize_sale(cart)
    assert len(cart) == 1


def seed_sale(store, sale_id, sale_date, total=1.0):
    store.set('sales', sale_id, {
        'items': [{'productId': 'p1', 'productName': 'Martillo', 'quantity': 1,
                   'unitPrice': total, 'subtotal': total}],
        'grandTotal': total,
        'saleDate': sale_date,
    })


def test_date_range_is_inclusive_and_newest_first(container, store):
    seed_sale(store, 'before', '2024-04-30T23:59:59.999999+00:00')
    seed_sale(store, 'first', '2024-05-01T00:00:00.000000+00:00')
    seed_sale(store, 'middle', '2024-05-02T12:30:00.000000+00:00')
    seed_sale(store, 'last', '2024-05-03T23:59:59.999999+00:00')
    seed_sale(store, 'after', '2024-05-04T00:00:00.000000+00:00')

    sales = container.sales_service.get_sales_by_date_range('2024-05-01', '2024-05-03')

    assert [s.id for s in sales] == ['last', 'middle', 'first']


def test_single_day_range(container, store):
    seed_sale(store, 'a', '2024-05-02T08:00:00.000000+00:00')
    seed_sale(store, 'b', '2024-05-03T08:00:00.000000+00:00')

    assert [s.id for s in container.sales_service.get_sales_by_date_range('2024-05-02', '2024-05-02')] == ['a']


def test_inverted_range_is_rejected(container):
    with pytest.raises(ValidationError):
        container.sales_service.get_sales_by_date_range('2024-05-03', '2024-05-01')


def test_invalid_date_is_rejected(container):
    with pytest.raises(ValidationError):
        container.sales_service.get_sales_by_date_range('ayer', '2024-05-01')


def test_recent_sales(container, store):
    seed_sale(store, 'old', '2024-01-01T00:00:00.000000+00:00')
    seed_sale(store, 'new', '2024-02-01T00:00:00.000000+00:00')

    assert [s.id for s in container.sales_service.get_recent_sales(limit=1)] == ['new']


def test_get_missing_sale(container):
    with pytest.raises(NotFoundError):
        container.sales_service.get_sale('nope')
