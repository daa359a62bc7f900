import pytest

from stockpilot.errors import InsufficientStockError, ValidationError
from stockpilot.models import (
    Cart,
    CartItem,
    Product,
    Sale,
    User,
    UserRole,
    as_text,
    as_whole_number,
    normalize_role,
)


def product(pid='p1', name='Martillo', quantity=5, price=2.5, threshold=5):
    return Product(id=pid, name=name, category_id='c1', price=price,
                   quantity=quantity, low_stock_threshold=threshold)


def test_add_item_creates_line_with_snapshot():
    cart = Cart()
    item = cart.add_item(product(), 2)
    assert item == CartItem('p1', 'Martillo', 2, 2.5)
    assert item.subtotal == 5.0
    assert cart.grand_total() == 5.0


def test_add_item_merges_existing_line():
    cart = Cart()
    p = product(quantity=5)
    cart.add_item(p, 2)
    cart.add_item(p, 3)
    assert len(cart) == 1
    assert cart.find('p1').quantity == 5


def test_add_item_rejects_non_positive_quantity():
    cart = Cart()
    with pytest.raises(ValidationError):
        cart.add_item(product(), 0)
    with pytest.raises(ValidationError):
        cart.add_item(product(), -1)
    assert cart.is_empty()


def test_add_item_over_stock_leaves_cart_unchanged():
    cart = Cart()
    p = product(quantity=5)
    cart.add_item(p, 4)

    with pytest.raises(InsufficientStockError) as exc:
        cart.add_item(p, 2)

    assert exc.value.available == 5
    assert exc.value.items[0]['requested'] == 6
    assert 'excede stock (5)' in exc.value.message
    assert cart.find('p1').quantity == 4


def test_add_item_new_line_over_stock_message():
    with pytest.raises(InsufficientStockError) as exc:
        Cart().add_item(product(quantity=1), 3)
    assert exc.value.message == 'No hay suficiente stock. Disponible: 1.'


def test_update_item_quantity():
    cart = Cart()
    cart.add_item(product(quantity=10), 2)

    cart.update_item_quantity('p1', 7, available=10)
    assert cart.find('p1').quantity == 7

    with pytest.raises(InsufficientStockError):
        cart.update_item_quantity('p1', 11, available=10)
    assert cart.find('p1').quantity == 7

    cart.update_item_quantity('p1', 0, available=10)
    assert cart.is_empty()


def test_update_unknown_product_is_noop():
    cart = Cart()
    cart.add_item(product(), 1)
    cart.update_item_quantity('otro', 3, available=10)
    assert cart.to_list() == [CartItem('p1', 'Martillo', 1, 2.5).to_dict()]


def test_grand_total_is_sum_of_subtotals():
    cart = Cart()
    cart.add_item(product('p1', price=1.1, quantity=10), 3)
    cart.add_item(product('p2', name='Clavo', price=0.25, quantity=10), 4)
    assert cart.grand_total() == 4.3
    assert cart.total_units() == 7

    cart.remove_item('p1')
    assert cart.grand_total() == 1.0
    cart.clear()
    assert cart.grand_total() == 0


def test_cart_round_trip_through_session_format():
    cart = Cart()
    cart.add_item(product(), 2)
    restored = Cart.from_list(cart.to_list())
    assert restored.items == cart.items


def test_low_stock_is_strictly_below_threshold():
    assert product(quantity=4, threshold=5).is_low_stock
    assert not product(quantity=5, threshold=5).is_low_stock
    assert not product(quantity=0, threshold=0).is_low_stock


def test_product_defaults_from_document():
    p = Product.from_dict('p9', {'name': 'Sierra', 'categoryId': 'c1'})
    assert p.quantity == 0
    assert p.low_stock_threshold == 5
    assert p.supplier_id == ''
    assert p.to_view()['lowStock'] is True


@pytest.mark.parametrize('raw, expected', [
    ('admin', UserRole.ADMIN),
    ('Administrator', UserRole.ADMIN),
    ('manager', UserRole.BODEGA),
    ('Bodega', UserRole.BODEGA),
    ('warehouse', UserRole.BODEGA),
    ('vendedor', UserRole.SELLER),
    (' seller ', UserRole.SELLER),
    ('cajero', None),
    ('', None),
    (None, None),
])
def test_normalize_role(raw, expected):
    assert normalize_role(raw) == expected


def test_unknown_stored_role_reads_as_seller():
    user = User.from_dict('u1', {'name': 'X', 'email': 'x@x', 'role': 'cajero'})
    assert user.role == UserRole.SELLER


def test_sale_total_and_optional_fields():
    sale = Sale(id='', items=[CartItem('p1', 'A', 2, 1.5), CartItem('p2', 'B', 1, 3)])
    assert sale.calculate_total() == 6.0
    doc = sale.to_dict()
    assert 'userId' not in doc
    assert doc['items'][0]['subtotal'] == 3.0


@pytest.mark.parametrize('raw, expected', [
    (3, 3),
    ('12', 12),
    (' -4 ', -4),
    (5.0, 5),
    ('7.0', 7),
])
def test_as_whole_number(raw, expected):
    assert as_whole_number(raw) == expected


@pytest.mark.parametrize('raw', [2.9, '2.5', 'diez', '', None, True, [1], float('inf')])
def test_as_whole_number_rejects_fractions_and_non_numbers(raw):
    with pytest.raises(ValidationError) as exc:
        as_whole_number(raw, 'La cantidad')
    assert exc.value.message == 'La cantidad debe ser un número entero'


def test_as_text():
    assert as_text('  Martillo ') == 'Martillo'
    assert as_text(None) == ''
    assert as_text(42) == '42'
    for raw in (['a'], {'a': 1}, False):
        with pytest.raises(ValidationError):
            as_text(raw, 'El nombre')
