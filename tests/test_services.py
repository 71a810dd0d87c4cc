import pytest

from teapos.cart import Cart
from teapos.errors import (
    ActorNotPermittedError,
    InvalidPaymentAmountError,
    InvalidStatusTransitionError,
    PaymentAmountMismatchError,
    RecordNotFoundError,
    StoreError,
)
from teapos.lifecycle import OrderContext
from teapos.services import CatalogService, OrderService


@pytest.fixture
def catalog(session):
    return CatalogService(session)


@pytest.fixture
def order_service(session):
    return OrderService(session)


@pytest.fixture
def filled_cart(milk_tea):
    cart = Cart()
    line = cart.add_product(milk_tea)
    cart.set_quantity(line.line_id, 2)
    return cart


def test_submit_persists_and_clears_cart(order_service, filled_cart, store):
    order = order_service.submit(filled_cart, OrderContext(table_label="5", source_payment={"cash": 40000}))

    assert order.order_id is not None
    assert order.created_at is not None
    assert order.status == "pending"
    assert order.total_price == 40000
    assert not filled_cart
    assert len(store.fetch_all("order")) == 1


def test_failed_validation_keeps_cart(order_service, filled_cart, store):
    context = OrderContext(table_label="5", source_payment={"cash": 30000, "transfer": 5000})

    with pytest.raises(PaymentAmountMismatchError):
        order_service.submit(filled_cart, context)

    assert len(filled_cart) == 1
    assert store.fetch_all("order") == []


def test_float_payment_is_rejected_before_insert(order_service, filled_cart, store):
    with pytest.raises(InvalidPaymentAmountError):
        order_service.submit(filled_cart, OrderContext(table_label="5", source_payment={"cash": 40000.0}))

    assert store.fetch_all("order") == []
    assert len(filled_cart) == 1
    assert order_service.list_orders() == []


def test_failed_write_keeps_cart(order_service, filled_cart, store, monkeypatch):
    def broken_insert(kind, record):
        raise StoreError("backend offline")

    monkeypatch.setattr(store, "insert", broken_insert)

    with pytest.raises(StoreError):
        order_service.submit(filled_cart, OrderContext(table_label="5", source_payment={"cash": 40000}))

    assert len(filled_cart) == 1


def test_full_lifecycle_through_store(order_service, filled_cart):
    order = order_service.submit(filled_cart, OrderContext(table_label="5", source_payment={"cash": 40000}))

    order_service.start_preparing(order.order_id)
    done = order_service.complete(order.order_id)

    assert done.status == "completed"
    assert [e.status for e in done.timeline] == ["pending", "preparing", "completed"]
    assert [e.actor for e in done.timeline] == ["staff", "kitchen", "kitchen"]
    stamps = [e.timestamp for e in done.timeline]
    assert stamps == sorted(stamps)
    assert done.items == order.items
    assert done.source_payment == {"cash": 40000}


def test_cancel_from_preparing(order_service, filled_cart):
    order = order_service.submit(filled_cart, OrderContext(table_label="5", source_payment={"cash": 40000}))
    order_service.start_preparing(order.order_id)

    cancelled = order_service.cancel(order.order_id)

    assert cancelled.status == "cancelled"
    assert cancelled.is_cancelled is True
    with pytest.raises(InvalidStatusTransitionError):
        order_service.start_preparing(order.order_id)


def test_advance_rejects_wrong_actor_without_writing(order_service, filled_cart):
    order = order_service.submit(filled_cart, OrderContext(table_label="5", source_payment={"cash": 40000}))

    with pytest.raises(ActorNotPermittedError):
        order_service.advance(order.order_id, "preparing", "staff")

    assert order_service.get_order(order.order_id).timeline == order.timeline


def test_advance_uses_session_actor(session, order_service, filled_cart):
    order = order_service.submit(filled_cart, OrderContext(table_label="5", source_payment={"cash": 40000}))
    session.actor = "kitchen"

    assert order_service.advance(order.order_id, "preparing").status == "preparing"


def test_advance_unknown_order(order_service):
    with pytest.raises(RecordNotFoundError):
        order_service.advance("missing", "preparing", "kitchen")


def test_list_orders_newest_first(order_service, milk_tea):
    for label in ("1", "2", "3"):
        cart = Cart()
        cart.add_product(milk_tea)
        order_service.submit(cart, OrderContext(table_label=label, source_payment={"cash": None}))

    assert [o.table_label for o in order_service.list_orders()] == ["3", "2", "1"]


def test_walk_in_uses_session_label(order_service, milk_tea):
    cart = Cart()
    cart.add_product(milk_tea)

    order = order_service.submit(cart, OrderContext(customer_type="walkin", source_payment={"transfer": None}))

    assert order.table_label == "Vãng lai"
    assert order.source_payment == {"transfer": 20000}


def test_category_crud(catalog):
    tea = catalog.create_category("  Trà  ")
    catalog.create_category("Cà phê")

    renamed = catalog.rename_category(tea.category_id, "Trà trái cây")

    assert renamed.name == "Trà trái cây"
    assert [c.name for c in catalog.list_categories()] == ["Trà trái cây", "Cà phê"]
    assert catalog.delete_category(tea.category_id) is True
    with pytest.raises(ValueError):
        catalog.create_category("   ")


def test_product_crud_and_listing(catalog):
    tea = catalog.create_category("Trà")
    product = catalog.create_product("Trà đào", 25000, tea.category_id)
    orphan = catalog.create_product("Bánh flan", 15000, "gone", is_active=False)

    listings = {listing.product.product_id: listing.category_name for listing in catalog.list_product_listings()}
    assert listings == {product.product_id: "Trà", orphan.product_id: "Khác"}

    updated = catalog.update_product(
        type(product)(
            product_id=product.product_id,
            name=" Trà đào cam sả ",
            price=28000,
            category_id=tea.category_id,
            image=product.image,
            is_active=False,
        )
    )
    assert (updated.name, updated.price, updated.is_active) == ("Trà đào cam sả", 28000, False)
    assert updated.created_at == product.created_at
    assert catalog.delete_product(orphan.product_id) is True
    assert [p.product_id for p in catalog.list_products()] == [product.product_id]


@pytest.mark.parametrize("name, price", [("", 1000), ("Trà", -1), ("Trà", 10.5), ("Trà", True)])
def test_product_validation(catalog, name, price):
    with pytest.raises(ValueError):
        catalog.create_product(name, price, None)


def test_upload_product_image_path(catalog, store, clock):
    expected_ms = int(clock.current.timestamp() * 1000)

    url = catalog.upload_product_image(b"img", "Photo.PNG", "p-1")

    assert url.endswith(f"product-images/products/product_p-1_{expected_ms}.png")
    assert (store.asset_dir / f"product-images/products/product_p-1_{expected_ms}.png").exists()
