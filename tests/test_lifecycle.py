import pytest

from canteen.core.exceptions import (
    EmptyCart,
    InvalidCanteen,
    InvalidMenuItem,
    InvalidTotal,
    InvalidTransition,
    ValidationError,
)
from canteen.models import (
    Canteen,
    MenuCategory,
    MenuItem,
    OrderPriority,
    OrderStatus,
    PaymentMode,
    PaymentStatus,
    UserRole,
)
from canteen.schemas import OrderItemCreate
from canteen.services import lifecycle


class TestTransitions:
    @pytest.mark.parametrize(
        "current,requested",
        [
            (OrderStatus.PENDING, OrderStatus.PREPARING),
            (OrderStatus.PREPARING, OrderStatus.READY),
            (OrderStatus.READY, OrderStatus.COMPLETED),
        ],
    )
    def test_forward_step_allowed(self, current, requested):
        assert lifecycle.validate_transition(current, requested).ok

    @pytest.mark.parametrize("status", list(OrderStatus))
    def test_same_state_is_a_noop(self, status):
        assert lifecycle.validate_transition(status, status).ok

    @pytest.mark.parametrize(
        "current,requested",
        [
            (OrderStatus.PENDING, OrderStatus.READY),
            (OrderStatus.PENDING, OrderStatus.COMPLETED),
            (OrderStatus.PREPARING, OrderStatus.PENDING),
            (OrderStatus.PREPARING, OrderStatus.COMPLETED),
            (OrderStatus.READY, OrderStatus.PREPARING),
            (OrderStatus.COMPLETED, OrderStatus.PENDING),
            (OrderStatus.COMPLETED, OrderStatus.READY),
        ],
    )
    def test_skips_and_reversals_rejected(self, current, requested):
        result = lifecycle.validate_transition(current, requested)
        assert not result.ok
        assert isinstance(result.error, InvalidTransition)
        assert current.value in result.error.message
        assert requested.value in result.error.message

    def test_completed_is_terminal(self):
        assert lifecycle.ALLOWED_TRANSITIONS[OrderStatus.COMPLETED] == ()

    def test_active_statuses_exclude_completed(self):
        assert OrderStatus.COMPLETED not in lifecycle.ACTIVE_STATUSES
        assert len(lifecycle.ACTIVE_STATUSES) == 3


class TestPaymentStatus:
    def test_cod_becomes_paid_on_completion(self):
        assert (
            lifecycle.payment_status_after(PaymentMode.COD, PaymentStatus.PENDING, OrderStatus.COMPLETED)
            == PaymentStatus.PAID
        )

    def test_cod_stays_pending_before_completion(self):
        assert (
            lifecycle.payment_status_after(PaymentMode.COD, PaymentStatus.PENDING, OrderStatus.READY)
            == PaymentStatus.PENDING
        )

    def test_upi_unchanged_on_completion(self):
        assert (
            lifecycle.payment_status_after(PaymentMode.UPI, PaymentStatus.PAID, OrderStatus.COMPLETED)
            == PaymentStatus.PAID
        )

    def test_initial_status(self):
        assert lifecycle.initial_payment_status(PaymentMode.UPI) == PaymentStatus.PAID
        assert lifecycle.initial_payment_status(PaymentMode.COD) == PaymentStatus.PENDING


class TestPriority:
    @pytest.mark.parametrize(
        "role,expected",
        [
            (UserRole.STAFF, OrderPriority.HIGH),
            (UserRole.STUDENT, OrderPriority.NORMAL),
            (UserRole.ADMIN, OrderPriority.NORMAL),
            (UserRole.KITCHEN, OrderPriority.NORMAL),
        ],
    )
    def test_priority_from_role(self, role, expected):
        assert lifecycle.derive_priority(role) == expected


class TestCreationValidation:
    def test_missing_canteen_id(self):
        result = lifecycle.validate_canteen(None, None)
        assert type(result.error) is ValidationError
        assert result.error.message == "canteenId is required"

    def test_unknown_canteen(self):
        result = lifecycle.validate_canteen(42, None)
        assert isinstance(result.error, InvalidCanteen)
        assert result.error.status_code == 400

    def test_inactive_canteen(self):
        canteen = Canteen(id=3, name="Munch Box", code="MUNCH", active=False)
        assert isinstance(lifecycle.validate_canteen(3, canteen).error, InvalidCanteen)

    def test_active_canteen(self):
        canteen = Canteen(id=1, name="East Canteen", code="EAST", active=True)
        assert lifecycle.validate_canteen(1, canteen).ok

    def test_empty_cart(self):
        result = lifecycle.validate_cart([])
        assert isinstance(result.error, EmptyCart)
        assert result.error.message == "Cart is empty"

    def test_non_empty_cart(self):
        assert lifecycle.validate_cart([OrderItemCreate(menu_item=1, quantity=1)]).ok

    def test_line_outside_canteen(self):
        result = lifecycle.validate_line(7, None)
        assert isinstance(result.error, InvalidMenuItem)
        assert "7" in result.error.message

    @pytest.mark.parametrize("total", [0, -5.0])
    def test_non_positive_total(self, total):
        assert isinstance(lifecycle.validate_totals(10.0, 0.5, total).error, InvalidTotal)

    def test_missing_totals(self):
        result = lifecycle.validate_totals(None, 1.0, 11.0)
        assert type(result.error) is ValidationError

    def test_negative_tax(self):
        assert not lifecycle.validate_totals(10.0, -1.0, 9.0).ok

    @pytest.mark.parametrize("total", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_total(self, total):
        assert isinstance(lifecycle.validate_totals(10.0, 0.5, total).error, InvalidTotal)

    @pytest.mark.parametrize("subtotal,tax", [(float("nan"), 0.0), (10.0, float("inf"))])
    def test_non_finite_subtotal_or_tax(self, subtotal, tax):
        assert not lifecycle.validate_totals(subtotal, tax, 10.0).ok

    def test_valid_totals(self):
        assert lifecycle.validate_totals(40.0, 2.0, 42.0).ok

    def test_raise_for_error(self):
        with pytest.raises(EmptyCart):
            lifecycle.validate_cart([]).raise_for_error()
        lifecycle.validate_cart([OrderItemCreate(menu_item=1, quantity=2)]).raise_for_error()


def test_snapshot_line_copies_name_and_price():
    item = MenuItem(id=5, canteen_id=1, name="Samosa", category=MenuCategory.SNACKS, price=15.0)
    line = lifecycle.snapshot_line(item, 3)
    assert line == {"menu_item_id": 5, "name": "Samosa", "price": 15.0, "quantity": 3}

    item.price = 18.0
    assert line["price"] == 15.0
