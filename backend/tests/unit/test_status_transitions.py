import pytest

from barbershop.core.enums import BookingStatus, PaymentStatus
from barbershop.core.exceptions import AlreadyInStateException, InvalidTransitionException
from barbershop.domain.status_transitions import (
    can_transition_booking,
    can_transition_payment,
    ensure_booking_transition,
    is_terminal_booking,
)


class TestBookingTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            (BookingStatus.PENDING_PAYMENT, BookingStatus.CONFIRMED),
            (BookingStatus.PENDING_PAYMENT, BookingStatus.CANCELLED),
            (BookingStatus.CONFIRMED, BookingStatus.COMPLETED),
            (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
        ],
    )
    def test_allowed(self, current: BookingStatus, target: BookingStatus) -> None:
        assert can_transition_booking(current, target)
        ensure_booking_transition("b1", current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (BookingStatus.PENDING_PAYMENT, BookingStatus.COMPLETED),
            (BookingStatus.CONFIRMED, BookingStatus.PENDING_PAYMENT),
            (BookingStatus.CANCELLED, BookingStatus.CONFIRMED),
            (BookingStatus.COMPLETED, BookingStatus.CANCELLED),
        ],
    )
    def test_rejected(self, current: BookingStatus, target: BookingStatus) -> None:
        with pytest.raises(InvalidTransitionException) as exc_info:
            ensure_booking_transition("b1", current, target)
        assert exc_info.value.status_code == 422
        assert exc_info.value.details == {
            "entity": "booking",
            "id": "b1",
            "from": current.value,
            "to": target.value,
        }

    def test_same_status_is_already_in_state(self) -> None:
        with pytest.raises(AlreadyInStateException) as exc_info:
            ensure_booking_transition("b1", BookingStatus.CANCELLED, BookingStatus.CANCELLED)
        assert exc_info.value.status_code == 409

    def test_terminal_states(self) -> None:
        assert is_terminal_booking(BookingStatus.CANCELLED)
        assert is_terminal_booking(BookingStatus.COMPLETED)
        assert not is_terminal_booking(BookingStatus.CONFIRMED)


class TestPaymentTransitions:
    def test_paid_is_final(self) -> None:
        for target in PaymentStatus:
            assert not can_transition_payment(PaymentStatus.PAID, target)

    def test_late_settlement_overrides_expiry_and_failure(self) -> None:
        assert can_transition_payment(PaymentStatus.EXPIRED, PaymentStatus.PAID)
        assert can_transition_payment(PaymentStatus.FAILED, PaymentStatus.PAID)
        assert not can_transition_payment(PaymentStatus.EXPIRED, PaymentStatus.FAILED)

    def test_cancelled_is_final(self) -> None:
        assert not can_transition_payment(PaymentStatus.CANCELLED, PaymentStatus.PAID)
