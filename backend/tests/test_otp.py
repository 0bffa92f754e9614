"""
Tests for OTP issuing and verification.
"""

from datetime import timedelta

import pytest

from app.db.models import OrderStatus
from app.orchestration.delivery.state import (
    ConversationState,
    OrderSnapshot,
    create_initial_session,
)
from app.orchestration.delivery.states.base import OTP_REPROMPT_MESSAGE
from app.orchestration.delivery.states.otp import generate_otp, issue_otp, verify_otp
from tests.conftest import BASE_TIME


VALIDITY = timedelta(seconds=120)


@pytest.fixture
def order() -> OrderSnapshot:
    return OrderSnapshot(
        awb="AWB789012",
        status=OrderStatus.IN_TRANSIT,
        last_update=BASE_TIME,
        estimated_delivery=BASE_TIME + timedelta(days=2),
        customer_name="Jane Smith",
        customer_phone="+1987654321",
    )


@pytest.fixture
def pending(order):
    """Session waiting for the code 482193."""
    session = create_initial_session("s1", BASE_TIME)
    return issue_otp(session, order, "482193", BASE_TIME, VALIDITY).session


class TestGenerateOtp:
    """Test OTP generation."""

    def test_six_digits(self):
        for _ in range(50):
            code = generate_otp()
            assert len(code) == 6
            assert code.isdigit()
            assert code[0] != "0"


class TestIssueOtp:
    """Test starting verification."""

    def test_moves_to_awaiting_otp(self, order):
        session = create_initial_session("s1", BASE_TIME)
        transition = issue_otp(session, order, "482193", BASE_TIME, VALIDITY)

        assert transition.session.state == ConversationState.AWAITING_OTP
        assert transition.session.current_order == order
        assert transition.session.otp == "482193"
        assert transition.session.otp_issued_at == BASE_TIME
        assert transition.session.otp_verified is False
        assert transition.reply.requires_otp is True
        assert transition.reply.order_details is None

    def test_queues_code_for_order_phone(self, order):
        session = create_initial_session("s1", BASE_TIME)
        transition = issue_otp(session, order, "482193", BASE_TIME, VALIDITY)

        assert len(transition.notifications) == 1
        notification = transition.notifications[0]
        assert notification.phone == "+1987654321"
        assert notification.kind == "otp"
        assert "482193" in notification.message
        assert "2 minutes" in notification.message

    def test_no_phone_means_no_notification(self, order):
        from dataclasses import replace

        session = create_initial_session("s1", BASE_TIME)
        transition = issue_otp(session, replace(order, customer_phone=None), "482193", BASE_TIME, VALIDITY)

        assert transition.notifications == []
        assert transition.session.state == ConversationState.AWAITING_OTP


class TestVerifyOtp:
    """Test code verification."""

    def test_correct_code_verifies(self, pending):
        transition = verify_otp(pending, "482193", BASE_TIME + timedelta(seconds=30), VALIDITY)

        assert transition.session.state == ConversationState.ORDER_FOUND
        assert transition.session.otp_verified is True
        assert transition.session.otp is None
        assert transition.session.otp_issued_at is None
        assert transition.session.current_order.awb == "AWB789012"
        assert transition.reply.response == "Verification successful! You can now access your order details."

    def test_code_valid_at_window_edge(self, pending):
        transition = verify_otp(pending, "482193", BASE_TIME + VALIDITY, VALIDITY)
        assert transition.session.otp_verified is True

    def test_late_code_fails(self, pending):
        transition = verify_otp(pending, "482193", BASE_TIME + timedelta(seconds=121), VALIDITY)

        assert transition.session.state == ConversationState.INITIAL
        assert transition.session.otp_verified is False
        assert transition.session.otp is None
        assert transition.reply.response == "Verification unsuccessful, try again later."

    def test_wrong_code_fails_and_clears_order(self, pending):
        transition = verify_otp(pending, "111111", BASE_TIME, VALIDITY)

        assert transition.session.state == ConversationState.INITIAL
        assert transition.session.current_order is None
        assert transition.session.otp is None
        assert transition.session.otp_verified is False

    @pytest.mark.parametrize(
        "text",
        ["hello", "12345", "1234567", "48 21 93", "AWB789012", "", "\u0664\u0668\u0662\u0661\u0669\u0663", "\uff14\uff18\uff12\uff11\uff19\uff13"],
    )
    def test_non_code_input_reprompts(self, pending, text):
        transition = verify_otp(pending, text, BASE_TIME, VALIDITY)

        assert transition.session is pending
        assert transition.reply.response == OTP_REPROMPT_MESSAGE
        assert transition.reply.requires_otp is True

    def test_surrounding_whitespace_is_ignored(self, pending):
        transition = verify_otp(pending, "  482193 ", BASE_TIME, VALIDITY)
        assert transition.session.otp_verified is True
