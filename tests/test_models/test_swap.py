"""Tests for the SwapTransaction model — defaults, status transitions, upstream outcomes."""

import uuid
from decimal import Decimal

import pytest

from app.models.swap import (
    UPSTREAM_STATUS_MAP,
    VALID_TRANSITIONS,
    SwapStatus,
    SwapTransaction,
)


@pytest.fixture
def swap():
    return SwapTransaction(
        user_id="8d7c4f0a-1b2c-4d3e-9f00-000000000001",
        from_currency="USDT",
        to_currency="NGN",
        from_amount=Decimal("100"),
        to_amount=Decimal("158523"),
        quoted_price=Decimal("1585.23"),
        quidax_quotation_id="quote-1",
    )


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


class TestSwapCreation:
    def test_defaults(self, swap):
        """A new swap is pending with an id, an idempotency key and timestamps."""
        assert isinstance(swap.id, uuid.UUID)
        assert swap.status == SwapStatus.PENDING
        assert uuid.UUID(swap.idempotency_key).version == 4
        assert swap.created_at is not None
        assert swap.updated_at is not None
        assert swap.confirmed_at is None
        assert swap.completed_at is None
        assert swap.failure_reason is None

    def test_explicit_idempotency_key_kept(self):
        key = str(uuid.uuid4())
        swap = SwapTransaction(
            user_id="u1", from_currency="BTC", to_currency="NGN",
            from_amount=Decimal("0.01"), quidax_quotation_id="q", idempotency_key=key,
        )
        assert swap.idempotency_key == key

    def test_each_swap_gets_its_own_key(self):
        keys = {
            SwapTransaction(
                user_id="u1", from_currency="USDT", to_currency="NGN",
                from_amount=Decimal("1"), quidax_quotation_id=f"q{i}",
            ).idempotency_key
            for i in range(20)
        }
        assert len(keys) == 20

    def test_repr(self, swap):
        assert "quote-1" in repr(swap)
        assert "status=pending" in repr(swap)


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


class TestSwapTransitions:
    def test_every_status_has_an_entry(self):
        assert set(VALID_TRANSITIONS) == set(SwapStatus)

    @pytest.mark.parametrize("status", [
        SwapStatus.COMPLETED, SwapStatus.EXPIRED, SwapStatus.CANCELLED, SwapStatus.FAILED,
    ])
    def test_terminal_statuses(self, status):
        assert VALID_TRANSITIONS[status] == set()

    def test_confirm_sets_timestamp(self, swap):
        swap.transition_to(SwapStatus.CONFIRMED)
        assert swap.status == SwapStatus.CONFIRMED
        assert swap.confirmed_at is not None

    def test_complete_sets_timestamp(self, swap):
        swap.transition_to(SwapStatus.CONFIRMED)
        swap.transition_to(SwapStatus.COMPLETED)
        assert swap.completed_at is not None

    def test_pending_cannot_complete_directly(self, swap):
        with pytest.raises(ValueError, match="pending -> completed"):
            swap.transition_to(SwapStatus.COMPLETED)

    def test_expired_is_final(self, swap):
        swap.transition_to(SwapStatus.EXPIRED)
        with pytest.raises(ValueError):
            swap.transition_to(SwapStatus.CONFIRMED)

    def test_is_valid_transition(self):
        assert SwapTransaction.is_valid_transition(SwapStatus.PENDING, SwapStatus.CANCELLED)
        assert not SwapTransaction.is_valid_transition(SwapStatus.FAILED, SwapStatus.PENDING)


class TestUpstreamStatus:
    @pytest.mark.parametrize("upstream,expected", sorted(UPSTREAM_STATUS_MAP.items()))
    def test_known_outcomes(self, swap, upstream, expected):
        swap.transition_to(SwapStatus.CONFIRMED)
        swap.apply_upstream_status(upstream.upper())
        assert swap.status == expected

    @pytest.mark.parametrize("upstream", ["pending", "processing", "", None])
    def test_in_progress_outcome_leaves_row_confirmed(self, swap, upstream):
        swap.transition_to(SwapStatus.CONFIRMED)
        swap.apply_upstream_status(upstream)
        assert swap.status == SwapStatus.CONFIRMED
