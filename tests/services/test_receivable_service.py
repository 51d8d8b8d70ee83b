"""
Tests for ReceivableService -- the Receivable Lifecycle Manager.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from fincontrol_kernel.domain.dtos import (
    PageRequest,
    ReceivableCreate,
    ReceivableFilter,
    ReceivableUpdate,
)
from fincontrol_kernel.domain.lifecycle import ReceiptMethod, ReceivableStatus
from fincontrol_kernel.exceptions import (
    DuplicateError,
    ExtraIncomeNotFoundError,
    InvalidOperationError,
    PastDueDateError,
    ReceivableNotFoundError,
    TerminalStatusError,
)
from fincontrol_kernel.models.extra_income import ExtraIncome

TODAY = date(2024, 6, 15)


class TestCreateAndRead:

    def test_new_receivable_is_pending(self, make_receivable, bank):
        info = make_receivable("75.00", bank_id=bank.id, automatic_bank_receipt=True)
        assert info.status == ReceivableStatus.PENDING
        assert info.amount == Decimal("75.00")
        assert info.extra_income_name == "Freelance"
        assert info.bank_id == bank.id
        assert info.receipt_method == ReceiptMethod.TRANSFER

    def test_past_due_date_rejected(self, make_receivable):
        with pytest.raises(PastDueDateError):
            make_receivable(due_date=TODAY - timedelta(days=1))

    def test_one_receivable_per_income(self, receivable_service, make_income, user):
        income = make_income()
        request = ReceivableCreate(
            extra_income_id=income.id, receipt_method=ReceiptMethod.PIX, due_date=TODAY
        )
        receivable_service.create(request, user.id)
        with pytest.raises(DuplicateError):
            receivable_service.create(request, user.id)

    def test_other_users_income(self, receivable_service, make_income, other_user):
        income = make_income()
        with pytest.raises(ExtraIncomeNotFoundError):
            receivable_service.create(
                ReceivableCreate(
                    extra_income_id=income.id,
                    receipt_method=ReceiptMethod.CASH,
                    due_date=TODAY,
                ),
                other_user.id,
            )

    def test_other_user_cannot_read(self, receivable_service, make_receivable, other_user):
        info = make_receivable()
        with pytest.raises(ReceivableNotFoundError):
            receivable_service.get(info.id, other_user.id)
        assert receivable_service.list(other_user.id).total == 0


class TestPagination:

    def test_pages_are_ordered_by_due_date(self, receivable_service, make_receivable, user):
        created = [
            make_receivable(due_date=TODAY + timedelta(days=offset)) for offset in (4, 0, 2, 1, 3)
        ]
        expected = sorted(created, key=lambda r: r.due_date)

        first = receivable_service.list(user.id, page=PageRequest(page=0, size=2))
        last = receivable_service.list(user.id, page=PageRequest(page=2, size=2))

        assert first.total == 5
        assert first.total_pages == 3
        assert first.has_next
        assert [r.id for r in first.items] == [r.id for r in expected[:2]]
        assert [r.id for r in last.items] == [expected[4].id]
        assert not last.has_next

    def test_page_past_the_end_is_empty(self, receivable_service, make_receivable, user):
        make_receivable()
        page = receivable_service.list(user.id, page=PageRequest(page=5, size=10))
        assert page.items == ()
        assert page.total == 1

    def test_invalid_page_request(self):
        with pytest.raises(ValueError):
            PageRequest(page=-1)
        with pytest.raises(ValueError):
            PageRequest(size=0)

    def test_filter_by_status_and_range(self, receivable_service, make_receivable, user, clock):
        make_receivable(due_date=TODAY)
        later = make_receivable(due_date=TODAY + timedelta(days=10))
        clock.advance_days(1)
        receivable_service.process_overdue_job()

        overdue = receivable_service.list(
            user.id, ReceivableFilter(status=ReceivableStatus.OVERDUE)
        )
        ranged = receivable_service.list(
            user.id, ReceivableFilter(due_from=TODAY + timedelta(days=5))
        )

        assert overdue.total == 1
        assert [r.id for r in ranged.items] == [later.id]

    def test_unknown_status_filter_is_rejected(self, receivable_service, user):
        with pytest.raises(InvalidOperationError, match="status"):
            receivable_service.list(user.id, ReceivableFilter(status="LOST"))


class TestUpdate:

    def test_partial_update(self, receivable_service, make_receivable, user):
        info = make_receivable(automatic_bank_receipt=True)
        updated = receivable_service.update(
            info.id, ReceivableUpdate(receipt_method=ReceiptMethod.PIX), user.id
        )
        assert updated.receipt_method == ReceiptMethod.PIX
        assert updated.automatic_bank_receipt is True
        assert updated.due_date == TODAY

    def test_new_due_date_reopens_overdue(self, receivable_service, make_receivable, user, clock):
        info = make_receivable(due_date=TODAY)
        clock.advance_days(1)
        receivable_service.process_overdue_job()
        assert receivable_service.get(info.id, user.id).status == ReceivableStatus.OVERDUE

        reopened = receivable_service.update(
            info.id, ReceivableUpdate(due_date=TODAY + timedelta(days=7)), user.id
        )

        assert reopened.status == ReceivableStatus.PENDING
        assert reopened.due_date == TODAY + timedelta(days=7)

    def test_past_due_date_does_not_reopen(self, receivable_service, make_receivable, user, clock):
        info = make_receivable(due_date=TODAY)
        clock.advance_days(1)
        receivable_service.process_overdue_job()

        with pytest.raises(PastDueDateError):
            receivable_service.update(info.id, ReceivableUpdate(due_date=TODAY), user.id)
        assert receivable_service.get(info.id, user.id).status == ReceivableStatus.OVERDUE

    def test_received_is_immutable(self, receivable_service, make_receivable, user):
        info = make_receivable()
        receivable_service.mark_received_manually(info.id, user.id)
        with pytest.raises(TerminalStatusError):
            receivable_service.update(
                info.id, ReceivableUpdate(automatic_bank_receipt=True), user.id
            )
        assert receivable_service.get(info.id, user.id).automatic_bank_receipt is False


class TestManualReceipt:

    def test_credits_bank_when_flagged(self, receivable_service, bank_service, make_receivable, bank, user):
        info = make_receivable("75.00", bank_id=bank.id, automatic_bank_receipt=True)

        result = receivable_service.mark_received_manually(info.id, user.id)

        assert result.status == ReceivableStatus.RECEIVED
        assert bank_service.get(bank.id, user.id).balance == Decimal("1075.00")

    def test_no_credit_without_flag(self, receivable_service, bank_service, make_receivable, bank, user):
        info = make_receivable("75.00", bank_id=bank.id)
        receivable_service.mark_received_manually(info.id, user.id)
        assert bank_service.get(bank.id, user.id).balance == Decimal("1000.00")

    def test_missing_bank_still_settles(
        self, receivable_service, make_receivable, bank, user, session, captured_logs,
    ):
        info = make_receivable(bank_id=bank.id, automatic_bank_receipt=True)
        session.get(ExtraIncome, info.extra_income_id).bank_id = None
        session.commit()

        result = receivable_service.mark_received_manually(info.id, user.id)

        assert result.status == ReceivableStatus.RECEIVED
        assert any(r["message"] == "receivable_bank_missing" for r in captured_logs())

    def test_pending_past_due_date_is_received_on_time(
        self, receivable_service, make_receivable, user, clock,
    ):
        info = make_receivable(due_date=TODAY)
        clock.advance_days(3)
        assert (
            receivable_service.mark_received_manually(info.id, user.id).status
            == ReceivableStatus.RECEIVED
        )

    def test_overdue_is_received_late(self, receivable_service, make_receivable, user, clock):
        info = make_receivable(due_date=TODAY)
        clock.advance_days(3)
        receivable_service.process_overdue_job()

        assert (
            receivable_service.mark_received_manually(info.id, user.id).status
            == ReceivableStatus.RECEIVED_LATE
        )

    def test_second_receipt_does_not_credit_again(
        self, receivable_service, bank_service, make_receivable, bank, user,
    ):
        info = make_receivable("75.00", bank_id=bank.id, automatic_bank_receipt=True)
        receivable_service.mark_received_manually(info.id, user.id)

        with pytest.raises(TerminalStatusError):
            receivable_service.mark_received_manually(info.id, user.id)
        assert bank_service.get(bank.id, user.id).balance == Decimal("1075.00")


class TestJobs:

    def test_overdue_receivable_is_left_by_auto_receipt(
        self, receivable_service, bank_service, make_bank, make_receivable, user, clock,
    ):
        """Auto-receipt only looks at PENDING receivables."""
        b2 = make_bank("0.00", name="B2")
        info = make_receivable("75.00", bank_id=b2.id, due_date=TODAY, automatic_bank_receipt=True)
        clock.advance_days(1)
        receivable_service.process_overdue_job()

        summary = receivable_service.process_auto_receipt_job()

        assert summary.selected == 0
        assert receivable_service.get(info.id, user.id).status == ReceivableStatus.OVERDUE
        assert bank_service.get(b2.id, user.id).balance == Decimal("0.00")

    def test_auto_receipt_due_today(
        self, receivable_service, bank_service, make_receivable, empty_bank, user,
    ):
        info = make_receivable("75.00", bank_id=empty_bank.id, automatic_bank_receipt=True)

        summary = receivable_service.process_auto_receipt_job()

        assert summary.processed == 1
        assert receivable_service.get(info.id, user.id).status == ReceivableStatus.RECEIVED
        assert bank_service.get(empty_bank.id, user.id).balance == Decimal("75.00")

    def test_auto_receipt_ignores_future_and_unflagged(
        self, receivable_service, make_receivable, bank, user,
    ):
        future = make_receivable(bank_id=bank.id, due_date=TODAY + timedelta(days=1), automatic_bank_receipt=True)
        unflagged = make_receivable(bank_id=bank.id)

        assert receivable_service.process_auto_receipt_job().selected == 0
        assert receivable_service.get(future.id, user.id).status == ReceivableStatus.PENDING
        assert receivable_service.get(unflagged.id, user.id).status == ReceivableStatus.PENDING

    def test_auto_receipt_without_bank_is_skipped(
        self, receivable_service, make_receivable, bank, user, session, captured_logs,
    ):
        info = make_receivable(bank_id=bank.id, automatic_bank_receipt=True)
        session.get(ExtraIncome, info.extra_income_id).bank_id = None
        session.commit()

        summary = receivable_service.process_auto_receipt_job()

        assert summary.skipped == 1
        assert receivable_service.get(info.id, user.id).status == ReceivableStatus.PENDING
        assert any(r["message"] == "auto_receipt_skipped_no_bank" for r in captured_logs())

    def test_overdue_job_is_idempotent(self, receivable_service, make_receivable, clock):
        make_receivable(due_date=TODAY)
        clock.advance_days(1)
        assert receivable_service.process_overdue_job().processed == 1
        assert receivable_service.process_overdue_job().selected == 0
