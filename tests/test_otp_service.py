"""
OTP Service Unit Tests

Issue, consume and cooldown behaviour of the per-channel OTP slots.
"""

from datetime import timedelta

import pytest

from app.core.utils import utc_now
from app.models import Account, OTPChannel
from app.services import otp_service


@pytest.fixture
def account() -> Account:
    return Account(phone="+27820000001", email="user@example.com", name="Test", is_verified=False)


class TestGenerateOtp:

    def test_six_digits_without_leading_zero(self):
        for _ in range(200):
            code = otp_service.generate_otp()
            assert len(code) == 6
            assert code.isdigit()
            assert 100000 <= int(code) <= 999999


class TestIssueOtp:

    def test_stores_digest_not_plain_code(self, account):
        code = otp_service.issue_otp(account, OTPChannel.EMAIL, ttl_minutes=15)

        assert account.email_otp_hash is not None
        assert account.email_otp_hash != code
        assert account.phone_otp_hash is None

    def test_sets_expiry_from_ttl(self, account):
        now = utc_now()
        otp_service.issue_otp(account, OTPChannel.PHONE, ttl_minutes=10, now=now)

        assert account.phone_otp_expires_at == now + timedelta(minutes=10)
        assert account.phone_otp_sent_at == now

    def test_reissue_overwrites_pending_code(self, account):
        first = otp_service.issue_otp(account, OTPChannel.EMAIL, ttl_minutes=15)
        second = otp_service.issue_otp(account, OTPChannel.EMAIL, ttl_minutes=15)

        if first != second:
            assert otp_service.consume_otp(account, OTPChannel.EMAIL, first) is False
        assert otp_service.consume_otp(account, OTPChannel.EMAIL, second) is True


class TestConsumeOtp:

    def test_valid_code_verifies_account(self, account):
        code = otp_service.issue_otp(account, OTPChannel.EMAIL, ttl_minutes=15)

        assert otp_service.consume_otp(account, OTPChannel.EMAIL, code) is True
        assert account.is_verified is True

    def test_code_is_single_use(self, account):
        code = otp_service.issue_otp(account, OTPChannel.EMAIL, ttl_minutes=15)

        assert otp_service.consume_otp(account, OTPChannel.EMAIL, code) is True
        assert otp_service.consume_otp(account, OTPChannel.EMAIL, code) is False
        assert account.email_otp_hash is None

    def test_expired_code_is_rejected(self, account):
        issued = utc_now()
        code = otp_service.issue_otp(account, OTPChannel.EMAIL, ttl_minutes=15, now=issued)

        later = issued + timedelta(minutes=15, seconds=1)
        assert otp_service.consume_otp(account, OTPChannel.EMAIL, code, now=later) is False
        assert account.is_verified is False

    def test_expiry_boundary_is_exclusive(self, account):
        issued = utc_now()
        code = otp_service.issue_otp(account, OTPChannel.EMAIL, ttl_minutes=15, now=issued)

        at_expiry = issued + timedelta(minutes=15)
        assert otp_service.consume_otp(account, OTPChannel.EMAIL, code, now=at_expiry) is False

    def test_wrong_code_keeps_slot(self, account):
        code = otp_service.issue_otp(account, OTPChannel.EMAIL, ttl_minutes=15)
        wrong = "100000" if code != "100000" else "100001"

        assert otp_service.consume_otp(account, OTPChannel.EMAIL, wrong) is False
        assert otp_service.consume_otp(account, OTPChannel.EMAIL, code) is True

    def test_too_many_wrong_codes_clear_slot(self, account):
        code = otp_service.issue_otp(account, OTPChannel.EMAIL, ttl_minutes=15)
        wrong = "100000" if code != "100000" else "100001"

        for _ in range(3):
            assert otp_service.consume_otp(account, OTPChannel.EMAIL, wrong, max_attempts=3) is False

        assert account.email_otp_hash is None
        assert otp_service.consume_otp(account, OTPChannel.EMAIL, code, max_attempts=3) is False

    def test_reissue_resets_wrong_guess_count(self, account):
        code = otp_service.issue_otp(account, OTPChannel.EMAIL, ttl_minutes=15)
        wrong = "100000" if code != "100000" else "100001"
        otp_service.consume_otp(account, OTPChannel.EMAIL, wrong, max_attempts=2)

        code = otp_service.issue_otp(account, OTPChannel.EMAIL, ttl_minutes=15)

        assert account.email_otp_attempts == 0
        assert otp_service.consume_otp(account, OTPChannel.EMAIL, code, max_attempts=2) is True

    def test_channels_are_independent(self, account):
        code = otp_service.issue_otp(account, OTPChannel.EMAIL, ttl_minutes=15)

        assert otp_service.consume_otp(account, OTPChannel.PHONE, code) is False
        assert otp_service.consume_otp(account, OTPChannel.EMAIL, code) is True

    def test_empty_slot_rejects_everything(self, account):
        assert otp_service.consume_otp(account, OTPChannel.PHONE, "123456") is False


class TestResendCooldown:

    def test_no_code_sent_means_no_wait(self, account):
        assert otp_service.resend_wait_seconds(account, OTPChannel.EMAIL, 60) == 0

    def test_wait_counts_down(self, account):
        sent = utc_now()
        otp_service.issue_otp(account, OTPChannel.EMAIL, ttl_minutes=15, now=sent)

        assert otp_service.resend_wait_seconds(account, OTPChannel.EMAIL, 60, now=sent + timedelta(seconds=20)) == 40
        assert otp_service.resend_wait_seconds(account, OTPChannel.EMAIL, 60, now=sent + timedelta(seconds=61)) == 0
