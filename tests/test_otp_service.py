"""
Tests for `services/otp_service.py`.

Covers contract rules:
- A correct code verifies exactly once.
- At most one active code per destination; issuing invalidates older ones.
- The 4th code inside an hour is rate limited with a retry time.
- A failed send leaves no usable code behind.
- Wrong guesses count down; after MAX_ATTEMPTS the code is refused even
  when the right code is submitted.
"""

from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from domain.channel import CODE_TTL, MULTI_BLAST, SMS_BLAST
from domain.verification_code import MAX_ATTEMPTS
from services.errors import (
    ExpiredCodeError,
    InvalidCodeError,
    InvalidInputError,
    RateLimitedError,
    SendFailedError,
    TooManyAttemptsError,
)
from services.otp_service import DEFAULT_CONTACT_NAME, generate_code, issue_code, verify_code
from tests.fakes import RecordingSender, fixed_code

PHONE = "5551234567"


def _issue(db, sender, now, channel: str = "vtext.com", **kwargs):
    return issue_code(db, sender, PHONE, channel, now=now, generate=fixed_code, **kwargs)


def test_issue_then_verify_once(db, sender, now) -> None:
    """Verify the happy path and that a consumed code cannot be reused."""

    issued = _issue(db, sender, now, name="Dana")

    assert issued.code == "4242"
    assert issued.expires_at == now + CODE_TTL
    assert sender.sent == [(PHONE, "vtext.com", "4242", "Dana")]

    verified = verify_code(db, "(555) 123-4567", "4242", now=now + timedelta(minutes=1))
    assert verified.destination == PHONE
    assert verified.code_id == issued.code_id

    with pytest.raises(ExpiredCodeError):
        verify_code(db, PHONE, "4242", now=now + timedelta(minutes=2))


def test_default_contact_name_used_when_blank(db, sender, now) -> None:
    _issue(db, sender, now, name="   ")

    assert sender.sent[0][3] == DEFAULT_CONTACT_NAME


def test_sms_blast_uses_six_digit_codes(db, sender, now) -> None:
    issued = _issue(db, sender, now, channel=SMS_BLAST)

    assert issued.code == "424242"
    verify_code(db, PHONE, "424242", now=now)


def test_generate_code_is_zero_padded() -> None:
    for length in (4, 6):
        code = generate_code(length)
        assert len(code) == length
        assert code.isdigit()


def test_leading_zero_codes_verify_as_strings(db, sender, now) -> None:
    issue_code(db, sender, PHONE, "vtext.com", now=now, generate=lambda n: "0042")

    with pytest.raises(InvalidInputError):
        verify_code(db, PHONE, "42", now=now)

    verify_code(db, PHONE, "0042", now=now)


def test_reissue_leaves_single_active_code(db, sender, now) -> None:
    """Verify only the newest code can be used after a reissue."""

    codes = iter(["1111", "2222"])
    issue_code(db, sender, PHONE, "vtext.com", now=now, generate=lambda n: next(codes))
    issue_code(db, sender, PHONE, MULTI_BLAST, now=now + timedelta(minutes=1), generate=lambda n: next(codes))

    active = [row for row in db.rows("verification_codes") if not row["used"]]
    assert len(active) == 1
    assert active[0]["code"] == "2222"

    with pytest.raises(InvalidCodeError):
        verify_code(db, PHONE, "1111", now=now + timedelta(minutes=2))

    verify_code(db, PHONE, "2222", now=now + timedelta(minutes=2))


def test_fourth_code_in_an_hour_is_rate_limited(db, sender, now) -> None:
    for minutes in (0, 10, 20):
        _issue(db, sender, now + timedelta(minutes=minutes))

    with pytest.raises(RateLimitedError) as exc_info:
        _issue(db, sender, now + timedelta(minutes=30))

    assert exc_info.value.kind == "rate_limited"
    assert exc_info.value.retry_after_seconds == 30 * 60
    assert len(sender.sent) == 3
    assert len(db.rows("verification_codes")) == 3

    # The oldest code ages out of the window.
    _issue(db, sender, now + timedelta(minutes=60, seconds=1))


def test_failed_send_rolls_back_code(db, now) -> None:
    """Verify a send failure leaves no code and does not touch older ones."""

    working = RecordingSender()
    _issue(db, working, now)

    with pytest.raises(SendFailedError):
        _issue(db, RecordingSender(fail=True), now + timedelta(minutes=1))

    rows = db.rows("verification_codes")
    assert len(rows) == 1
    # Invalidation happened before the send; the earlier code stays used.
    assert rows[0]["used"] is True

    with pytest.raises(ExpiredCodeError):
        verify_code(db, PHONE, "4242", now=now + timedelta(minutes=2))


def test_wrong_guesses_count_down_then_lock(db, sender, now) -> None:
    _issue(db, sender, now)

    for remaining in range(MAX_ATTEMPTS - 1, -1, -1):
        with pytest.raises(InvalidCodeError) as exc_info:
            verify_code(db, PHONE, "9999", now=now)
        if remaining:
            assert f"{remaining} attempt" in exc_info.value.message
        else:
            assert "No attempts left" in exc_info.value.message

    with pytest.raises(TooManyAttemptsError):
        verify_code(db, PHONE, "4242", now=now)

    assert db.rows("verification_codes")[0]["attempts"] == MAX_ATTEMPTS


def test_expired_code_is_rejected(db, sender, now) -> None:
    _issue(db, sender, now)

    with pytest.raises(ExpiredCodeError):
        verify_code(db, PHONE, "4242", now=now + CODE_TTL)


@pytest.mark.parametrize(
    "destination, channel",
    [("555-1234", "vtext.com"), (None, "vtext.com"), (PHONE, "valid"), (PHONE, None)],
)
def test_issue_rejects_invalid_input(db, sender, now, destination, channel) -> None:
    with pytest.raises(InvalidInputError):
        issue_code(db, sender, destination, channel, now=now)

    assert sender.sent == []
    assert db.rows("verification_codes") == []


@pytest.mark.parametrize("code", ["", "12345", "12a4", "1234567"])
def test_verify_rejects_malformed_codes(db, sender, now, code) -> None:
    _issue(db, sender, now)

    with pytest.raises(InvalidInputError):
        verify_code(db, PHONE, code, now=now)

    assert db.rows("verification_codes")[0]["attempts"] == 0


def _run_concurrently(calls):
    """Start every call behind one barrier; return each call's outcome label."""

    barrier = threading.Barrier(len(calls))
    outcomes = []
    outcomes_lock = threading.Lock()

    def run(call) -> None:
        barrier.wait()
        try:
            call()
            outcome = "ok"
        except (InvalidCodeError, TooManyAttemptsError, RateLimitedError, ExpiredCodeError) as e:
            outcome = e.kind
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=run, args=(call,)) for call in calls]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return outcomes


def test_concurrent_issues_respect_rate_limit_and_single_active_code(db, now) -> None:
    sender = RecordingSender()

    outcomes = _run_concurrently([lambda: _issue(db, sender, now) for _ in range(6)])

    assert outcomes.count("ok") == 3
    assert outcomes.count("rate_limited") == 3
    assert len(sender.sent) == 3

    rows = db.rows("verification_codes")
    assert len(rows) == 3
    assert len([row for row in rows if not row["used"]]) == 1


def test_concurrent_guesses_cannot_exceed_attempt_limit(db, sender, now) -> None:
    _issue(db, sender, now)

    wrong = [lambda: verify_code(db, PHONE, "9999", now=now) for _ in range(MAX_ATTEMPTS + 5)]
    outcomes = _run_concurrently(wrong)

    assert outcomes.count("invalid_code") == MAX_ATTEMPTS
    assert outcomes.count("too_many_attempts") == 5

    (row,) = db.rows("verification_codes")
    assert row["attempts"] == MAX_ATTEMPTS

    # The right code is refused once the attempts are used up.
    with pytest.raises(TooManyAttemptsError):
        verify_code(db, PHONE, "4242", now=now)
    assert db.rows("verification_codes")[0]["used"] is False


def test_concurrent_correct_guesses_verify_once(db, sender, now) -> None:
    _issue(db, sender, now)

    outcomes = _run_concurrently([lambda: verify_code(db, PHONE, "4242", now=now) for _ in range(8)])

    assert outcomes.count("ok") == 1
    assert outcomes.count("expired") == 7
