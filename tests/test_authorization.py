from dataclasses import dataclass

from guardescrow.authorization import (
    authorize_cancel,
    authorize_fund,
    authorize_refund,
    authorize_release,
    normalize_arbiter,
)


@dataclass
class Record:
    buyer: str = "buyer"
    seller: str = "seller"
    arbiter: str | None = "arbiter"
    created_at: int = 1000
    timeout_period: int = 3600


def test_normalize_arbiter():
    assert normalize_arbiter("buyer", "buyer") is None
    assert normalize_arbiter("buyer", None) is None
    assert normalize_arbiter("buyer", "arbiter") == "arbiter"


def test_release_before_timeout():
    record = Record()
    now = record.created_at + 1800
    assert authorize_release(record, "buyer", now)
    assert authorize_release(record, "arbiter", now)
    decision = authorize_release(record, "seller", now)
    assert not decision
    assert "timeout" in decision.reason
    assert not authorize_release(record, "outsider", now)


def test_release_at_and_after_timeout():
    record = Record()
    assert authorize_release(record, "seller", record.created_at + 3600).reason == "seller after timeout"
    assert authorize_release(record, "seller", record.created_at + 3700)


def test_release_without_arbiter_never_matches_arbiter():
    record = Record(arbiter=None)
    assert not authorize_release(record, "arbiter", record.created_at)
    assert not authorize_release(record, None, record.created_at)


def test_refund_clauses():
    record = Record()
    assert authorize_refund(record, "seller").reason == "seller"
    assert authorize_refund(record, "arbiter").reason == "arbiter"
    assert authorize_refund(record, "buyer").reason == "buyer"
    assert not authorize_refund(record, "outsider")
    assert not authorize_refund(Record(arbiter=None), "arbiter")


def test_cancel_and_fund_clauses():
    record = Record()
    assert authorize_cancel(record, "buyer")
    assert authorize_cancel(record, "seller")
    assert not authorize_cancel(record, "arbiter")
    assert authorize_fund(record, "buyer")
    assert not authorize_fund(record, "seller")
