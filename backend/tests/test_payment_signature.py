import hashlib
import hmac

import pytest

from backend.app.billing import PaymentSignatureVerifier


def test_expected_signature_is_hmac_of_order_and_payment():
    verifier = PaymentSignatureVerifier("s3cret")

    expected = hmac.new(b"s3cret", b"order_ABC|pay_XYZ", hashlib.sha256).hexdigest()

    assert verifier.expected_signature("order_ABC", "pay_XYZ") == expected
    assert verifier.verify("order_ABC", "pay_XYZ", expected)


def test_signature_bound_to_both_identifiers():
    verifier = PaymentSignatureVerifier("s3cret")
    signature = verifier.expected_signature("order_ABC", "pay_XYZ")

    assert not verifier.verify("order_ABC", "pay_OTHER", signature)
    assert not verifier.verify("order_OTHER", "pay_XYZ", signature)
    assert not PaymentSignatureVerifier("different").verify("order_ABC", "pay_XYZ", signature)


def test_signature_comparison_is_exact():
    verifier = PaymentSignatureVerifier("s3cret")
    signature = verifier.expected_signature("order_ABC", "pay_XYZ")

    assert not verifier.verify("order_ABC", "pay_XYZ", signature.upper())
    assert not verifier.verify("order_ABC", "pay_XYZ", f" {signature}")
    assert not verifier.verify("order_ABC", "pay_XYZ", "")


def test_verifier_requires_secret():
    with pytest.raises(ValueError):
        PaymentSignatureVerifier("")
