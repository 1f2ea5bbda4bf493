"""
Tests for the stub OTP gate.
"""

from unittest.mock import patch

import pytest

from app.core.otp import OtpGate, StubOtpGate
from app.models.registrations import Registration
from conftest import make_record


def _record(registration_id: int = 1) -> Registration:
    return Registration.model_validate(make_record(registration_id))


class TestStubOtpGate:

    def test_codes_are_random_digits(self):
        gate = StubOtpGate(digits=6)
        code = gate._new_code()
        assert len(code) == 6
        assert code.isdigit()

    def test_code_only_logged(self, caplog):
        gate = StubOtpGate()
        with patch.object(gate, "_new_code", return_value="5173"):
            gate.send_code(_record())
        assert "5173" in caplog.text

    def test_verify(self):
        gate = StubOtpGate()
        with patch.object(gate, "_new_code", return_value="5173"):
            gate.send_code(_record())
        assert gate.verify(_record(), " 5173 ") is True

    def test_single_use(self):
        gate = StubOtpGate()
        with patch.object(gate, "_new_code", return_value="5173"):
            gate.send_code(_record())
        assert gate.verify(_record(), "5173") is True
        assert gate.verify(_record(), "5173") is False

    def test_wrong_code_keeps_challenge(self):
        gate = StubOtpGate()
        with patch.object(gate, "_new_code", return_value="5173"):
            gate.send_code(_record())
        assert gate.verify(_record(), "0000") is False
        assert gate.verify(_record(), "5173") is True

    def test_codes_are_per_registration(self):
        gate = StubOtpGate()
        with patch.object(gate, "_new_code", return_value="5173"):
            gate.send_code(_record(1))
        assert gate.verify(_record(2), "5173") is False

    def test_unknown_registration(self):
        assert StubOtpGate().verify(_record(), "1234") is False

    def test_expired(self):
        gate = StubOtpGate(ttl_seconds=60)
        with patch("app.core.otp.time.monotonic", return_value=1000.0):
            with patch.object(gate, "_new_code", return_value="5173"):
                gate.send_code(_record())
        with patch("app.core.otp.time.monotonic", return_value=1061.0):
            assert gate.verify(_record(), "5173") is False

    def test_challenge_discarded_after_too_many_wrong_codes(self):
        gate = StubOtpGate(max_attempts=3)
        with patch.object(gate, "_new_code", return_value="5173"):
            gate.send_code(_record())
        for guess in ("0000", "1111", "2222"):
            assert gate.verify(_record(), guess) is False
        assert gate.verify(_record(), "5173") is False

    def test_resend_resets_attempts(self):
        gate = StubOtpGate(max_attempts=2)
        with patch.object(gate, "_new_code", return_value="5173"):
            gate.send_code(_record())
            gate.verify(_record(), "0000")
            gate.send_code(_record())
        assert gate.verify(_record(), "1111") is False
        assert gate.verify(_record(), "5173") is True


class TestOtpGateInterface:

    def test_gate_must_implement_both_operations(self):
        class SendOnly(OtpGate):
            def send_code(self, record):
                pass

        with pytest.raises(TypeError):
            OtpGate()
        with pytest.raises(TypeError):
            SendOnly()
