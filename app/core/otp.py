import secrets
import threading
import time
from abc import ABC, abstractmethod
from typing import Dict, List

from app.core.config import OTP_TTL_SECONDS, logger
from app.models.registrations import Registration

# Wrong guesses allowed before a challenge is thrown away
OTP_MAX_ATTEMPTS = 5


class OtpGate(ABC):
    """
    Challenge/response check guarding the detail page's path to the edit view.
    Implementations deliver a code to the registrant and verify what they type back.
    """

    @abstractmethod
    def send_code(self, record: Registration) -> None:
        ...

    @abstractmethod
    def verify(self, record: Registration, code: str) -> bool:
        ...


class StubOtpGate(OtpGate):
    """
    Placeholder gate with no delivery channel.

    Codes are random and expire, but they are only written to the server log,
    so anyone with log access can pass. Replace with a real SMS/email
    challenge before relying on it.
    """

    def __init__(self, ttl_seconds: int = OTP_TTL_SECONDS, digits: int = 4, max_attempts: int = OTP_MAX_ATTEMPTS):
        self.ttl_seconds = ttl_seconds
        self.digits = digits
        self.max_attempts = max_attempts
        self._lock = threading.Lock()
        # registration id -> [code, expires_at, failed attempts]
        self._challenges: Dict[int, List] = {}

    def _new_code(self) -> str:
        return "".join(secrets.choice("0123456789") for _ in range(self.digits))

    def send_code(self, record: Registration) -> None:
        code = self._new_code()
        with self._lock:
            self._challenges[record.id] = [code, time.monotonic() + self.ttl_seconds, 0]
        logger.warning(
            f"OTP stub: no delivery channel configured; code for registration {record.id} "
            f"({record.phone_number or 'no phone'}) is {code}"
        )

    def verify(self, record: Registration, code: str) -> bool:
        with self._lock:
            challenge = self._challenges.get(record.id)
            if challenge is None:
                return False
            expected, expires_at, _ = challenge
            if time.monotonic() > expires_at:
                del self._challenges[record.id]
                logger.info(f"OTP for registration {record.id} expired")
                return False
            if not secrets.compare_digest(expected, (code or "").strip()):
                challenge[2] += 1
                if challenge[2] >= self.max_attempts:
                    del self._challenges[record.id]
                    logger.warning(f"OTP for registration {record.id} discarded after {challenge[2]} wrong attempts")
                return False
            # single use
            del self._challenges[record.id]
        logger.info(f"OTP verified for registration {record.id}")
        return True


_gate = StubOtpGate()


def get_otp_gate() -> OtpGate:
    """Dependency provider for the OTP gate."""
    return _gate
