"""Six-digit one-time codes for the login step-up.

Codes are not bound to anything cryptographically. The caller stores the code
with its pending login and compares later; the pending login's expiry is what
bounds guessing.
"""

import secrets

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp() -> str:
    """Uniformly sampled code in [100000, 999999]."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def verify_otp(expected: str, provided: str) -> bool:
    return expected == provided
