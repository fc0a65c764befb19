"""
app/services/code_service.py

Purpose: One-time verification codes

- Six digits, never a leading zero
- Drawn from the secrets module; codes authenticate a phone
"""

import secrets

CODE_MIN = 100000
CODE_MAX = 999999


def generate_verification_code() -> str:
    """
    Generates a uniformly distributed code in [100000, 999999].

    Returns:
        Six-character numeric string
    """
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))
