"""
Random password generation for password-protected secrets.

All choices use secrets.randbelow, which is unbiased for any bound.
"""

import secrets
from dataclasses import dataclass
from typing import Optional

UPPERCASE = 'ABCDEFGHIJKLMNOPQRSTUVWXYZ'
LOWERCASE = 'abcdefghijklmnopqrstuvwxyz'
DIGITS = '0123456789'
SYMBOLS = '~!@#%&*_-+=,.<>?'

DEFAULT_LENGTH = 16
MIN_LENGTH = 7


@dataclass
class PasswordOptions:
    uppercase: bool = True
    lowercase: bool = True
    digits: bool = True
    symbols: bool = True
    length: int = DEFAULT_LENGTH


def generate_password(options: Optional[PasswordOptions] = None) -> str:
    """
    Generate a random password.

    The result holds at least one character of every selected set and is
    shuffled so their positions are not predictable.

    Raises:
        ValueError: If length is 1..6 or no character set is selected
    """
    options = options or PasswordOptions()

    length = options.length
    if length <= 0:
        length = DEFAULT_LENGTH
    if length < MIN_LENGTH:
        raise ValueError("Invalid password length; must be greater than 6")

    character_sets = []
    if options.uppercase:
        character_sets.append(UPPERCASE)
    if options.lowercase:
        character_sets.append(LOWERCASE)
    if options.digits:
        character_sets.append(DIGITS)
    if options.symbols:
        character_sets.append(SYMBOLS)

    if not character_sets:
        raise ValueError(
            "At least one character set (uppercase, lowercase, digits, symbols) must be selected"
        )

    chars = [secrets.choice(s) for s in character_sets]

    all_chars = ''.join(character_sets)
    while len(chars) < length:
        chars.append(all_chars[secrets.randbelow(len(all_chars))])

    # Fisher-Yates
    for i in range(len(chars) - 1, 0, -1):
        j = secrets.randbelow(i + 1)
        chars[i], chars[j] = chars[j], chars[i]

    return ''.join(chars)
