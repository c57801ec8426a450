from shortlinks.core.config import CHARSET_36

# Python ints are arbitrary precision: ids beyond 64 bits encode and decode exactly.


def check_charset(charset: str) -> str:
    if len(charset) < 2:
        raise ValueError("Charset needs at least two characters")
    if len(set(charset)) != len(charset):
        raise ValueError("Charset characters must be unique")
    return charset


def int2string(num: int, charset: str = CHARSET_36) -> str:
    """Encode a non-negative integer using ``charset[i]`` as the digit for value ``i``."""
    if num < 0:
        raise ValueError("Only non-negative integers can be encoded")
    base = len(check_charset(charset))
    if num == 0:
        return charset[0]
    out = []
    while num:
        num, rem = divmod(num, base)
        out.append(charset[rem])
    return ''.join(reversed(out))


def string2int(s: str, charset: str = CHARSET_36) -> int:
    """Decode a keyword produced by ``int2string`` back into its integer."""
    base = len(check_charset(charset))
    if not s:
        raise ValueError("Cannot decode an empty keyword")
    n = 0
    for ch in s:
        index = charset.find(ch)
        if index < 0:
            raise ValueError(f"Character {ch!r} is not in the keyword charset")
        n = n * base + index
    return n
