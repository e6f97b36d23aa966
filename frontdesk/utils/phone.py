import re


def normalize_phone(raw: str | None) -> str:
    """Digits only, national 10-digit form for Indian numbers"""
    if not raw:
        return ""
    p = re.sub(r"[^0-9]", "", raw)
    if p.startswith("91") and len(p) == 12:
        p = p[2:]
    elif p.startswith("0") and len(p) == 11:
        p = p[1:]
    return p


def phone_digits(raw: str | None) -> str:
    return re.sub(r"[^0-9]", "", raw or "")


def phone_last10(raw: str | None) -> str:
    p = normalize_phone(raw)
    return p[-10:] if len(p) >= 10 else p


def phones_match(a: str | None, b: str | None) -> bool:
    na = normalize_phone(a)
    nb = normalize_phone(b)
    if not na or not nb:
        return False
    if na == nb:
        return True
    return phone_last10(na) == phone_last10(nb)
