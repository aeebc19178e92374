"""Spell out whole currency amounts in Vietnamese (``1150000`` -> ``"Một triệu một trăm năm mươi nghìn đồng"``)."""

_DIGITS = ["không", "một", "hai", "ba", "bốn", "năm", "sáu", "bảy", "tám", "chín"]
_GROUP_UNITS = ["", "nghìn", "triệu", "tỷ", "nghìn tỷ", "triệu tỷ"]


def _read_group(group: int) -> str:
    """Read a three-digit group (0-999); returns "" for zero."""
    hundreds, rest = divmod(group, 100)
    tens, units = divmod(rest, 10)
    if group == 0:
        return ""

    words = []
    if hundreds:
        words += [_DIGITS[hundreds], "trăm"]
        if tens == 0 and units:
            words.append("linh")
    if tens == 1:
        words.append("mười")
    elif tens > 1:
        words += [_DIGITS[tens], "mươi"]

    if units == 1 and tens > 1:
        words.append("mốt")
    elif units == 5 and tens:
        words.append("lăm")
    elif units:
        words.append(_DIGITS[units])
    return " ".join(words)


def to_vietnamese_words(amount) -> str:
    if amount is None:
        return ""
    amount = int(amount)
    if amount == 0:
        return "Không đồng"

    parts = []
    index = 0
    remaining = abs(amount)
    while remaining:
        remaining, group = divmod(remaining, 1000)
        text = _read_group(group)
        if text:
            unit = _GROUP_UNITS[index] if index < len(_GROUP_UNITS) else ""
            parts.insert(0, f"{text} {unit}".strip())
        index += 1

    sentence = " ".join(parts)
    if amount < 0:
        sentence = "âm " + sentence
    return sentence[0].upper() + sentence[1:] + " đồng"
