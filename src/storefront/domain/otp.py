"""
OTP input buffer - Fixed-length, index-addressable code entry.

Models the row of single-digit inputs used for email and phone codes,
including the focus movement that decides when the code is complete.
"""

import re

_DIGIT = re.compile(r"[0-9]")
_DIGITS = re.compile(r"[0-9]+")


class OtpBuffer:
    """Ordered sequence of single-digit slots with a focus cursor."""

    def __init__(self, length: int = 6) -> None:
        self.length = length
        self._slots = [""] * length
        self.focus = 0

    @property
    def slots(self) -> list[str]:
        return list(self._slots)

    @property
    def value(self) -> str:
        return "".join(self._slots)

    def is_complete(self) -> bool:
        """True when every slot holds a digit."""
        return all(self._slots)

    def set_digit(self, index: int, value: str) -> bool:
        """
        Replace one slot from raw input.

        Only the last typed character is kept. Non-digits are rejected
        and leave the buffer untouched. An empty value clears the slot.
        Entering a digit advances focus to the next slot.

        Returns:
            True if the buffer was updated
        """
        if not 0 <= index < self.length:
            raise IndexError(f"OTP slot {index} out of range")

        digit = value[-1:]
        if digit and not _DIGIT.fullmatch(digit):
            return False

        self._slots[index] = digit
        self.focus = index
        if digit and index < self.length - 1:
            self.focus = index + 1
        return True

    def backspace(self, index: int) -> None:
        """Clear a filled slot, or step focus back from an empty one."""
        if self._slots[index]:
            self._slots[index] = ""
            self.focus = index
        elif index > 0:
            self.focus = index - 1

    def paste(self, text: str) -> bool:
        """
        Fill slots from pasted text.

        Text beyond the buffer length is ignored; shorter input leaves
        trailing slots blank. Anything containing a non-digit is rejected.

        Returns:
            True if the buffer was updated
        """
        data = text[: self.length]
        if not _DIGITS.fullmatch(data):
            return False

        self._slots = list(data) + [""] * (self.length - len(data))
        self.focus = min(len(data), self.length - 1)
        return True

    def clear(self) -> None:
        self._slots = [""] * self.length
        self.focus = 0

    def __repr__(self) -> str:
        return f"OtpBuffer({self._slots!r})"
