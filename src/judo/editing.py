"""Single-line text buffer with a cursor, used by the add/modify popups."""

from dataclasses import dataclass

from .errors import ValidationError


@dataclass
class EditBuffer:
    text: str = ""
    cursor: int = 0

    def __post_init__(self):
        self.cursor = max(0, min(len(self.text), self.cursor))

    def insert(self, ch: str) -> None:
        self.text = self.text[: self.cursor] + ch + self.text[self.cursor :]
        self.cursor += len(ch)

    def backspace(self) -> None:
        if self.cursor == 0:
            return
        self.text = self.text[: self.cursor - 1] + self.text[self.cursor :]
        self.cursor -= 1

    def delete(self) -> None:
        if self.cursor >= len(self.text):
            return
        self.text = self.text[: self.cursor] + self.text[self.cursor + 1 :]

    def left(self) -> None:
        self.cursor = max(0, self.cursor - 1)

    def right(self) -> None:
        self.cursor = min(len(self.text), self.cursor + 1)

    def home(self) -> None:
        self.cursor = 0

    def end(self) -> None:
        self.cursor = len(self.text)

    def clear(self) -> None:
        self.text = ""
        self.cursor = 0

    def value(self, what: str = "Text") -> str:
        """Return the stripped text; raise ValidationError if it is blank."""
        s = self.text.strip()
        if not s:
            raise ValidationError(f"{what} cannot be empty")
        return s


def validate_text(text: str, what: str = "Text") -> str:
    return EditBuffer(text).value(what)
