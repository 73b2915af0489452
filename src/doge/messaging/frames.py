"""STOMP 1.2 frame encoding and decoding."""

from dataclasses import dataclass, field

CLIENT_COMMANDS = frozenset(
    {
        "CONNECT",
        "STOMP",
        "SEND",
        "SUBSCRIBE",
        "UNSUBSCRIBE",
        "ACK",
        "NACK",
        "BEGIN",
        "COMMIT",
        "ABORT",
        "DISCONNECT",
    }
)
SERVER_COMMANDS = frozenset({"CONNECTED", "MESSAGE", "RECEIPT", "ERROR"})

# CONNECT and CONNECTED headers are exchanged before escaping is negotiated.
_UNESCAPED_COMMANDS = frozenset({"CONNECT", "CONNECTED"})

_ESCAPES = {"\\": "\\\\", "\r": "\\r", "\n": "\\n", ":": "\\c"}
_UNESCAPES = {"\\": "\\", "r": "\r", "n": "\n", "c": ":"}


class FrameError(ValueError):
    """Raised for text that is not a well-formed STOMP frame."""


@dataclass(frozen=True)
class Frame:
    """A single STOMP frame."""

    command: str
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""

    def serialize(self) -> str:
        """Return the wire form of the frame, NUL terminated."""
        escape = self.command not in _UNESCAPED_COMMANDS
        lines = [self.command]
        for name, value in self.headers.items():
            if escape:
                name, value = _escape(name), _escape(value)
            lines.append(f"{name}:{value}")
        return "\n".join(lines) + "\n\n" + self.body + "\0"


def parse_frame(text: str) -> Frame | None:
    """Parse one frame from text.

    Returns None for a heart-beat (text made only of end-of-line characters).
    """
    stripped = text.lstrip("\r\n")
    if not stripped:
        return None
    lines: list[str] = []
    position = 0
    while True:
        end = stripped.find("\n", position)
        if end < 0:
            raise FrameError("Frame has no header terminator")
        line = stripped[position:end]
        position = end + 1
        if line.endswith("\r"):
            line = line[:-1]
        if not line:
            break
        lines.append(line)
    rest = stripped[position:]

    command = lines[0].strip()
    if command not in CLIENT_COMMANDS and command not in SERVER_COMMANDS:
        raise FrameError(f"Unknown STOMP command: {command!r}")

    unescape = command not in _UNESCAPED_COMMANDS
    headers: dict[str, str] = {}
    for line in lines[1:]:
        name, colon, value = line.partition(":")
        if not colon:
            raise FrameError(f"Malformed header line: {line!r}")
        if unescape:
            name, value = _unescape(name), _unescape(value)
        # Repeated headers: the first occurrence wins.
        headers.setdefault(name, value)

    return Frame(command=command, headers=headers, body=_read_body(rest, headers))


def _read_body(rest: str, headers: dict[str, str]) -> str:
    content_length = headers.get("content-length")
    if content_length is not None:
        try:
            length = int(content_length)
        except ValueError as exc:
            raise FrameError(f"Invalid content-length: {content_length!r}") from exc
        encoded = rest.encode("utf-8")
        if length < 0 or length > len(encoded):
            raise FrameError("content-length exceeds frame body")
        return encoded[:length].decode("utf-8", errors="replace")
    body, _, _ = rest.partition("\0")
    return body


def _escape(value: str) -> str:
    return "".join(_ESCAPES.get(char, char) for char in value)


def _unescape(value: str) -> str:
    result: list[str] = []
    chars = iter(value)
    for char in chars:
        if char != "\\":
            result.append(char)
            continue
        code = next(chars, "")
        if code not in _UNESCAPES:
            raise FrameError(f"Undefined escape sequence: \\{code}")
        result.append(_UNESCAPES[code])
    return "".join(result)
